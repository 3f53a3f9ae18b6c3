# gunicorn_config.py
import os

# Server Socket
bind = os.environ.get("GUNICORN_BIND", "127.0.0.1:8000")

# Worker Settings
# Slot locks are per process; the SELECT ... FOR UPDATE on the slot row serializes across workers
workers = int(os.environ.get("GUNICORN_WORKERS", 4))
threads = 2
worker_class = "gthread"

# Timeouts
timeout = 60
graceful_timeout = 30
keepalive = 5
max_requests = 1000
max_requests_jitter = 50

# Logging
accesslog = os.environ.get("GUNICORN_ACCESS_LOG", "-")
errorlog = os.environ.get("GUNICORN_ERROR_LOG", "-")
loglevel = "info"

# Process Name
proc_name = "studio_booking_gunicorn"
