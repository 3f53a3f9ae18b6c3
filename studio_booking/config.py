import os
from urllib.parse import urlparse, urlunparse
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class with all settings as static attributes."""

    # Core configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key'
    DEBUG = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    VERSION = '1.0.0'

    # MySQL connection timeouts
    MYSQL_CONNECT_TIMEOUT = 30
    MYSQL_READ_TIMEOUT = 30
    MYSQL_WRITE_TIMEOUT = 30

    # Database configuration
    base_db_uri = os.environ.get('DATABASE_URL')

    # Fallback to SQLite if no DATABASE_URL is provided
    if not base_db_uri:
        base_db_uri = 'sqlite:///studio_booking.db'

    # Configure database URI
    if base_db_uri.startswith('mysql'):
        parsed = urlparse(base_db_uri)

        # PyMySQL specific parameters only; pool options go in SQLALCHEMY_ENGINE_OPTIONS
        query_params = {
            'charset': 'utf8mb4',
            'connect_timeout': str(MYSQL_CONNECT_TIMEOUT),
            'read_timeout': str(MYSQL_READ_TIMEOUT),
            'write_timeout': str(MYSQL_WRITE_TIMEOUT),
        }

        query_string = '&'.join([f"{k}={v}" for k, v in query_params.items()])
        new_query = f"{parsed.query}&{query_string}" if parsed.query else query_string

        SQLALCHEMY_DATABASE_URI = urlunparse((
            parsed.scheme,
            parsed.netloc,
            parsed.path,
            parsed.params,
            new_query,
            parsed.fragment
        ))
    else:
        SQLALCHEMY_DATABASE_URI = base_db_uri

    # Disable track modifications for performance
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_pre_ping": True,
    }

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_TO_FILE = os.environ.get('LOG_TO_FILE', 'true').lower() == 'true'

    # Booking concurrency: how long a request may wait for a slot lock (seconds)
    LOCK_TIMEOUT_SECONDS = float(os.environ.get('LOCK_TIMEOUT_SECONDS', 5))

    # Studio policy defaults (overridable through SystemConfiguration rows)
    MAX_TRIALS_PER_PERSON = int(os.environ.get('MAX_TRIALS_PER_PERSON', 1))
    ATTENDANCE_BACKDATE_DAYS = int(os.environ.get('ATTENDANCE_BACKDATE_DAYS', 3))
    INVOICE_PREFIX = os.environ.get('INVOICE_PREFIX', 'INV')
    INVOICE_START_NUMBER = int(os.environ.get('INVOICE_START_NUMBER', 1))

    SITE_NAME = 'Studio Booking'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_ECHO = os.environ.get('SQL_DEBUG', 'false').lower() == 'true'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }

    def __init__(self):
        if not os.environ.get('SECRET_KEY'):
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if not os.environ.get('DATABASE_URL'):
            raise ValueError("DATABASE_URL environment variable must be set in production")


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_TO_FILE = False

    # Seconds a contending request waits before Busy
    LOCK_TIMEOUT_SECONDS = 5


# Configuration dictionary
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name=None):
    """Get configuration instance by name (defaults to FLASK_ENV)."""
    config_name = config_name or os.environ.get('FLASK_ENV', 'development')
    return config_by_name[config_name]()
