# extensions.py
"""
Extensions are created here without an app and bound to it in the application factory.
"""

import logging
import threading
import time

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError

# Initialize extensions without app binding
db = SQLAlchemy()
migrate = Migrate()

# Connection monitoring
connection_stats = {
    'total_connections': 0,
    'failed_connections': 0,
    'last_check': 0,
    'healthy': True
}
connection_lock = threading.Lock()

logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(engine):
    """Turn on foreign key enforcement for SQLite connections."""

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_connection_stats():
    """
    Get current database connection statistics.

    Returns:
        dict: Connection statistics
    """
    with connection_lock:
        return connection_stats.copy()


def check_database_health():
    """
    Check if the database connection is healthy.
    Requires an active Flask application context.

    Returns:
        tuple: (bool, str) indicating health status and message
    """
    try:
        if not current_app:
            return False, "No application context available"

        connection = db.engine.connect()
        try:
            with connection.begin():
                connection.execute(text("SELECT 1")).fetchone()

            with connection_lock:
                connection_stats['total_connections'] += 1
                connection_stats['healthy'] = True
                connection_stats['last_check'] = time.time()

            return True, "Database connection is healthy"
        finally:
            connection.close()

    except OperationalError as e:
        logger.error(f"Database health check failed: {e}")

        with connection_lock:
            connection_stats['failed_connections'] += 1
            connection_stats['healthy'] = False
            connection_stats['last_check'] = time.time()

        return False, f"Database connection failed: {str(e)}"


def init_extensions(app):
    """
    Initialize all extensions with proper order and configuration.

    Args:
        app: Flask application instance
    """
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        if db.engine.dialect.name == 'sqlite':
            enable_sqlite_foreign_keys(db.engine)

    app.logger.info("Extensions initialized successfully")
