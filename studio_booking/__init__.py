# __init__.py
"""
Application factory for the studio booking engine.
This module creates and configures the Flask application using the application factory pattern.
"""

import os
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from studio_booking.config import get_config
from studio_booking.errors import StudioError
from studio_booking.extensions import init_extensions, db


def setup_logging(app):
    """
    Configure structured logging for the application.

    Args:
        app: Flask application instance
    """
    log_format = logging.Formatter(
        '%(asctime)s %(levelname)s %(name)s %(threadName)s : %(message)s'
    )
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    handlers = []

    if app.config.get('LOG_TO_FILE', True):
        log_dir = os.path.join(app.root_path, 'logs')
        os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'app.log'),
            maxBytes=1024 * 1024 * 10,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(log_format)
        file_handler.setLevel(logging.INFO)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(log_format)
    console_handler.setLevel(logging.DEBUG if app.debug else level)
    handlers.append(console_handler)

    app.logger.setLevel(logging.DEBUG if app.debug else level)
    app.logger.handlers.clear()
    for handler in handlers:
        app.logger.addHandler(handler)

    # Service loggers share the application's handlers
    for name in ('api', 'transaction', 'capacity_service', 'subscription_service', 'trial_service',
                 'attendance_service', 'invoice_service', 'settings_service'):
        service_logger = logging.getLogger(name)
        service_logger.setLevel(level)
        service_logger.handlers.clear()
        for handler in handlers:
            service_logger.addHandler(handler)
        service_logger.propagate = False

    sa_logger = logging.getLogger('sqlalchemy.engine')
    sa_logger.setLevel(logging.WARNING)
    sa_logger.propagate = False


def register_blueprints(app):
    """
    Register all application blueprints.

    Args:
        app: Flask application instance
    """
    try:
        from .controllers.api import api_bp

        app.register_blueprint(api_bp, url_prefix='/api')

        app.logger.info("All blueprints registered successfully")

    except ImportError as e:
        app.logger.error(f"Failed to import blueprint: {str(e)}")
        raise


def register_error_handlers(app):
    """
    Register global error handlers.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(StudioError)
    def handle_studio_error(e):
        if e.http_status >= 500:
            app.logger.warning(f"{e.__class__.__name__}: {e.message}")
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({
            'success': False,
            'message': e.description,
            'error_code': e.name.lower().replace(' ', '_'),
            'details': {},
        }), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        db.session.rollback()
        app.logger.error(f"Unhandled exception: {str(e)}", exc_info=True)
        return jsonify({
            'success': False,
            'message': str(e) if app.debug else 'Internal server error',
            'error_code': 'internal_error',
            'details': {},
        }), 500


def register_shell_context(app):
    """
    Register shell context for flask shell command.

    Args:
        app: Flask application instance
    """

    @app.shell_context_processor
    def make_shell_context():
        from studio_booking import models
        from studio_booking import services
        return {
            'db': db,
            'models': models,
            'services': services,
        }


def register_health_checks(app):
    """
    Register health check endpoints.

    Args:
        app: Flask application instance
    """

    @app.route('/health')
    def health_check():
        """Basic health check endpoint."""
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now().isoformat(),
            'version': app.config.get('VERSION', '1.0.0')
        })

    @app.route('/health/database')
    def database_health_check():
        """Database health check endpoint."""
        from studio_booking.extensions import check_database_health, get_connection_stats

        healthy, message = check_database_health()
        stats = get_connection_stats()

        if healthy:
            from studio_booking.models import SessionSlot
            stats['active_slots'] = db.session.query(SessionSlot).filter_by(is_active=True).count()

        return jsonify({
            'status': 'healthy' if healthy else 'unhealthy',
            'message': message,
            'stats': stats,
            'timestamp': datetime.now().isoformat()
        }), 200 if healthy else 503


def create_app(config_name=None, config_overrides=None):
    """
    Application factory function.

    Args:
        config_name (str): Configuration name ('development', 'production', 'testing')
        config_overrides (dict): Settings applied on top of the configuration class

    Returns:
        Flask: Configured Flask application instance
    """
    load_dotenv()

    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_ENV', 'development')
    app.config.from_object(get_config(config_name))
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app)
    app.logger.info(f"Starting application with config: {config_name}")

    init_extensions(app)

    register_blueprints(app)
    register_error_handlers(app)
    register_shell_context(app)
    register_health_checks(app)

    from .cli import register_cli_commands
    register_cli_commands(app)

    app.logger.info("Application factory completed successfully")

    return app
