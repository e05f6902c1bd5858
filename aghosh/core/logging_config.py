"""
Logging configuration for the application
"""
import os
import logging
from logging.handlers import RotatingFileHandler
import re

from aghosh.utils import mask_secret

LOG_FORMAT = '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'


def setup_logging(app):
    """Configure logging for the application"""
    # Payment modules log through their own loggers; route them to the app handlers
    payments_logger = logging.getLogger('aghosh')

    if not app.testing:
        log_dir = app.config.get('LOG_DIR', 'logs')
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'aghosh.log'),
            maxBytes=10240000,  # 10MB
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        payments_logger.addHandler(file_handler)

    if not app.debug:
        app.logger.setLevel(logging.INFO)
        payments_logger.setLevel(logging.INFO)
        if not os.environ.get('FLASK_SILENT_STARTUP'):
            app.logger.info('Aghosh donations service startup')
    else:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(console_handler)
        payments_logger.addHandler(console_handler)
        app.logger.setLevel(logging.DEBUG)
        payments_logger.setLevel(logging.DEBUG)
        if not os.environ.get('FLASK_SILENT_STARTUP'):
            app.logger.info('Aghosh donations service startup (DEBUG mode)')

    if not os.environ.get('FLASK_SILENT_STARTUP') and not app.testing:
        _log_startup_configuration(app)


def _log_startup_configuration(app):
    """Log application configuration on startup"""
    app.logger.info(f"Environment: {app.config.get('ENV')}")
    app.logger.info(f"Debug mode: {app.config.get('DEBUG')}")

    db_uri = app.config['SQLALCHEMY_DATABASE_URI']
    db_uri_display = re.sub(r':([^:@]+)@', r':****@', db_uri) if '@' in db_uri else db_uri
    app.logger.info(f"Database: {db_uri_display}")
    app.logger.info(f"Payment ledger backend: {app.config.get('PAYMENT_LEDGER_BACKEND')}")

    app.logger.info("Secrets status:")
    for var in ['SECRET_KEY', 'SECURITY_PASSWORD_SALT', 'STRIPE_PUBLISHABLE_KEY',
                'STRIPE_SECRET_KEY', 'STRIPE_WEBHOOK_SECRET']:
        if os.environ.get(var):
            app.logger.info(f"  ✓ {var}: {mask_secret(os.environ.get(var))} (set)")
        else:
            app.logger.warning(f"  ✗ {var}: not set (using default)")
