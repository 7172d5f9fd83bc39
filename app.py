# app.py
"""
Flask Application Factory for the Contact Mailer Service

Accepts contact-form submissions, emails them to the support inbox, sends
the submitter an auto-reply and keeps a local JSON log of every submission.

The factory wires together:
- Environment-based configuration (config/settings.py)
- Console and rotating-file logging
- One injected SMTP client shared by every endpoint
- The submission log and the contact service
- CORS, security headers and JSON error handlers
"""

import asyncio
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from api.contact import contact_bp
from api.status import status_bp
from config.settings import get_config
from core.email_templates import EmailTemplateRenderer
from core.mailer import ContactMailer, SMTPSettings
from core.submission_log import SubmissionLog
from middleware.security import init_request_middleware
from services.contact import ContactService

logger = logging.getLogger(__name__)

HANDLER_PREFIX = 'contact-mailer'


def setup_logging(app: Flask) -> None:
    """
    Configure logging for the service

    - Console handler with a journal-friendly format
    - Rotating file handler with a detailed format when LOG_FILE is set
    - werkzeug request lines quieted outside debug mode
    """
    root = logging.getLogger()

    # Re-running the factory (tests, reloader) must not stack handlers
    for handler in list(root.handlers):
        if (handler.get_name() or '').startswith(HANDLER_PREFIX):
            root.removeHandler(handler)
            handler.close()

    journal_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)s[%(process)d]: %(levelname)s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(funcName)-15s:%(lineno)-4d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    root.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.set_name(f'{HANDLER_PREFIX}-console')
    console_handler.setFormatter(journal_formatter)
    console_handler.setLevel(log_level)
    root.addHandler(console_handler)

    log_file = app.config.get('LOG_FILE')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.set_name(f'{HANDLER_PREFIX}-file')
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)

    # Flask's own handler would print everything twice
    app.logger.handlers.clear()

    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)


def configure_error_handlers(app: Flask) -> None:
    """JSON bodies for every error the service can produce"""
    def error_response(error: str, message: str, status_code: int):
        return jsonify({
            'error': error,
            'message': message,
            'status_code': status_code
        }), status_code

    @app.errorhandler(400)
    def bad_request(error):
        logger.warning(f"Bad request from {request.remote_addr}: {error}")
        return error_response('Bad Request', 'Invalid request format or parameters', 400)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not Found', 'The requested resource was not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_response('Method Not Allowed', f'{request.method} is not supported on {request.path}', 405)

    @app.errorhandler(413)
    def payload_too_large(error):
        logger.warning(f"Oversized request from {request.remote_addr}")
        return error_response('Payload Too Large', 'Request body exceeds the size limit', 413)

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}", exc_info=True)
        return error_response('Internal Server Error', 'An unexpected error occurred', 500)

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        if isinstance(e, HTTPException):
            return e

        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return error_response('Internal Server Error', 'An unexpected error occurred', 500)


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(status_bp)
    app.register_blueprint(contact_bp)
    logger.debug("Application blueprints registered")


def build_mailer(app: Flask) -> ContactMailer:
    """SMTP client built from the app configuration"""
    settings = SMTPSettings.from_config(app.config)
    return ContactMailer(settings, sender=app.config.get('EMAIL_USER'))


def create_app(config_name: str = None,
               mailer: Optional[ContactMailer] = None,
               submission_log: Optional[SubmissionLog] = None,
               config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
        mailer: SMTP client to use instead of one built from the configuration
        submission_log: Submission log to use instead of SUBMISSIONS_DIR/SUBMISSIONS_FILE
        config_overrides: Values applied on top of the configuration class

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app)
    logger.info(f"Starting {app.config['SERVICE_NAME']} ({config_name or 'default'} configuration)")

    CORS(app,
         origins=app.config.get('CORS_ORIGINS', '*'),
         methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization', 'Accept', 'Origin', 'X-Requested-With'])

    mailer = mailer or build_mailer(app)
    if submission_log is None:
        submission_log = SubmissionLog(Path(app.config['SUBMISSIONS_DIR']) / app.config['SUBMISSIONS_FILE'])

    renderer = EmailTemplateRenderer(defaults={
        'brand': app.config['BRAND_NAME'],
        'support_email': app.config['SUPPORT_EMAIL'],
        'support_phone': app.config['SUPPORT_PHONE'],
        'whatsapp_url': app.config['WHATSAPP_URL'],
    })

    app.mailer = mailer
    app.submission_log = submission_log
    app.contact_service = ContactService(
        mailer=mailer,
        submission_log=submission_log,
        renderer=renderer,
        support_address=app.config['EMAIL_USER'],
        brand_name=app.config['BRAND_NAME'],
        service_name=app.config['SERVICE_NAME'],
        display_timezone=app.config['DISPLAY_TIMEZONE'],
    )

    register_blueprints(app)
    configure_error_handlers(app)
    init_request_middleware(app)

    logger.info(f"Submissions log: {submission_log.path}")
    return app


def verify_smtp_on_startup(app: Flask) -> bool:
    """Log whether the configured SMTP server accepts our connection"""
    config = app.config
    logger.info('=' * 70)
    logger.info('TESTING SMTP CONNECTION')
    try:
        asyncio.run(app.mailer.verify())
    except Exception as e:
        logger.error(f"SMTP CONNECTION FAILED: {e}")
        logger.error("Troubleshooting tips:")
        logger.error("1. Check if credentials are correct")
        logger.error("2. Ensure SMTP access is enabled for the mailbox")
        logger.error("3. Try using an app password instead of the regular password")
        logger.error(f"4. Check SMTP_HOST/SMTP_PORT/SMTP_SECURE (currently {config['SMTP_HOST']}:{config['SMTP_PORT']})")
        logger.error("5. Run contact-smtp-probe to find a working combination")
        return False
    finally:
        logger.info('=' * 70)

    logger.info(f"SMTP CONNECTION SUCCESSFUL, email: {config['EMAIL_USER']}, "
                f"server: {config['SMTP_HOST']}:{config['SMTP_PORT']}")
    return True


def main() -> None:
    """Development server entry point"""
    app = create_app()
    port = app.config['PORT']

    logger.info('=' * 60)
    logger.info(f"{app.config['SERVICE_NAME'].upper()}")
    logger.info(f"Port: {port}")
    logger.info(f"Email: {app.config['EMAIL_USER']}")
    logger.info(f"URL: http://localhost:{port}")
    logger.info(f"CORS: enabled for {app.config['CORS_ORIGINS']}")
    logger.info(f"Health: http://localhost:{port}/health")
    logger.info(f"Test SMTP: http://localhost:{port}/test-smtp")
    logger.info(f"Test Email: http://localhost:{port}/test")
    logger.info('=' * 60)

    if app.config.get('VERIFY_SMTP_ON_STARTUP'):
        verify_smtp_on_startup(app)

    app.run(host='0.0.0.0', port=port, debug=app.debug, threaded=True)


if __name__ == '__main__':
    main()
