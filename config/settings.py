# config/settings.py
"""
Environment-driven configuration for the contact mailer service
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def env_flag(name: str, default: bool) -> bool:
    """Read a true/false environment variable"""
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_int(name: str, default: int) -> int:
    value = os.environ.get(name, '').strip()
    return int(value) if value else default


class Config:
    """Base configuration shared by every environment"""

    SERVICE_NAME = 'NL Digital Solutions Email Server'
    VERSION = os.environ.get('APP_VERSION', '2.0.1')

    # SMTP transport
    SMTP_HOST = os.environ.get('SMTP_HOST', 'smtpout.secureserver.net')
    SMTP_PORT = env_int('SMTP_PORT', 587)
    SMTP_SECURE = env_flag('SMTP_SECURE', False)
    SMTP_REQUIRE_TLS = env_flag('SMTP_REQUIRE_TLS', True)
    # Only the literal string "false" turns certificate checks off
    TLS_REJECT_UNAUTHORIZED = os.environ.get('TLS_REJECT_UNAUTHORIZED', 'true').strip().lower() != 'false'
    SMTP_CONNECTION_TIMEOUT = float(os.environ.get('SMTP_CONNECTION_TIMEOUT', 30))
    SMTP_SOCKET_TIMEOUT = float(os.environ.get('SMTP_SOCKET_TIMEOUT', 60))
    EMAIL_USER = os.environ.get('EMAIL_USER', '')
    EMAIL_PASSWORD = os.environ.get('EMAIL_PASSWORD', '')

    # Branding used in outgoing mail
    BRAND_NAME = os.environ.get('BRAND_NAME', 'NL Digital Solutions')
    SUPPORT_EMAIL = os.environ.get('SUPPORT_EMAIL', 'support@nldigitalsolutions.co.za')
    SUPPORT_PHONE = os.environ.get('SUPPORT_PHONE', '081 721 8350')
    WHATSAPP_URL = os.environ.get('WHATSAPP_URL', 'https://wa.me/27817218350')
    DISPLAY_TIMEZONE = os.environ.get('DISPLAY_TIMEZONE', 'Africa/Johannesburg')

    # Persistence
    SUBMISSIONS_DIR = os.environ.get('SUBMISSIONS_DIR') or str(Path.cwd() / 'submissions')
    SUBMISSIONS_FILE = 'submissions.json'
    RECENT_SUBMISSIONS_LIMIT = 20

    # HTTP
    PORT = env_int('PORT', 3000)
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10MB
    CORS_ORIGINS = '*'
    SLOW_REQUEST_THRESHOLD = 5000  # ms, two SMTP round trips are normal

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')

    VERIFY_SMTP_ON_STARTUP = env_flag('VERIFY_SMTP_ON_STARTUP', True)

    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    TESTING = True
    VERIFY_SMTP_ON_STARTUP = False
    EMAIL_USER = 'support@example.com'
    SMTP_HOST = 'smtp.example.com'
    SMTP_PORT = 587


class ProductionConfig(Config):
    pass


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}


def get_config(config_name: str = None):
    """Resolve a configuration class by environment name"""
    config_name = config_name or os.environ.get('FLASK_ENV', 'production')
    return CONFIGS.get(config_name, ProductionConfig)
