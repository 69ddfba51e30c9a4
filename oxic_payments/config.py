import os
from dotenv import load_dotenv

load_dotenv()


def _env_list(name, default):
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(',') if item.strip()]


def env_flag(name, default=False):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')

    # Request guard
    RATE_LIMIT_MAX_REQUESTS = int(os.getenv('RATE_LIMIT_MAX_REQUESTS', 5))
    RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('RATE_LIMIT_WINDOW_SECONDS', 60))

    ALLOWED_ORIGIN_DOMAINS = _env_list('ALLOWED_ORIGIN_DOMAINS', [
        'oxicinternational.co.ke',
        'www.oxicinternational.co.ke',
        'localhost',
        '127.0.0.1',
        'theoxic.netlify.app',
    ])

    CORS_ORIGINS = _env_list('CORS_ORIGINS', [
        'https://oxicinternational.co.ke',
        'https://www.oxicinternational.co.ke',
        'http://localhost:3000',
        'http://127.0.0.1:3000',
    ])

    # Transaction tracking
    TRANSACTION_ID_PREFIX = os.getenv('TRANSACTION_ID_PREFIX', 'OXIC')
    TRANSACTION_STRICT_TRANSITIONS = env_flag('TRANSACTION_STRICT_TRANSITIONS')

    # Outbound calls to Daraja (OAuth + STK push)
    MPESA_HTTP_TIMEOUT = float(os.getenv('MPESA_HTTP_TIMEOUT', 15))

    LOG_DIR = os.getenv('LOG_DIR', 'logs')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = False
    TESTING = True
    RATE_LIMIT_MAX_REQUESTS = 5
    RATE_LIMIT_WINDOW_SECONDS = 60
    TRANSACTION_STRICT_TRANSITIONS = False


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
