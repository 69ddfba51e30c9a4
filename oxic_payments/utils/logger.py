"""
Logging Configuration
Handlers live on the package logger; every module logger is a child of it
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

ROOT_LOGGER = 'oxic_payments'
LOG_FILE = 'payment-gateway.log'

# Env vars whose values must never reach a log line
SECRET_ENV_VARS = ('MPESA_CONSUMER_KEY', 'MPESA_CONSUMER_SECRET', 'MPESA_PASSKEY')


class RedactSecretsFilter(logging.Filter):
    """Replace live M-Pesa credential values in a record's message with ***"""

    def filter(self, record: logging.LogRecord) -> bool:
        secrets = [os.getenv(name) for name in SECRET_ENV_VARS]
        secrets = [value for value in secrets if value and len(value) >= 4]
        if not secrets:
            return True

        message = record.getMessage()
        redacted = message
        for value in secrets:
            redacted = redacted.replace(value, '***')

        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _configure(root: logging.Logger) -> None:
    root.setLevel(os.getenv('LOG_LEVEL', 'INFO').upper())
    root.propagate = False
    redact = RedactSecretsFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    console_handler.addFilter(redact)
    root.addHandler(console_handler)

    log_dir = os.getenv('LOG_DIR', 'logs')
    try:
        os.makedirs(log_dir, exist_ok=True)
    except OSError:
        # Read-only filesystems (serverless) get console output only
        return

    file_handler = RotatingFileHandler(
        os.path.join(log_dir, LOG_FILE),
        maxBytes=10485760,  # 10MB
        backupCount=10
    )
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    file_handler.addFilter(redact)
    root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the oxic_payments namespace

    Args:
        name: Module name (typically __name__) or a short channel name
              such as 'security' or 'request'

    Returns:
        Logger whose records go through the package handlers
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        _configure(root)

    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f'{ROOT_LOGGER}.{name}')


def log_security_event(event: str, details: dict) -> None:
    """
    Log a security-relevant event as a single structured line

    Args:
        event: Event tag (e.g. 'rate_limit_exceeded', 'invalid_origin')
        details: JSON-serialisable event details
    """
    logger = get_logger('security')
    timestamp = datetime.now(timezone.utc).isoformat()
    logger.warning(f'SECURITY: {timestamp} {event} {json.dumps(details, default=str)}')


class RequestLogger:
    """Log every request on arrival and its status on the way out"""

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        from flask import request
        from oxic_payments.utils.security import get_client_ip

        logger = get_logger('request')

        @app.before_request
        def log_request():
            logger.info(
                f'{request.method} {request.path} - '
                f'IP: {get_client_ip(request)} - '
                f'User-Agent: {request.headers.get("User-Agent", "Unknown")}'
            )

        @app.after_request
        def log_response(response):
            logger.info(
                f'{request.method} {request.path} - '
                f'Status: {response.status_code} - '
                f'IP: {get_client_ip(request)}'
            )
            return response
