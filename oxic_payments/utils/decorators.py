"""
Custom Decorators
Request-guard and timing decorators for view functions
"""

import time
from functools import wraps

from flask import request, current_app

from oxic_payments.errors import OriginRejected, RateLimitExceeded
from oxic_payments.utils.logger import get_logger, log_security_event
from oxic_payments.utils.security import get_client_ip, is_valid_origin

logger = get_logger(__name__)


def rate_limit(f):
    """
    Raise RateLimitExceeded (429) once the caller's IP exceeds its window quota

    Usage:
        @rate_limit
        def my_endpoint():
            return "Success"
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        from oxic_payments.extensions import get_rate_limiter

        limiter = get_rate_limiter()
        client_ip = get_client_ip(request)

        if limiter.is_limited(client_ip):
            log_security_event('rate_limit_exceeded', {'ip': client_ip, 'path': request.path})
            raise RateLimitExceeded(RateLimitExceeded.error)

        return f(*args, **kwargs)

    return decorated_function


def require_trusted_origin(f):
    """
    Raise OriginRejected (403) unless Origin or Referer names an allowed domain

    Usage:
        @require_trusted_origin
        def my_endpoint():
            return "Success"
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        allowed = current_app.config.get('ALLOWED_ORIGIN_DOMAINS', [])

        if not is_valid_origin(request.headers.get('Origin'), request.headers.get('Referer'), allowed):
            raise OriginRejected(OriginRejected.error)

        return f(*args, **kwargs)

    return decorated_function


def log_execution_time(f):
    """
    Log how long a view took, including the outbound Daraja calls it made

    Usage:
        @log_execution_time
        def my_endpoint():
            return "Success"
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        start_time = time.perf_counter()
        try:
            return f(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.info(f'{request.method} {request.path} handled by {f.__name__} in {elapsed_ms:.1f} ms')

    return decorated_function
