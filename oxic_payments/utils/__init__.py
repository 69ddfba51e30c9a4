"""
Utils Package
Utility functions and helpers
"""

from oxic_payments.utils.logger import get_logger, log_security_event, RequestLogger
from oxic_payments.utils.security import (
    RateLimiter,
    get_client_ip,
    is_valid_origin,
    detect_suspicious_activity,
    add_security_headers
)
from oxic_payments.utils.validators import (
    validate_payment_request,
    validate_amount,
    format_kenyan_phone_number,
    normalize_callback_url
)

__all__ = [
    'get_logger',
    'log_security_event',
    'RequestLogger',
    'RateLimiter',
    'get_client_ip',
    'is_valid_origin',
    'detect_suspicious_activity',
    'add_security_headers',
    'validate_payment_request',
    'validate_amount',
    'format_kenyan_phone_number',
    'normalize_callback_url'
]
