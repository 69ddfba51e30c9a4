"""
Custom Validators
Validation and normalisation for payment request fields
"""

import math
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse, urlunparse

MIN_AMOUNT = 1
MAX_AMOUNT = 150000

COUNTRY_CODE = '254'
CALLBACK_ROUTE = '/api/mpesa/callback'

# Accepted at the edge: +254XXXXXXXXX, 0XXXXXXXXX, 254XXXXXXXXX
_REQUEST_PHONE_RE = re.compile(r'^(\+254|0|254)[0-9]{9}$')
# What Daraja accepts: 254 + (1|7) + 8 digits
_MPESA_PHONE_RE = re.compile(r'^254[17][0-9]{8}$')
_WHITESPACE_RE = re.compile(r'\s')


def strip_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub('', value)


def is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false is not an amount
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_amount(amount: Any, min_amount: float = MIN_AMOUNT,
                    max_amount: float = MAX_AMOUNT) -> tuple[bool, Optional[str]]:
    """
    Validate payment amount

    Args:
        amount: Amount to validate
        min_amount: Minimum allowed amount (inclusive)
        max_amount: Maximum allowed amount (inclusive)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not is_number(amount):
        return False, "Amount must be a valid number"

    if not math.isfinite(amount) or amount < min_amount or amount > max_amount:
        return False, f"Amount must be between KES {min_amount:,} and {max_amount:,}"

    return True, None


def format_kenyan_phone_number(phone: str) -> tuple[Optional[str], Optional[str]]:
    """
    Normalise a phone number to the 2547XXXXXXXX / 2541XXXXXXXX form Daraja expects.

    Accepts: 0712345678, +254712345678, 254712345678, 712345678

    Returns:
        Tuple of (formatted_phone, error_message)
    """
    if not isinstance(phone, str):
        return None, "Invalid phone number. Use format 07XXXXXXXX or 01XXXXXXXX"

    cleaned = strip_whitespace(phone)

    if cleaned.startswith('+'):
        cleaned = cleaned[1:]

    if cleaned.startswith('0'):
        cleaned = COUNTRY_CODE + cleaned[1:]

    if not cleaned.startswith(COUNTRY_CODE):
        cleaned = COUNTRY_CODE + cleaned

    if not _MPESA_PHONE_RE.match(cleaned):
        return None, "Invalid phone number. Use format 07XXXXXXXX or 01XXXXXXXX"

    return cleaned, None


def normalize_callback_url(url: str, route: str = CALLBACK_ROUTE) -> tuple[Optional[str], Optional[str]]:
    """
    Normalise the STK push callback URL.

    The URL must be https, loses any trailing slash, and gets the callback
    route appended when its path does not already contain it.

    Returns:
        Tuple of (normalized_url, error_message)
    """
    if not url or not isinstance(url, str):
        return None, "Callback URL is required"

    url = url.strip()
    if not url.startswith('https://'):
        return None, "Callback URL must use https://"

    try:
        parsed = urlparse(url)
    except ValueError:
        return None, "Callback URL is malformed"

    if not parsed.netloc or ' ' in parsed.netloc:
        return None, "Callback URL is malformed"

    path = parsed.path.rstrip('/')
    if route not in path:
        path = path + route

    return urlunparse(parsed._replace(path=path)), None


def validate_payment_request(body: Any) -> Dict[str, Any]:
    """
    Validate an inbound STK push request body.

    Checks run in a fixed order and the first failure wins:
    shape, phone presence, phone format, amount presence, amount range.

    Returns:
        Dict with valid, error, normalized_phone (whitespace stripped) and
        normalized_amount (float)
    """
    if not isinstance(body, dict):
        return {'valid': False, 'error': 'Invalid request body'}

    phone_number = body.get('phoneNumber')
    amount = body.get('amount')

    if not phone_number or not isinstance(phone_number, str):
        return {'valid': False, 'error': 'Phone number is required'}

    normalized_phone = strip_whitespace(phone_number)
    if not _REQUEST_PHONE_RE.match(normalized_phone):
        return {'valid': False, 'error': 'Invalid phone number format'}

    if amount is None:
        return {'valid': False, 'error': 'Amount is required'}

    is_valid, error = validate_amount(amount)
    if not is_valid:
        return {'valid': False, 'error': error}

    return {
        'valid': True,
        'error': None,
        'normalized_phone': normalized_phone,
        'normalized_amount': float(amount),
    }
