"""
Request Guard
Rate limiting, origin validation, suspicious-activity heuristics and
security headers for the M-Pesa endpoints.

Rate-limit state lives in process memory. It is authoritative only for the
warm instance that holds it; a multi-instance deployment needs a shared store.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from oxic_payments.utils.logger import get_logger, log_security_event
from oxic_payments.utils.validators import strip_whitespace

logger = get_logger(__name__)

DEFAULT_ALLOWED_DOMAINS = (
    'oxicinternational.co.ke',
    'www.oxicinternational.co.ke',
    'localhost',
    '127.0.0.1',
    'theoxic.netlify.app',
)

SUSPICIOUS_AMOUNT = 100000

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'X-XSS-Protection': '1; mode=block',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
    'Permissions-Policy': 'geolocation=(), microphone=(), camera=()',
    'Content-Security-Policy': (
        "default-src 'self'; script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; img-src 'self' data: https:; "
        "frame-ancestors 'none'"
    ),
}


@dataclass
class RateLimitEntry:
    count: int
    window_start: float


class RateLimiter:
    """Fixed-window request counter keyed by client identifier."""

    def __init__(self, max_requests: int = 5, window_seconds: float = 60,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._limits: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def is_limited(self, identifier: str) -> bool:
        """Count this request and report whether the key is over its limit."""
        now = self._clock()

        with self._lock:
            entry = self._limits.get(identifier)

            if entry is None or now - entry.window_start > self.window_seconds:
                self._limits[identifier] = RateLimitEntry(count=1, window_start=now)
                return False

            entry.count += 1
            limited = entry.count > self.max_requests

        if limited:
            logger.warning(f'Rate limit exceeded for: {identifier}')
        return limited

    def get_remaining(self, identifier: str) -> int:
        with self._lock:
            entry = self._limits.get(identifier)
            if entry is None or self._clock() - entry.window_start > self.window_seconds:
                return self.max_requests
            return max(0, self.max_requests - entry.count)

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._limits.pop(identifier, None)

    def __len__(self):
        return len(self._limits)


def get_client_ip(request) -> str:
    """Resolve the caller's IP from proxy headers, else the socket peer address."""
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()

    real_ip = request.headers.get('X-Real-IP')
    if real_ip:
        return real_ip

    return request.remote_addr or 'unknown'


def is_valid_origin(origin: Optional[str], referer: Optional[str],
                    allowed_domains: Iterable[str] = DEFAULT_ALLOWED_DOMAINS) -> bool:
    """
    Check the Origin / Referer headers against the domain allow-list.

    Matching is substring containment so subdomains and port suffixes pass.
    Short allow-list entries widen what can slip through.
    """
    allowed_domains = tuple(allowed_domains)
    for header in (origin, referer):
        if header and any(domain in header for domain in allowed_domains):
            return True

    log_security_event('invalid_origin', {'origin': origin, 'referer': referer})
    return False


def detect_suspicious_activity(phone_number: str, amount: float, client_ip: str) -> dict:
    """
    Flag requests worth a second look. Advisory only; callers log, never block.

    Returns:
        Dict with is_suspicious and reason
    """
    if amount > SUSPICIOUS_AMOUNT:
        return {'is_suspicious': True, 'reason': 'Amount exceeds typical transaction size'}

    phone = strip_whitespace(phone_number or '')
    if len(phone) < 10 or len(phone) > 13:
        return {'is_suspicious': True, 'reason': 'Phone number length suspicious'}

    return {'is_suspicious': False, 'reason': None}


def add_security_headers(response):
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response
