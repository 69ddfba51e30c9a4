from flask import current_app

from oxic_payments.services.transaction_manager import TransactionManager
from oxic_payments.utils.security import RateLimiter


def init_app(app, rate_limiter=None, transaction_manager=None):
    """
    Bind the request guard and transaction tracker stores to the app.

    Either store may be injected (tests pass their own with a fake clock);
    otherwise one is built from config and lives as long as the process.
    """
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            max_requests=app.config['RATE_LIMIT_MAX_REQUESTS'],
            window_seconds=app.config['RATE_LIMIT_WINDOW_SECONDS'],
        )

    if transaction_manager is None:
        transaction_manager = TransactionManager(
            prefix=app.config['TRANSACTION_ID_PREFIX'],
            strict_transitions=app.config['TRANSACTION_STRICT_TRANSITIONS'],
        )

    app.extensions['rate_limiter'] = rate_limiter
    app.extensions['transaction_manager'] = transaction_manager


def get_rate_limiter() -> RateLimiter:
    return current_app.extensions['rate_limiter']


def get_transaction_manager() -> TransactionManager:
    return current_app.extensions['transaction_manager']
