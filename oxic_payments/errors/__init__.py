from oxic_payments.errors.exceptions import (
    AppError,
    ValidationError,
    ConfigurationError,
    ProviderRejection,
    ProviderTransportError,
    RateLimitExceeded,
    OriginRejected,
    TransactionNotFound,
)

__all__= [
    'AppError',
    'ValidationError',
    'ConfigurationError',
    'ProviderRejection',
    'ProviderTransportError',
    'RateLimitExceeded',
    'OriginRejected',
    'TransactionNotFound',
]
