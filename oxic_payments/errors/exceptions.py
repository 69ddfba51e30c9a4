class AppError(Exception):
    status_code = 500
    error = "Application error"

    def __init__(self, message, status_code=None):
        super().__init__(message)
        if status_code:
            self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    status_code = 400
    error = "Validation error"


class ConfigurationError(AppError):
    status_code = 503
    error = "Payment service unavailable"


class ProviderRejection(AppError):
    status_code = 400
    error = "Payment rejected"

    def __init__(self, message, response_code=None, status_code=None):
        super().__init__(message, status_code)
        self.response_code = response_code


class ProviderTransportError(AppError):
    status_code = 500
    error = "Failed to contact M-Pesa service. Please try again later."


class RateLimitExceeded(AppError):
    status_code = 429
    error = "Too many requests. Please try again later."


class OriginRejected(AppError):
    status_code = 403
    error = "Unauthorized request origin"


class TransactionNotFound(AppError):
    status_code = 404
    error = "Transaction not found"
