from abc import ABC, abstractmethod
from typing import Dict, Any, Optional


class PaymentProvider(ABC):
    """Abstract base class for payment providers"""

    def __init__(self, config: Any):
        """
        Initialize provider with configuration

        Args:
            config: Provider-specific configuration
        """
        self.config = config

    @abstractmethod
    def initialize_payment(
            self,
            amount: float,
            customer_data: Dict[str, Any],
            metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Initiate a payment with the provider

        Args:
            amount: Payment amount in the provider's single currency
            customer_data: Customer information (phone, email, name)
            metadata: Additional metadata (account_reference, transaction_desc, callback_url)

        Returns:
            Dict containing:
                - success: Whether the provider accepted the request
                - error: Caller-safe message when success is False
                - status_code: HTTP status the caller should answer with on failure
                - additional provider-specific fields
        """
        pass


class PaymentProviderError(Exception):
    """Base exception for provider errors"""
    pass


class WebhookProcessingError(PaymentProviderError):
    """Raised when a provider notification cannot be interpreted"""
    pass
