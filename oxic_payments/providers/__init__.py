from typing import Dict, Type
from flask import current_app

from oxic_payments.providers.base import PaymentProvider
from oxic_payments.providers.mpesa_provider import (
    DEFAULT_TIMEOUT,
    MPesaProvider,
    get_mpesa_config,
)

# Provider registry
PROVIDERS: Dict[str, Type[PaymentProvider]] = {
    'mpesa': MPesaProvider,
}


def get_provider(provider_name: str = 'mpesa') -> PaymentProvider:
    """
    Get provider instance by name.

    Configuration is re-read from the environment on every call.

    Args:
        provider_name: Name of the provider ('mpesa')

    Returns:
        Initialized provider instance

    Raises:
        ValueError: If provider not found
    """
    provider_class = PROVIDERS.get(provider_name.lower())

    if not provider_class:
        raise ValueError(f'Unknown provider: {provider_name}')

    timeout = current_app.config.get('MPESA_HTTP_TIMEOUT', DEFAULT_TIMEOUT)
    return provider_class(get_mpesa_config(), timeout=timeout)


__all__ = ['get_provider', 'PROVIDERS']
