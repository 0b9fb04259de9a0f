"""
Provider registry - maps payment methods to provider instances.
"""

from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from payhub.core.config import Settings, get_settings
from payhub.core.exceptions import UnsupportedProviderError
from payhub.modules.payments.base import PaymentMethod, PaymentProvider
from payhub.modules.payments.paypal_provider import PayPalProvider
from payhub.modules.payments.stripe_provider import StripeProvider


class ProviderRegistry:
    """
    Static table of pre-built, shared provider instances.

    Usage:
        registry = ProviderRegistry({PaymentMethod.STRIPE: stripe_provider})
        provider = registry.get_provider("stripe")
    """

    def __init__(self, providers: Mapping[PaymentMethod, PaymentProvider]) -> None:
        self._providers = MappingProxyType(dict(providers))

    def get_provider(self, method: PaymentMethod | str) -> PaymentProvider:
        """
        Resolve a payment method to its provider.

        Raises:
            UnsupportedProviderError: If the method is unknown or not registered
        """
        try:
            key = PaymentMethod(method)
        except ValueError as e:
            raise UnsupportedProviderError(method) from e

        provider = self._providers.get(key)
        if provider is None:
            raise UnsupportedProviderError(key.value)
        return provider

    def get_available_providers(self) -> list[PaymentMethod]:
        """Registered methods, in registration order."""
        return list(self._providers)


def build_registry(settings: Settings) -> ProviderRegistry:
    """Construct the provider table from configuration."""
    return ProviderRegistry(
        {
            PaymentMethod.STRIPE: StripeProvider(
                secret_key=settings.stripe_secret_key,
                webhook_secret=settings.stripe_webhook_secret,
                success_url=settings.payment_success_url,
                cancel_url=settings.payment_cancel_url,
                timeout=settings.provider_timeout_seconds,
            ),
            PaymentMethod.PAYPAL: PayPalProvider(
                client_id=settings.paypal_client_id,
                client_secret=settings.paypal_client_secret,
                webhook_secret=settings.paypal_webhook_secret,
                api_base=settings.paypal_api_base,
                return_url=settings.paypal_return_url,
                cancel_url=settings.paypal_cancel_url,
                timeout=settings.provider_timeout_seconds,
            ),
        }
    )


@lru_cache
def get_registry() -> ProviderRegistry:
    """Get cached application-wide registry."""
    return build_registry(get_settings())
