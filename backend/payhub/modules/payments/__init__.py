"""
Payments Module - multi-provider payment processing.

Features:
- Uniform provider contract (Stripe, PayPal)
- Provider registry
- Order payment state machine
- Webhook reconciliation and refunds
"""

from payhub.modules.payments.base import PaymentMethod, PaymentProvider, WebhookEvent
from payhub.modules.payments.registry import ProviderRegistry, get_registry
from payhub.modules.payments.service import PaymentService

__all__ = [
    "PaymentMethod",
    "PaymentProvider",
    "PaymentService",
    "ProviderRegistry",
    "WebhookEvent",
    "get_registry",
]
