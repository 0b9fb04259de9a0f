"""
Payment provider contract.

Every backend (card processor, wallet processor) implements PaymentProvider.
Amounts crossing this boundary are always integers in the smallest
currency unit; providers convert internally when their API wants
major units.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Callable, TypeVar

from loguru import logger

from payhub.core.exceptions import ProviderError

T = TypeVar("T")


class PaymentMethod(str, Enum):
    """Supported payment providers."""

    STRIPE = "stripe"
    PAYPAL = "paypal"


class WebhookEventKind(str, Enum):
    """Provider-independent meaning of a webhook event."""

    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    CHECKOUT_COMPLETED = "checkout_completed"
    IGNORED = "ignored"


@dataclass
class PaymentIntentResult:
    """Provider transaction started by create_payment_intent."""

    id: str
    client_secret: str | None = None
    approval_url: str | None = None


@dataclass
class CheckoutSessionResult:
    """Hosted checkout redirect."""

    id: str
    url: str


@dataclass
class RefundResult:
    id: str
    status: str


@dataclass
class ProviderProduct:
    id: str
    name: str
    description: str | None = None


@dataclass
class ProviderPrice:
    id: str
    product: str
    unit_amount: int
    currency: str


@dataclass
class WebhookEvent:
    """
    Verified webhook notification.

    Attributes:
        type: Provider-native event type
        kind: Normalized meaning used for order transitions
        transaction_id: Provider transaction the event refers to
        order_id: Local order id, when the provider echoes it back
        payment_reference: Refundable payment id carried by the event
        data: Raw event object
    """

    type: str
    kind: WebhookEventKind
    transaction_id: str | None = None
    order_id: str | None = None
    payment_reference: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class PaymentProvider(ABC):
    """
    Capability set shared by all payment backends.

    Implementations hold configuration only and are shared across
    concurrent requests.
    """

    method: PaymentMethod

    def __init__(self, timeout: float = 15.0) -> None:
        self.timeout = timeout

    def get_provider_name(self) -> str:
        """Identity used for status reporting and matching."""
        return self.method.value

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, Any] | None = None,
    ) -> PaymentIntentResult:
        """Begin a payment; returns a client secret or an approval URL."""

    @abstractmethod
    async def create_checkout_session(
        self,
        amount: int,
        currency: str,
        order_id: str,
    ) -> CheckoutSessionResult:
        """Begin a hosted checkout; returns a redirect URL and session id."""

    @abstractmethod
    async def create_refund(
        self,
        payment_id: str,
        amount: int | None = None,
        reason: str | None = None,
        currency: str | None = None,
    ) -> RefundResult:
        """Refund a captured payment, fully or partially."""

    @abstractmethod
    def verify_webhook(self, raw_body: bytes, signature: str | None) -> WebhookEvent:
        """
        Authenticate a webhook payload and parse it.

        Raises:
            WebhookVerificationError: On bad signature, malformed payload
                or missing signing secret
        """

    @abstractmethod
    async def create_product(
        self,
        name: str,
        description: str | None = None,
    ) -> ProviderProduct:
        """Mirror a catalog product into the provider."""

    @abstractmethod
    async def create_price(
        self,
        product_id: str,
        amount: int,
        currency: str,
    ) -> ProviderPrice:
        """Attach a price to a mirrored product."""

    async def _call(
        self,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run a blocking SDK call in a worker thread, bounded by the timeout.

        A timeout does not mean the call did not happen on the provider side.
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(partial(func, *args, **kwargs)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"{self.get_provider_name()} {operation} timed out after {self.timeout}s")
            raise ProviderError(
                f"{self.get_provider_name()} {operation} timed out; outcome unknown",
                provider=self.get_provider_name(),
                operation=operation,
                outcome_unknown=True,
            ) from e
