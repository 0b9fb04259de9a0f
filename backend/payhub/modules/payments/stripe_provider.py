"""
Stripe payment provider.

Handles:
- Payment intents
- Checkout sessions
- Refunds
- Catalog products and prices
- Webhook verification
"""

import json
from typing import Any

import stripe
from loguru import logger

from payhub.core.exceptions import ProviderError, WebhookVerificationError
from payhub.modules.payments.base import (
    CheckoutSessionResult,
    PaymentIntentResult,
    PaymentMethod,
    PaymentProvider,
    ProviderPrice,
    ProviderProduct,
    RefundResult,
    WebhookEvent,
    WebhookEventKind,
)


def _as_dict(value: Any) -> dict[str, Any]:
    """Treat a missing event section as empty; reject any other non-object."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise WebhookVerificationError("Invalid Stripe webhook payload")
    return value


def _as_id(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise WebhookVerificationError("Invalid Stripe webhook payload")


class StripeProvider(PaymentProvider):
    """
    Stripe card-payment provider.

    Stripe takes amounts in the smallest currency unit, so no conversion
    is needed at this boundary.

    Usage:
        stripe_provider = StripeProvider(secret_key, webhook_secret)
        intent = await stripe_provider.create_payment_intent(1000, "usd")
    """

    method = PaymentMethod.STRIPE

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str = "",
        success_url: str = "",
        cancel_url: str = "",
        timeout: float = 15.0,
    ) -> None:
        super().__init__(timeout=timeout)
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.success_url = success_url
        self.cancel_url = cancel_url

        if not self.secret_key:
            logger.warning("STRIPE_SECRET_KEY not configured. Stripe calls will fail!")
        if not self.webhook_secret:
            logger.warning("STRIPE_WEBHOOK_SECRET not configured. Stripe webhooks will be rejected!")

    async def _request(self, operation: str, func: Any, **params: Any) -> Any:
        """Call a Stripe resource method and wrap SDK errors."""
        try:
            return await self._call(operation, func, api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            message = e.user_message or str(e)
            logger.error(f"Stripe error during {operation}: {message}")
            raise ProviderError(
                f"Stripe {operation} failed: {message}",
                provider=self.get_provider_name(),
                operation=operation,
            ) from e

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, Any] | None = None,
    ) -> PaymentIntentResult:
        intent = await self._request(
            "create_payment_intent",
            stripe.PaymentIntent.create,
            amount=amount,
            currency=currency.lower(),
            metadata=metadata or {},
            automatic_payment_methods={"enabled": True},
        )
        return PaymentIntentResult(id=intent.id, client_secret=intent.client_secret)

    async def create_checkout_session(
        self,
        amount: int,
        currency: str,
        order_id: str,
    ) -> CheckoutSessionResult:
        session = await self._request(
            "create_checkout_session",
            stripe.checkout.Session.create,
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "product_data": {"name": f"Order {order_id}"},
                        "unit_amount": amount,
                    },
                    "quantity": 1,
                }
            ],
            success_url=self.success_url,
            cancel_url=self.cancel_url,
            metadata={"orderId": order_id},
            payment_intent_data={"metadata": {"orderId": order_id}},
        )
        return CheckoutSessionResult(id=session.id, url=session.url)

    async def create_refund(
        self,
        payment_id: str,
        amount: int | None = None,
        reason: str | None = None,
        currency: str | None = None,
    ) -> RefundResult:
        params: dict[str, Any] = {
            "payment_intent": payment_id,
            "reason": "requested_by_customer",
        }
        if amount:
            params["amount"] = amount
        if reason:
            params["metadata"] = {"reason": reason}

        refund = await self._request("create_refund", stripe.Refund.create, **params)
        return RefundResult(id=refund.id, status=refund.status)

    async def create_product(
        self,
        name: str,
        description: str | None = None,
    ) -> ProviderProduct:
        params: dict[str, Any] = {"name": name}
        if description:
            params["description"] = description

        product = await self._request("create_product", stripe.Product.create, **params)
        return ProviderProduct(id=product.id, name=product.name, description=description)

    async def create_price(
        self,
        product_id: str,
        amount: int,
        currency: str,
    ) -> ProviderPrice:
        price = await self._request(
            "create_price",
            stripe.Price.create,
            product=product_id,
            unit_amount=amount,
            currency=currency.lower(),
        )
        return ProviderPrice(
            id=price.id,
            product=product_id,
            unit_amount=amount,
            currency=currency.lower(),
        )

    def verify_webhook(self, raw_body: bytes, signature: str | None) -> WebhookEvent:
        """
        Verify Stripe webhook signature and return event.

        Args:
            raw_body: Raw request body, exactly as received
            signature: stripe-signature header

        Returns:
            Normalized webhook event
        """
        if not self.webhook_secret:
            logger.error("Stripe webhook secret not configured")
            raise WebhookVerificationError("Stripe webhook secret not configured")

        if not signature:
            raise WebhookVerificationError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(raw_body, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid Stripe webhook signature")
            raise WebhookVerificationError("Invalid Stripe webhook signature") from e
        except ValueError as e:
            logger.warning(f"Malformed Stripe webhook payload: {e}")
            raise WebhookVerificationError("Invalid Stripe webhook payload") from e

        payload = json.loads(raw_body)
        return self._to_event(payload)

    def _to_event(self, payload: Any) -> WebhookEvent:
        payload = _as_dict(payload)
        event_type = payload.get("type") or ""
        obj = _as_dict(_as_dict(payload.get("data")).get("object"))
        if not isinstance(event_type, str):
            raise WebhookVerificationError("Invalid Stripe webhook payload")

        if event_type == "payment_intent.succeeded":
            return WebhookEvent(
                type=event_type,
                kind=WebhookEventKind.PAYMENT_SUCCEEDED,
                transaction_id=_as_id(obj.get("id")),
                payment_reference=_as_id(obj.get("id")),
                data=obj,
            )

        if event_type == "payment_intent.payment_failed":
            return WebhookEvent(
                type=event_type,
                kind=WebhookEventKind.PAYMENT_FAILED,
                transaction_id=_as_id(obj.get("id")),
                data=obj,
            )

        if event_type == "checkout.session.completed":
            payment_intent = _as_id(obj.get("payment_intent"))
            metadata = _as_dict(obj.get("metadata"))
            return WebhookEvent(
                type=event_type,
                kind=WebhookEventKind.CHECKOUT_COMPLETED,
                transaction_id=payment_intent,
                order_id=_as_id(metadata.get("orderId")),
                payment_reference=payment_intent,
                data=obj,
            )

        return WebhookEvent(type=event_type, kind=WebhookEventKind.IGNORED, data=obj)
