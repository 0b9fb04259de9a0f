"""
PayPal payment provider.

Talks to the PayPal REST v2 API with httpx:
- Orders (redirect-based approval)
- Capture and refund
- Placeholder catalog objects
- HMAC-signed webhooks

Security Note:
All webhooks MUST be verified using the paypal-signature header
before processing. Never trust unverified payloads.
"""

import hashlib
import hmac
import json
import time
from decimal import Decimal
from typing import Any
from uuid import uuid4

import httpx
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

# PayPal rejects decimals for these currencies
ZERO_DECIMAL_CURRENCIES = {"HUF", "JPY", "TWD"}

SIGNATURE_TOLERANCE_SECONDS = 300


def to_major_units(amount: int, currency: str) -> str:
    """Convert smallest-unit integer to PayPal's decimal string."""
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return str(amount)
    return f"{Decimal(amount) / 100:.2f}"


class PayPalProvider(PaymentProvider):
    """
    PayPal wallet provider.

    Payment intents and checkout sessions are both PayPal orders; the
    buyer approves them at the returned URL.

    Usage:
        paypal = PayPalProvider(client_id, client_secret, webhook_secret)
        result = await paypal.create_payment_intent(1000, "usd", {"orderId": order.id})
        # redirect buyer to result.approval_url
    """

    method = PaymentMethod.PAYPAL

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        webhook_secret: str = "",
        api_base: str = "https://api-m.sandbox.paypal.com",
        return_url: str = "",
        cancel_url: str = "",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout=timeout)
        self.client_id = client_id
        self.client_secret = client_secret
        self.webhook_secret = webhook_secret
        self.api_base = api_base
        self.return_url = return_url
        self.cancel_url = cancel_url
        self._transport = transport

        if not self.client_id or not self.client_secret:
            logger.warning(
                "PayPal credentials not configured. "
                "Set PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET in .env"
            )
        if not self.webhook_secret:
            logger.warning("PAYPAL_WEBHOOK_SECRET not configured. PayPal webhooks will be rejected!")

    # ==================== HTTP ====================

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        """Exchange client credentials for an OAuth2 access token."""
        response = await client.post(
            "/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
        )
        response.raise_for_status()
        return response.json()["access_token"]

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Authenticated PayPal API call.

        Raises:
            ProviderError: On transport errors, timeouts and non-2xx responses
        """
        try:
            async with self._client() as client:
                token = await self._get_access_token(client)
                response = await client.request(
                    method,
                    path,
                    json=json_body,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                        "PayPal-Request-Id": str(uuid4()),
                    },
                )
                response.raise_for_status()
                return response.json()

        except httpx.TimeoutException as e:
            logger.error(f"PayPal {operation} timed out")
            raise ProviderError(
                f"PayPal {operation} timed out; outcome unknown",
                provider=self.get_provider_name(),
                operation=operation,
                outcome_unknown=True,
            ) from e
        except httpx.HTTPStatusError as e:
            message = self._error_message(e.response)
            logger.error(f"PayPal error during {operation}: {message}")
            raise ProviderError(
                f"PayPal {operation} failed: {message}",
                provider=self.get_provider_name(),
                operation=operation,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"PayPal transport error during {operation}: {e}")
            raise ProviderError(
                f"PayPal {operation} failed: {e}",
                provider=self.get_provider_name(),
                operation=operation,
            ) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Pull PayPal's error description out of a failed response."""
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"

        details = body.get("details") or []
        if details and details[0].get("issue"):
            return f"{body.get('message', body.get('name', 'error'))} ({details[0]['issue']})"
        return body.get("message") or body.get("error_description") or f"HTTP {response.status_code}"

    # ==================== Payments ====================

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, Any] | None = None,
    ) -> PaymentIntentResult:
        """
        Create PayPal order awaiting buyer approval.

        Args:
            amount: Amount in smallest currency unit
            currency: Currency code
            metadata: Must carry orderId to reconcile webhooks

        Returns:
            PayPal order id and approval URL
        """
        purchase_unit: dict[str, Any] = {
            "amount": {
                "currency_code": currency.upper(),
                "value": to_major_units(amount, currency),
            },
        }
        order_id = (metadata or {}).get("orderId")
        if order_id:
            purchase_unit["custom_id"] = order_id
            purchase_unit["reference_id"] = order_id

        result = await self._request(
            "create_payment_intent",
            "POST",
            "/v2/checkout/orders",
            {
                "intent": "CAPTURE",
                "purchase_units": [purchase_unit],
                "application_context": {
                    "return_url": self.return_url,
                    "cancel_url": self.cancel_url,
                },
            },
        )

        approval_url = next(
            (link["href"] for link in result.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        return PaymentIntentResult(id=result["id"], approval_url=approval_url)

    async def create_checkout_session(
        self,
        amount: int,
        currency: str,
        order_id: str,
    ) -> CheckoutSessionResult:
        # For PayPal, a checkout session is the same order as a payment intent
        result = await self.create_payment_intent(amount, currency, {"orderId": order_id})
        if not result.approval_url:
            raise ProviderError(
                "Failed to create PayPal approval URL",
                provider=self.get_provider_name(),
                operation="create_checkout_session",
            )
        return CheckoutSessionResult(id=result.id, url=result.approval_url)

    async def capture_order(self, paypal_order_id: str) -> dict[str, Any]:
        """
        Capture an order the buyer has approved.

        Returns:
            Order id, order status and the capture id used for refunds
        """
        result = await self._request(
            "capture_order",
            "POST",
            f"/v2/checkout/orders/{paypal_order_id}/capture",
            {},
        )

        capture_id = None
        for unit in result.get("purchase_units", []):
            captures = (unit.get("payments") or {}).get("captures") or []
            if captures:
                capture_id = captures[0].get("id")
                break

        return {
            "id": result.get("id", paypal_order_id),
            "status": result.get("status"),
            "capture_id": capture_id,
        }

    async def create_refund(
        self,
        payment_id: str,
        amount: int | None = None,
        reason: str | None = None,
        currency: str | None = None,
    ) -> RefundResult:
        body: dict[str, Any] = {"note_to_payer": reason or "Customer requested refund"}
        if amount:
            code = (currency or "USD").upper()
            body["amount"] = {"value": to_major_units(amount, code), "currency_code": code}

        result = await self._request(
            "create_refund",
            "POST",
            f"/v2/payments/captures/{payment_id}/refund",
            body,
        )
        return RefundResult(id=result["id"], status=result.get("status", "PENDING"))

    # ==================== Catalog ====================

    async def create_product(
        self,
        name: str,
        description: str | None = None,
    ) -> ProviderProduct:
        # PayPal prices items inline with orders; ids are local placeholders
        return ProviderProduct(
            id=f"paypal_prod_{uuid4().hex}",
            name=name,
            description=description,
        )

    async def create_price(
        self,
        product_id: str,
        amount: int,
        currency: str,
    ) -> ProviderPrice:
        return ProviderPrice(
            id=f"paypal_price_{uuid4().hex}",
            product=product_id,
            unit_amount=amount,
            currency=currency.upper(),
        )

    # ==================== Webhooks ====================

    def verify_webhook(self, raw_body: bytes, signature: str | None) -> WebhookEvent:
        """
        Verify webhook signature using HMAC-SHA256.

        The signature header format is:
        t=<timestamp>,v1=<hex signature>

        where v1 = HMAC-SHA256(webhook_secret, "<timestamp>." + raw_body)
        """
        if not self.webhook_secret:
            logger.error("PayPal webhook secret not configured")
            raise WebhookVerificationError("PayPal webhook secret not configured")

        if not signature:
            raise WebhookVerificationError("Missing paypal-signature header")

        parts: dict[str, str] = {}
        for part in signature.split(","):
            key, sep, value = part.strip().partition("=")
            if sep:
                parts[key] = value

        expected_sig = parts.get("v1")
        timestamp = parts.get("t")
        try:
            if not expected_sig or not timestamp or not timestamp.isascii():
                raise ValueError(timestamp)
            issued_at = int(timestamp)
        except ValueError as e:
            logger.warning("Invalid paypal-signature header format")
            raise WebhookVerificationError("Invalid paypal-signature header format") from e

        if abs(time.time() - issued_at) > SIGNATURE_TOLERANCE_SECONDS:
            logger.warning("PayPal webhook timestamp outside tolerance")
            raise WebhookVerificationError("PayPal webhook timestamp outside tolerance")

        signed_payload = f"{timestamp}.".encode() + raw_body
        computed = hmac.new(
            self.webhook_secret.encode(),
            signed_payload,
            hashlib.sha256,
        ).hexdigest()

        # Constant-time comparison to prevent timing attacks
        if not hmac.compare_digest(computed, expected_sig):
            logger.warning("PayPal webhook signature verification failed")
            raise WebhookVerificationError("Invalid PayPal webhook signature")

        try:
            payload = json.loads(raw_body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Invalid JSON payload: {e}")
            raise WebhookVerificationError("Invalid PayPal webhook payload") from e

        if not isinstance(payload, dict):
            raise WebhookVerificationError("Invalid PayPal webhook payload")

        return self._to_event(payload)

    def _to_event(self, payload: dict[str, Any]) -> WebhookEvent:
        event_type = payload.get("event_type") or ""
        if not isinstance(event_type, str):
            raise WebhookVerificationError("Invalid PayPal webhook payload")
        resource = _as_dict(payload.get("resource"))

        if event_type == "PAYMENT.CAPTURE.COMPLETED":
            related = _as_dict(_as_dict(resource.get("supplementary_data")).get("related_ids"))
            return WebhookEvent(
                type=event_type,
                kind=WebhookEventKind.PAYMENT_SUCCEEDED,
                transaction_id=_as_id(related.get("order_id")),
                order_id=_as_id(resource.get("custom_id")),
                payment_reference=_as_id(resource.get("id")),
                data=resource,
            )

        if event_type in ("PAYMENT.CAPTURE.DENIED", "PAYMENT.CAPTURE.DECLINED"):
            related = _as_dict(_as_dict(resource.get("supplementary_data")).get("related_ids"))
            return WebhookEvent(
                type=event_type,
                kind=WebhookEventKind.PAYMENT_FAILED,
                transaction_id=_as_id(related.get("order_id")),
                order_id=_as_id(resource.get("custom_id")),
                data=resource,
            )

        if event_type == "CHECKOUT.ORDER.COMPLETED":
            units = _as_list(resource.get("purchase_units"))
            unit = _as_dict(units[0]) if units else {}
            captures = _as_list(_as_dict(unit.get("payments")).get("captures"))
            capture = _as_dict(captures[0]) if captures else {}
            return WebhookEvent(
                type=event_type,
                kind=WebhookEventKind.CHECKOUT_COMPLETED,
                transaction_id=_as_id(resource.get("id")),
                order_id=_as_id(unit.get("custom_id")),
                payment_reference=_as_id(capture.get("id")),
                data=resource,
            )

        logger.debug(f"Unhandled PayPal event type: {event_type}")
        return WebhookEvent(type=event_type, kind=WebhookEventKind.IGNORED, data=resource)


# Webhook resources are untrusted JSON; wrong shapes are rejected
def _as_dict(value: Any) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise WebhookVerificationError("Invalid PayPal webhook payload")
    return value


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise WebhookVerificationError("Invalid PayPal webhook payload")
    return value


def _as_id(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    raise WebhookVerificationError("Invalid PayPal webhook payload")
