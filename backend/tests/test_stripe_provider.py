"""
Tests for StripeProvider.

SDK calls are patched; webhook tests sign payloads the same way Stripe does.
"""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe

from payhub.core.exceptions import ProviderError, WebhookVerificationError
from payhub.modules.payments.base import WebhookEventKind
from payhub.modules.payments.stripe_provider import StripeProvider

WEBHOOK_SECRET = "whsec_unit_test"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def event_body(event_type: str, obj: dict) -> bytes:
    return json.dumps(
        {"id": "evt_1", "object": "event", "type": event_type, "data": {"object": obj}}
    ).encode()


@pytest.fixture
def provider() -> StripeProvider:
    return StripeProvider(
        secret_key="sk_test_123",
        webhook_secret=WEBHOOK_SECRET,
        success_url="https://shop.example/success",
        cancel_url="https://shop.example/cancel",
        timeout=1.0,
    )


class TestPayments:
    async def test_create_payment_intent(self, provider, mocker):
        create = mocker.patch(
            "stripe.PaymentIntent.create",
            return_value=SimpleNamespace(id="pi_1", client_secret="pi_1_secret"),
        )

        result = await provider.create_payment_intent(1000, "USD", {"orderId": "o-1"})

        assert result.id == "pi_1"
        assert result.client_secret == "pi_1_secret"
        assert result.approval_url is None
        create.assert_called_once_with(
            api_key="sk_test_123",
            amount=1000,
            currency="usd",
            metadata={"orderId": "o-1"},
            automatic_payment_methods={"enabled": True},
        )

    async def test_create_checkout_session(self, provider, mocker):
        create = mocker.patch(
            "stripe.checkout.Session.create",
            return_value=SimpleNamespace(id="cs_1", url="https://checkout.stripe.com/cs_1"),
        )

        result = await provider.create_checkout_session(2500, "eur", "o-2")

        assert result.url == "https://checkout.stripe.com/cs_1"
        kwargs = create.call_args.kwargs
        assert kwargs["mode"] == "payment"
        assert kwargs["metadata"] == {"orderId": "o-2"}
        assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 2500
        assert kwargs["line_items"][0]["price_data"]["product_data"]["name"] == "Order o-2"
        assert kwargs["success_url"] == "https://shop.example/success"

    async def test_create_refund(self, provider, mocker):
        create = mocker.patch(
            "stripe.Refund.create",
            return_value=SimpleNamespace(id="re_1", status="succeeded"),
        )

        result = await provider.create_refund("pi_1", 1000, "damaged", "usd")

        assert result.status == "succeeded"
        create.assert_called_once_with(
            api_key="sk_test_123",
            payment_intent="pi_1",
            reason="requested_by_customer",
            amount=1000,
            metadata={"reason": "damaged"},
        )

    async def test_sdk_error_becomes_provider_error(self, provider, mocker):
        mocker.patch(
            "stripe.Refund.create",
            side_effect=stripe.InvalidRequestError("No such payment_intent", "payment_intent"),
        )

        with pytest.raises(ProviderError) as exc_info:
            await provider.create_refund("pi_missing", 1000)

        assert exc_info.value.provider == "stripe"
        assert exc_info.value.operation == "create_refund"
        assert "No such payment_intent" in exc_info.value.message

    async def test_timeout_becomes_provider_error(self, mocker):
        provider = StripeProvider(secret_key="sk_test_123", timeout=0.05)
        mocker.patch("stripe.PaymentIntent.create", side_effect=lambda **_: time.sleep(0.3))

        with pytest.raises(ProviderError, match="outcome unknown"):
            await provider.create_payment_intent(1000, "usd")


class TestCatalog:
    async def test_create_product_and_price(self, provider, mocker):
        mocker.patch(
            "stripe.Product.create",
            return_value=SimpleNamespace(id="prod_1", name="Widget"),
        )
        create_price = mocker.patch(
            "stripe.Price.create",
            return_value=SimpleNamespace(id="price_1"),
        )

        product = await provider.create_product("Widget", "A widget")
        price = await provider.create_price(product.id, 1999, "USD")

        assert product.id == "prod_1"
        assert price.id == "price_1"
        assert price.currency == "usd"
        create_price.assert_called_once_with(
            api_key="sk_test_123", product="prod_1", unit_amount=1999, currency="usd"
        )


class TestWebhooks:
    def test_payment_succeeded(self, provider):
        body = event_body("payment_intent.succeeded", {"id": "pi_1", "object": "payment_intent"})

        event = provider.verify_webhook(body, sign(body))

        assert event.kind is WebhookEventKind.PAYMENT_SUCCEEDED
        assert event.transaction_id == "pi_1"
        assert event.payment_reference == "pi_1"

    def test_payment_failed(self, provider):
        body = event_body("payment_intent.payment_failed", {"id": "pi_2"})

        event = provider.verify_webhook(body, sign(body))

        assert event.kind is WebhookEventKind.PAYMENT_FAILED
        assert event.transaction_id == "pi_2"

    def test_checkout_completed(self, provider):
        body = event_body(
            "checkout.session.completed",
            {"id": "cs_1", "payment_intent": "pi_3", "metadata": {"orderId": "o-3"}},
        )

        event = provider.verify_webhook(body, sign(body))

        assert event.kind is WebhookEventKind.CHECKOUT_COMPLETED
        assert event.order_id == "o-3"
        assert event.transaction_id == "pi_3"

    def test_unknown_type_is_ignored(self, provider):
        body = event_body("customer.created", {"id": "cus_1"})

        event = provider.verify_webhook(body, sign(body))

        assert event.kind is WebhookEventKind.IGNORED
        assert event.type == "customer.created"

    def test_wrong_secret_rejected(self, provider):
        body = event_body("payment_intent.succeeded", {"id": "pi_1"})

        with pytest.raises(WebhookVerificationError):
            provider.verify_webhook(body, sign(body, secret="whsec_other"))

    def test_tampered_body_rejected(self, provider):
        body = event_body("payment_intent.succeeded", {"id": "pi_1"})
        signature = sign(body)
        tampered = event_body("payment_intent.succeeded", {"id": "pi_other"})

        with pytest.raises(WebhookVerificationError):
            provider.verify_webhook(tampered, signature)

    def test_stale_timestamp_rejected(self, provider):
        body = event_body("payment_intent.succeeded", {"id": "pi_1"})

        with pytest.raises(WebhookVerificationError):
            provider.verify_webhook(body, sign(body, timestamp=int(time.time()) - 3600))

    def test_missing_signature_rejected(self, provider):
        with pytest.raises(WebhookVerificationError, match="Missing"):
            provider.verify_webhook(b"{}", None)

    def test_missing_secret_rejected(self):
        provider = StripeProvider(secret_key="sk_test_123", webhook_secret="")
        body = event_body("payment_intent.succeeded", {"id": "pi_1"})

        with pytest.raises(WebhookVerificationError, match="not configured"):
            provider.verify_webhook(body, sign(body))

    @pytest.mark.parametrize(
        "payload",
        [
            {"id": "evt_1", "type": "payment_intent.succeeded", "data": "pi_1"},
            {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": "pi_1"}},
            {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"id": 42}}},
            {
                "id": "evt_1",
                "type": "checkout.session.completed",
                "data": {"object": {"id": "cs_1", "metadata": ["o-1"]}},
            },
        ],
    )
    def test_signed_payload_with_wrong_shape_rejected(self, provider, payload):
        body = json.dumps(payload).encode()

        with pytest.raises(WebhookVerificationError, match="payload"):
            provider.verify_webhook(body, sign(body))
