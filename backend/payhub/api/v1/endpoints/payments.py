"""
Payment API Endpoints.

Intents, checkout sessions, refunds and provider webhooks.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.api.deps import get_current_user, get_payment_service
from payhub.core.database import get_db
from payhub.models.user import User
from payhub.modules.orders import OrderService
from payhub.modules.payments import PaymentMethod, PaymentService

router = APIRouter()


# ==================== Schemas ====================


class PaymentRequest(BaseModel):
    """Start a payment for an order."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: UUID = Field(alias="orderId")
    payment_method: PaymentMethod | None = Field(default=None, alias="paymentMethod")


class RefundRequest(BaseModel):
    """Request a refund for a paid order."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: UUID = Field(alias="orderId")
    reason: str | None = None


# ==================== Payments ====================


async def _check_order_access(order_id: UUID, user: User, db: AsyncSession) -> str:
    """Raise OrderNotFound unless the caller owns the order or is a superuser."""
    order = await OrderService(db).get_order_for(str(order_id), user)
    return order.id


@router.post("/create-intent")
async def create_payment_intent(
    request: PaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
) -> dict[str, Any]:
    """
    Create a payment intent for an order.

    Returns client_secret (Stripe) or approval_url (PayPal).
    """
    order_id = await _check_order_access(request.order_id, user, db)
    return await payments.create_payment_intent(order_id, request.payment_method)


@router.post("/create-checkout-session")
async def create_checkout_session(
    request: PaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
) -> dict[str, Any]:
    """
    Create a hosted checkout session.

    Returns URL to redirect user for payment.
    """
    order_id = await _check_order_access(request.order_id, user, db)
    return await payments.create_checkout_session(order_id, request.payment_method)


@router.post("/request-refund")
async def request_refund(
    request: RefundRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    payments: PaymentService = Depends(get_payment_service),
) -> dict[str, str]:
    """Refund a paid order through the provider that took the payment."""
    order_id = await _check_order_access(request.order_id, user, db)
    return await payments.request_refund(order_id, request.reason)


@router.get("/methods")
async def get_payment_methods(
    payments: PaymentService = Depends(get_payment_service),
) -> dict[str, list[str]]:
    """List available payment methods."""
    return {"methods": [m.value for m in payments.get_available_payment_methods()]}


# ==================== Redirect landings ====================


@router.get("/success")
async def payment_success(session_id: str | None = Query(None)) -> dict[str, Any]:
    return {"message": "Payment successful", "sessionId": session_id}


@router.get("/cancel")
async def payment_cancel() -> dict[str, str]:
    return {"message": "Payment cancelled"}


@router.get("/paypal/success")
async def paypal_success(
    token: str = Query(..., description="Approved PayPal order id"),
    payments: PaymentService = Depends(get_payment_service),
) -> dict[str, Any]:
    """
    PayPal return URL.

    Captures the approved order; the capture webhook then marks the
    local order as paid.
    """
    capture = await payments.capture_paypal_order(token)
    return {"message": "Payment captured", **capture}


@router.get("/paypal/cancel")
async def paypal_cancel() -> dict[str, str]:
    return {"message": "Payment cancelled"}


# ==================== Webhooks ====================


@router.post("/webhook/{provider}", status_code=200)
async def payment_webhook(
    provider: str,
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
) -> dict[str, Any]:
    """
    Provider webhook endpoint.

    Security:
    - Body is read as raw bytes; signatures are computed over exact bytes
    - Returns 400 on invalid signature so the provider retries delivery
    - Returns 200 on success (including ignored event types)

    Headers Required:
    - stripe-signature (Stripe) or paypal-signature (PayPal)
    """
    body = await request.body()
    signature = request.headers.get(f"{provider.lower()}-signature")

    event = await payments.handle_webhook(body, signature, provider.lower())
    logger.debug(f"Processed {provider} webhook {event.type} ({event.kind.value})")

    return {"received": True, "type": event.type}
