"""
Payment Service - drives orders through the payment state machine.

Handles:
- Payment intents and checkout sessions
- Refunds
- Webhook reconciliation
"""

from typing import Any

from loguru import logger

from payhub.core.exceptions import (
    InvalidOrderState,
    MissingPaymentReference,
    OrderNotFound,
    ProviderError,
    RefundFailed,
    UnsupportedProviderError,
)
from payhub.models.order import Order, OrderStatus
from payhub.modules.orders.repository import OrderRepository
from payhub.modules.payments.base import (
    PaymentMethod,
    PaymentProvider,
    WebhookEvent,
    WebhookEventKind,
)
from payhub.modules.payments.paypal_provider import PayPalProvider
from payhub.modules.payments.registry import ProviderRegistry
from payhub.modules.payments.state import OrderAction, next_status, sources_for, target_for


class PaymentService:
    """
    Provider-agnostic payment orchestration.

    All status writes are conditional on the status the order was read
    in, so concurrent requests and redelivered webhooks cannot both win.

    Usage:
        payments = PaymentService(OrderRepository(db), registry)
        result = await payments.create_payment_intent(order_id)
    """

    def __init__(
        self,
        orders: OrderRepository,
        registry: ProviderRegistry,
        default_method: PaymentMethod | str = PaymentMethod.STRIPE,
    ) -> None:
        self.orders = orders
        self.registry = registry
        self.default_method = PaymentMethod(default_method)

    # ==================== Caller actions ====================

    async def create_payment_intent(
        self,
        order_id: str,
        method: PaymentMethod | str | None = None,
    ) -> dict[str, Any]:
        """
        Start a payment for an order.

        Returns:
            client_secret for pull-model providers, approval_url for
            redirect-model providers
        """
        order, provider, current = await self._prepare(order_id, method, OrderAction.CREATE_INTENT)

        intent = await provider.create_payment_intent(
            order.amount,
            order.currency,
            {"orderId": order.id},
        )
        await self._record_start(
            order, current, OrderStatus.PAYMENT_INTENT_CREATED, provider, intent.id
        )

        return {
            "client_secret": intent.client_secret,
            "approval_url": intent.approval_url,
        }

    async def create_checkout_session(
        self,
        order_id: str,
        method: PaymentMethod | str | None = None,
    ) -> dict[str, Any]:
        """Start a hosted checkout for an order; returns the redirect URL."""
        order, provider, current = await self._prepare(order_id, method, OrderAction.CREATE_CHECKOUT)

        session = await provider.create_checkout_session(order.amount, order.currency, order.id)
        await self._record_start(
            order, current, OrderStatus.CHECKOUT_SESSION_CREATED, provider, session.id
        )

        return {"url": session.url}

    async def request_refund(self, order_id: str, reason: str | None = None) -> dict[str, str]:
        """
        Refund the full amount of a paid order.

        The provider is the one recorded on the order, never a caller choice.

        Raises:
            OrderNotFound: Unknown order
            InvalidOrderState: Order is not in PAYMENT_SUCCEEDED
            MissingPaymentReference: No provider payment id stored
            RefundFailed: Provider rejected the refund
        """
        order = await self._load(order_id)
        next_status(order.status, OrderAction.REFUND)

        if not order.payment_method_id:
            raise MissingPaymentReference()

        provider = self.registry.get_provider(order.payment_provider or "")

        # Claim the refund first; a second concurrent request finds the order
        # already out of PAYMENT_SUCCEEDED
        claimed = await self.orders.transition(
            order.id,
            [OrderStatus.PAYMENT_SUCCEEDED],
            OrderStatus.REFUND_REQUESTED,
        )
        if not claimed:
            raise InvalidOrderState("Order must be paid to request refund")

        try:
            refund = await provider.create_refund(
                order.payment_method_id,
                order.amount,
                reason,
                order.currency,
            )
        except ProviderError as e:
            if e.outcome_unknown:
                # The refund may exist at the provider; keep the claim so it
                # cannot be issued twice. Resolve by hand against the dashboard.
                logger.warning(
                    f"Refund outcome unknown for order {order.id}; left in "
                    f"{OrderStatus.REFUND_REQUESTED.value}: {e.message}"
                )
            else:
                await self.orders.transition(
                    order.id,
                    [OrderStatus.REFUND_REQUESTED],
                    OrderStatus.PAYMENT_SUCCEEDED,
                )
                logger.error(f"Refund creation failed for order {order.id}: {e.message}")
            raise RefundFailed(
                f"Refund creation failed: {e.message}",
                provider=provider.get_provider_name(),
                operation="create_refund",
                outcome_unknown=e.outcome_unknown,
            ) from e

        logger.info(
            f"Refund {refund.id} ({refund.status}) requested for order {order.id} "
            f"via {provider.get_provider_name()}"
        )
        return {"message": "Refund requested successfully"}

    def get_available_payment_methods(self) -> list[PaymentMethod]:
        return self.registry.get_available_providers()

    async def capture_paypal_order(self, paypal_order_id: str) -> dict[str, Any]:
        """
        Capture a PayPal order after buyer approval.

        The order status still moves only when the capture webhook arrives.
        """
        provider = self.registry.get_provider(PaymentMethod.PAYPAL)
        if not isinstance(provider, PayPalProvider):
            raise UnsupportedProviderError(PaymentMethod.PAYPAL.value)

        capture = await provider.capture_order(paypal_order_id)
        logger.info(f"Captured PayPal order {paypal_order_id}: {capture['status']}")
        return capture

    # ==================== Webhooks ====================

    async def handle_webhook(
        self,
        raw_body: bytes,
        signature: str | None,
        method: PaymentMethod | str | None = None,
    ) -> WebhookEvent:
        """
        Verify a provider webhook and apply it to the matching order.

        Unknown event types are accepted and ignored. Events that would move
        an order backwards (or that were already applied) are no-ops.

        Raises:
            WebhookVerificationError: Signature or payload invalid
        """
        provider = self.registry.get_provider(method or self.default_method)
        event = provider.verify_webhook(raw_body, signature)
        logger.info(f"Received {provider.get_provider_name()} webhook: {event.type}")

        if event.kind is WebhookEventKind.PAYMENT_SUCCEEDED:
            fields = {"payment_method_id": event.payment_reference} if event.payment_reference else {}
            await self._apply_by_transaction(event, OrderAction.PAYMENT_SUCCEEDED, **fields)

        elif event.kind is WebhookEventKind.PAYMENT_FAILED:
            await self._apply_by_transaction(event, OrderAction.PAYMENT_FAILED)

        elif event.kind is WebhookEventKind.CHECKOUT_COMPLETED:
            await self._apply_checkout_completed(event)

        else:
            logger.debug(f"Ignoring {provider.get_provider_name()} event {event.type}")

        return event

    async def _apply_by_transaction(
        self,
        event: WebhookEvent,
        action: OrderAction,
        **fields: Any,
    ) -> bool:
        if not event.transaction_id:
            logger.warning(f"Webhook {event.type} carries no transaction id; ignored")
            return False

        target = target_for(action)
        updated = await self.orders.transition_by_transaction_id(
            event.transaction_id,
            sources_for(action),
            target,
            **fields,
        )
        if updated:
            logger.info(f"Order with transaction {event.transaction_id} -> {target.value}")
            return True

        if action is OrderAction.PAYMENT_SUCCEEDED and event.payment_reference:
            # Paid already (e.g. order-completed arrived before the capture):
            # still store the refundable id, status unchanged
            recorded = await self.orders.transition_by_transaction_id(
                event.transaction_id,
                [OrderStatus.PAYMENT_SUCCEEDED],
                OrderStatus.PAYMENT_SUCCEEDED,
                payment_method_id=event.payment_reference,
            )
            if recorded:
                logger.info(
                    f"Recorded payment reference {event.payment_reference} "
                    f"for transaction {event.transaction_id}"
                )
                return False

        logger.debug(f"No order awaiting {target.value} for transaction {event.transaction_id}")
        return False

    async def _apply_checkout_completed(self, event: WebhookEvent) -> bool:
        if not event.order_id:
            logger.warning(f"Webhook {event.type} carries no order id; ignored")
            return False

        # Checkout sessions and payment intents have distinct ids; the real
        # transaction id replaces the session id here. Only an explicit
        # payment reference is refundable, so no fallback to the transaction id.
        fields: dict[str, Any] = {}
        if event.transaction_id:
            fields["transaction_id"] = event.transaction_id
        if event.payment_reference:
            fields["payment_method_id"] = event.payment_reference

        updated = await self.orders.transition(
            event.order_id,
            sources_for(OrderAction.PAYMENT_SUCCEEDED),
            OrderStatus.PAYMENT_SUCCEEDED,
            **fields,
        )
        if updated:
            logger.info(f"Order {event.order_id} -> {OrderStatus.PAYMENT_SUCCEEDED.value} (checkout)")
            return True

        if event.payment_reference:
            await self.orders.transition(
                event.order_id,
                [OrderStatus.PAYMENT_SUCCEEDED],
                OrderStatus.PAYMENT_SUCCEEDED,
                payment_method_id=event.payment_reference,
            )
        logger.debug(f"Checkout completion for order {event.order_id} already applied or not applicable")
        return False

    # ==================== Helpers ====================

    async def _load(self, order_id: str) -> Order:
        order = await self.orders.get(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    async def _prepare(
        self,
        order_id: str,
        method: PaymentMethod | str | None,
        action: OrderAction,
    ) -> tuple[Order, PaymentProvider, OrderStatus]:
        """Load order, resolve provider and check the action is allowed."""
        order = await self._load(order_id)
        provider = self.registry.get_provider(method or self.default_method)
        current = order.status
        next_status(current, action)

        if (
            order.payment_provider
            and order.payment_provider != provider.get_provider_name()
            and current is not OrderStatus.PAYMENT_FAILED
        ):
            raise InvalidOrderState(
                f"Order already has a {order.payment_provider} payment in progress"
            )

        return order, provider, current

    async def _record_start(
        self,
        order: Order,
        current: OrderStatus,
        target: OrderStatus,
        provider: PaymentProvider,
        transaction_id: str,
    ) -> None:
        updated = await self.orders.transition(
            order.id,
            [current],
            target,
            payment_provider=provider.get_provider_name(),
            transaction_id=transaction_id,
            payment_method_id=transaction_id,
        )
        if not updated:
            raise InvalidOrderState(
                f"Order {order.id} changed status while the payment was being created"
            )
        logger.info(
            f"Order {order.id} -> {target.value} via {provider.get_provider_name()} ({transaction_id})"
        )
