"""
Order payment state machine.

Every status change goes through this table. Webhook handlers use the
"from" sets to build conditional updates, so redelivered or
out-of-order events never move an order backwards.
"""

from enum import Enum

from payhub.core.exceptions import InvalidOrderState
from payhub.models.order import OrderStatus


class OrderAction(str, Enum):
    """Events that can move an order between statuses."""

    CREATE_INTENT = "create_intent"
    CREATE_CHECKOUT = "create_checkout"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    REFUND = "refund"


_AWAITING_PAYMENT = (
    OrderStatus.PAYMENT_INTENT_CREATED,
    OrderStatus.CHECKOUT_SESSION_CREATED,
)

# A failed payment can be retried; everything past success is final
_STARTABLE = (OrderStatus.PENDING, *_AWAITING_PAYMENT, OrderStatus.PAYMENT_FAILED)

TRANSITIONS: dict[OrderAction, dict[OrderStatus, OrderStatus]] = {
    OrderAction.CREATE_INTENT: {
        status: OrderStatus.PAYMENT_INTENT_CREATED for status in _STARTABLE
    },
    OrderAction.CREATE_CHECKOUT: {
        status: OrderStatus.CHECKOUT_SESSION_CREATED for status in _STARTABLE
    },
    OrderAction.PAYMENT_SUCCEEDED: {
        OrderStatus.PAYMENT_INTENT_CREATED: OrderStatus.PAYMENT_SUCCEEDED,
        OrderStatus.CHECKOUT_SESSION_CREATED: OrderStatus.PAYMENT_SUCCEEDED,
        OrderStatus.PAYMENT_FAILED: OrderStatus.PAYMENT_SUCCEEDED,
        OrderStatus.PAYMENT_SUCCEEDED: OrderStatus.PAYMENT_SUCCEEDED,
    },
    OrderAction.PAYMENT_FAILED: {
        OrderStatus.PAYMENT_INTENT_CREATED: OrderStatus.PAYMENT_FAILED,
        OrderStatus.CHECKOUT_SESSION_CREATED: OrderStatus.PAYMENT_FAILED,
        OrderStatus.PAYMENT_FAILED: OrderStatus.PAYMENT_FAILED,
    },
    OrderAction.REFUND: {
        OrderStatus.PAYMENT_SUCCEEDED: OrderStatus.REFUND_REQUESTED,
    },
}

_REJECTION_MESSAGES = {
    OrderAction.REFUND: "Order must be paid to request refund",
}


def next_status(current: OrderStatus, action: OrderAction) -> OrderStatus:
    """
    Resolve the status an action leads to.

    Raises:
        InvalidOrderState: If the action is not allowed from current
    """
    target = TRANSITIONS[action].get(current)
    if target is None:
        message = _REJECTION_MESSAGES.get(
            action,
            f"Cannot {action.value.replace('_', ' ')} for order in status {current.value}",
        )
        raise InvalidOrderState(message)
    return target


def target_for(action: OrderAction) -> OrderStatus:
    """Status an action leads to, whatever the source."""
    (target,) = set(TRANSITIONS[action].values())
    return target


def sources_for(action: OrderAction, exclude_noop: bool = True) -> tuple[OrderStatus, ...]:
    """
    Statuses an action may be applied from.

    With exclude_noop, statuses the action maps onto themselves are left
    out, so a conditional update skips orders already in the target state.
    """
    return tuple(
        source
        for source, target in TRANSITIONS[action].items()
        if not (exclude_noop and source == target)
    )
