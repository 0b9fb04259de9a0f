"""
Order model and payment lifecycle status.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from payhub.core.database import Base


class OrderStatus(str, PyEnum):
    """Order payment status."""

    PENDING = "pending"
    PAYMENT_INTENT_CREATED = "PAYMENT_INTENT_CREATED"
    CHECKOUT_SESSION_CREATED = "CHECKOUT_SESSION_CREATED"
    PAYMENT_SUCCEEDED = "PAYMENT_SUCCEEDED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    REFUND_REQUESTED = "REFUND_REQUESTED"


class Order(Base):
    """
    Customer order.

    Orders are never deleted. The amount is fixed at creation; status and
    provider references are written only by the payment service.
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), index=True)

    # Pricing (smallest currency unit)
    amount: Mapped[int] = mapped_column(Integer)
    currency: Mapped[str] = mapped_column(String(3))

    # Status
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=OrderStatus.PENDING,
    )

    # Payment
    payment_provider: Mapped[str | None] = mapped_column(String(20))
    transaction_id: Mapped[str | None] = mapped_column(String(255), index=True)
    payment_method_id: Mapped[str | None] = mapped_column(String(255))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.status.value}>"
