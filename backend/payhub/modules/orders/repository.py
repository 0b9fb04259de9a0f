"""
Order Store - persistence for orders and their payment status.
"""

from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.models.order import Order, OrderStatus


class OrderRepository:
    """
    Async repository over the orders table.

    Status changes go through transition()/transition_by_transaction_id(),
    which are single conditional UPDATE statements: the write only lands
    if the row is still in one of the expected statuses.

    Usage:
        orders = OrderRepository(db_session)
        order = await orders.create(amount=1000, currency="usd")
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.db = db

    async def create(
        self,
        amount: int,
        currency: str,
        user_id: str | None = None,
    ) -> Order:
        """Create new order in pending status."""
        order = Order(
            amount=amount,
            currency=currency.lower(),
            user_id=user_id,
            status=OrderStatus.PENDING,
        )
        self.db.add(order)
        await self.db.flush()
        return order

    async def get(self, order_id: str) -> Order | None:
        """Get order by id."""
        return await self.db.get(Order, order_id, populate_existing=True)

    async def get_by_transaction_id(self, transaction_id: str) -> Order | None:
        """Get order by provider transaction id."""
        query = (
            select(Order)
            .where(Order.transaction_id == transaction_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def find_all(
        self,
        user_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Order]:
        """Get orders, newest first."""
        query = select(Order)
        if user_id:
            query = query.where(Order.user_id == user_id)
        query = query.order_by(Order.created_at.desc()).limit(limit).offset(offset)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def save(self, order: Order) -> Order:
        """Flush pending changes on an order."""
        self.db.add(order)
        await self.db.flush()
        return order

    async def transition(
        self,
        order_id: str,
        from_statuses: Iterable[OrderStatus],
        to_status: OrderStatus,
        **fields: Any,
    ) -> bool:
        """
        Compare-and-swap an order's status.

        Args:
            order_id: Order to update
            from_statuses: Statuses the order must currently be in
            to_status: New status
            **fields: Extra columns to write in the same statement

        Returns:
            True if the row was updated
        """
        return await self._transition(Order.id == order_id, from_statuses, to_status, fields)

    async def transition_by_transaction_id(
        self,
        transaction_id: str,
        from_statuses: Iterable[OrderStatus],
        to_status: OrderStatus,
        **fields: Any,
    ) -> bool:
        """Compare-and-swap keyed by provider transaction id."""
        return await self._transition(
            Order.transaction_id == transaction_id, from_statuses, to_status, fields
        )

    async def _transition(
        self,
        criterion: Any,
        from_statuses: Iterable[OrderStatus],
        to_status: OrderStatus,
        fields: dict[str, Any],
    ) -> bool:
        if "amount" in fields:
            raise ValueError("Order amount is immutable")

        statement = (
            update(Order)
            .where(criterion, Order.status.in_(list(from_statuses)))
            .values(status=to_status, updated_at=datetime.utcnow(), **fields)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(statement)
        await self.db.flush()
        return result.rowcount > 0
