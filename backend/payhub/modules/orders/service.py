"""
Order Service - order placement and lookup.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.core.exceptions import OrderNotFound
from payhub.models.order import Order
from payhub.models.user import User
from payhub.modules.orders.repository import OrderRepository


class OrderService:
    """
    Service for placing and reading orders.

    Payment status is not touched here; see PaymentService.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.orders = OrderRepository(db)

    async def create_order(
        self,
        amount: int,
        currency: str,
        user_id: str | None = None,
    ) -> Order:
        """Place a new order in pending status."""
        order = await self.orders.create(amount=amount, currency=currency, user_id=user_id)
        logger.info(f"Created order {order.id} for {order.amount} {order.currency}")
        return order

    async def get_order(self, order_id: str) -> Order:
        """Get order by id or raise OrderNotFound."""
        order = await self.orders.get(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    async def get_order_for(self, order_id: str, user: User) -> Order:
        """
        Get an order the user may act on.

        Other users' orders look like missing ones, except to superusers.
        """
        order = await self.get_order(order_id)
        if order.user_id != user.id and not user.is_superuser:
            raise OrderNotFound(order_id)
        return order

    async def list_orders(
        self,
        user_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Order]:
        return await self.orders.find_all(user_id=user_id, limit=limit, offset=offset)
