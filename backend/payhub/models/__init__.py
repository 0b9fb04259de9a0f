"""
ORM models.
"""

from payhub.models.order import Order, OrderStatus
from payhub.models.product import Product
from payhub.models.user import User

__all__ = [
    "Order",
    "OrderStatus",
    "Product",
    "User",
]
