"""
Orders Module - order placement and the order store.
"""

from payhub.modules.orders.repository import OrderRepository
from payhub.modules.orders.service import OrderService

__all__ = [
    "OrderRepository",
    "OrderService",
]
