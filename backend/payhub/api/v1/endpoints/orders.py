"""
Order API Endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.api.deps import get_current_user
from payhub.core.database import get_db
from payhub.models.order import Order
from payhub.models.user import User
from payhub.modules.orders import OrderService

router = APIRouter()


# ==================== Schemas ====================


class CreateOrderRequest(BaseModel):
    """Create new order."""

    amount: int = Field(gt=0, description="Amount in smallest currency unit")
    currency: str = Field(min_length=3, max_length=3)


def order_to_dict(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "amount": order.amount,
        "currency": order.currency,
        "status": order.status.value,
        "payment_provider": order.payment_provider,
        "transaction_id": order.transaction_id,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }


# ==================== Orders ====================


@router.post("", status_code=201)
async def create_order(
    request: CreateOrderRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Place a new order in pending status."""
    order = await OrderService(db).create_order(
        amount=request.amount,
        currency=request.currency,
        user_id=user.id,
    )
    return order_to_dict(order)


@router.get("")
async def get_orders(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get the caller's orders."""
    orders = await OrderService(db).list_orders(user_id=user.id, limit=limit, offset=offset)
    return {
        "items": [order_to_dict(o) for o in orders],
        "limit": limit,
        "offset": offset,
    }


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get order details."""
    order = await OrderService(db).get_order_for(order_id, user)
    return order_to_dict(order)
