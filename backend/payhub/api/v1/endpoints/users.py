"""
User API Endpoints.

Admin-only account listing and lookup.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.api.deps import require_admin
from payhub.api.v1.endpoints.auth import user_to_dict
from payhub.core.database import get_db
from payhub.core.exceptions import UserNotFound
from payhub.models.user import User
from payhub.modules.users import UserService

router = APIRouter()


@router.get("")
async def get_users(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    users = await UserService(db).list_users(limit=limit, offset=offset)
    return {
        "items": [user_to_dict(u) for u in users],
        "limit": limit,
        "offset": offset,
    }


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get user details."""
    user = await UserService(db).get_user(user_id)
    if not user:
        raise UserNotFound(user_id)
    return user_to_dict(user)
