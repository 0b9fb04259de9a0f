"""
Auth API Endpoints.

Registration, login and the current user.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.api.deps import get_current_user
from payhub.core.database import get_db
from payhub.core.security import create_access_token
from payhub.models.user import User
from payhub.modules.users import UserService

router = APIRouter()


# ==================== Schemas ====================


class RegisterRequest(BaseModel):
    """Create account."""

    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)
    phone: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


def user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ==================== Endpoints ====================


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Register a new user account."""
    user = await UserService(db).register(
        name=request.name,
        email=request.email,
        password=request.password,
        phone=request.phone,
    )
    return user_to_dict(user)


@router.post("/login")
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    """Exchange credentials for a bearer token."""
    user = await UserService(db).authenticate(request.email, request.password)
    return {
        "access_token": create_access_token(user.id),
        "token_type": "bearer",
    }


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> dict[str, Any]:
    """Get the authenticated user."""
    return user_to_dict(user)
