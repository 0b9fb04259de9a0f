"""
Shared FastAPI dependencies.
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.core.config import settings
from payhub.core.database import get_db
from payhub.core.exceptions import AuthenticationError, PermissionDenied
from payhub.core.security import decode_access_token
from payhub.models.user import User
from payhub.modules.catalog import CatalogService, ProductRepository
from payhub.modules.orders import OrderRepository
from payhub.modules.payments import PaymentService, ProviderRegistry, get_registry
from payhub.modules.users import UserService

bearer_scheme = HTTPBearer(auto_error=False)


def get_provider_registry() -> ProviderRegistry:
    """Registry dependency; tests override this with fake providers."""
    return get_registry()


def get_payment_service(
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> PaymentService:
    return PaymentService(
        OrderRepository(db),
        registry,
        default_method=settings.default_payment_method,
    )


def get_catalog_service(
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> CatalogService:
    return CatalogService(ProductRepository(db), registry)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user."""
    if not credentials:
        raise AuthenticationError("Missing bearer token")

    payload = decode_access_token(credentials.credentials)
    user = await UserService(db).get_user(payload["sub"])

    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only superusers."""
    if not user.is_superuser:
        raise PermissionDenied()
    return user
