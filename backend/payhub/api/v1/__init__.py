"""
API Version 1 Router.

Combines all API endpoints under /api/v1 prefix.
"""

from fastapi import APIRouter

from payhub.api.v1.endpoints import auth, orders, payments, products, users

router = APIRouter()

# Include endpoint routers
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(orders.router, prefix="/orders", tags=["Orders"])
router.include_router(payments.router, prefix="/payments", tags=["Payments"])
router.include_router(products.router, prefix="/products", tags=["Products"])
router.include_router(users.router, prefix="/users", tags=["Users"])
