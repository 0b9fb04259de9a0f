"""
Product API Endpoints.

Catalog management and provider synchronization.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

from payhub.api.deps import get_catalog_service, require_admin
from payhub.models.product import Product
from payhub.models.user import User
from payhub.modules.catalog import CatalogService, SyncResult, SyncStatus

router = APIRouter()


# ==================== Schemas ====================


class CreateProductRequest(BaseModel):
    """Create new product."""

    name: str = Field(min_length=1)
    description: str | None = None
    price: int = Field(gt=0, description="Price in smallest currency unit")
    currency: str = Field(min_length=3, max_length=3)


class SyncRequest(BaseModel):
    """Providers to sync to; empty means all available."""

    providers: list[str] = Field(default_factory=list)


def product_to_dict(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "currency": product.currency,
        "stripe_product_id": product.stripe_product_id,
        "stripe_price_id": product.stripe_price_id,
        "paypal_product_id": product.paypal_product_id,
        "paypal_price_id": product.paypal_price_id,
        "created_at": product.created_at.isoformat() if product.created_at else None,
    }


def sync_result_to_dict(result: SyncResult) -> dict[str, Any]:
    return {
        "product": product_to_dict(result.product),
        "successfulSyncs": [m.value for m in result.successful_syncs],
        "failedSyncs": [
            {"provider": f.provider, "error": f.error} for f in result.failed_syncs
        ],
    }


def sync_status_to_dict(status: SyncStatus) -> dict[str, Any]:
    return {
        "product": product_to_dict(status.product),
        "syncedProviders": [m.value for m in status.synced_providers],
        "availableProviders": [m.value for m in status.available_providers],
    }


# ==================== Products ====================


@router.post("", status_code=201)
async def create_product(
    request: CreateProductRequest,
    admin: User = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    """Create product locally; syncing is a separate step."""
    product = await catalog.create_product(
        name=request.name,
        price=request.price,
        currency=request.currency,
        description=request.description,
    )
    return product_to_dict(product)


@router.get("")
async def get_products(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    products = await catalog.list_products(limit=limit, offset=offset)
    return {
        "items": [product_to_dict(p) for p in products],
        "limit": limit,
        "offset": offset,
    }


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    product = await catalog.get_product(product_id)
    return product_to_dict(product)


# ==================== Sync ====================


@router.post("/{product_id}/sync")
async def sync_product(
    product_id: str,
    request: SyncRequest,
    admin: User = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service),
) -> ORJSONResponse:
    """
    Sync product to payment providers.

    Returns 200 when every provider succeeded, 400 with the full
    success/failure breakdown otherwise. Successful ids are kept either way.
    """
    result = await catalog.sync_to_providers(product_id, request.providers)
    payload = sync_result_to_dict(result)

    if result.ok:
        return ORJSONResponse(
            {"message": "Product synced successfully", **payload},
        )

    message = (
        "Product sync partially failed" if result.successful_syncs else "Product sync failed"
    )
    return ORJSONResponse({"message": message, **payload}, status_code=400)


@router.get("/{product_id}/sync-status")
async def get_sync_status(
    product_id: str,
    catalog: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    status = await catalog.get_sync_status(product_id)
    return sync_status_to_dict(status)
