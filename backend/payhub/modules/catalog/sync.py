"""
Catalog Service - local products and their mirrors in payment providers.
"""

from dataclasses import dataclass, field
from typing import Iterable

from loguru import logger

from payhub.core.exceptions import PayHubError, ProductNotFound
from payhub.models.product import Product
from payhub.modules.catalog.repository import ProductRepository
from payhub.modules.payments.base import PaymentMethod
from payhub.modules.payments.registry import ProviderRegistry


@dataclass
class SyncFailure:
    provider: str
    error: str


@dataclass
class SyncResult:
    """Per-provider outcome of a catalog sync."""

    product: Product
    successful_syncs: list[PaymentMethod] = field(default_factory=list)
    failed_syncs: list[SyncFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_syncs


@dataclass
class SyncStatus:
    product: Product
    synced_providers: list[PaymentMethod]
    available_providers: list[PaymentMethod]


class CatalogService:
    """
    Service for managing products and syncing them to providers.

    Usage:
        catalog = CatalogService(ProductRepository(db), registry)
        result = await catalog.sync_to_providers(product_id, ["stripe", "paypal"])
    """

    def __init__(self, products: ProductRepository, registry: ProviderRegistry) -> None:
        self.products = products
        self.registry = registry

    # ==================== Products ====================

    async def create_product(
        self,
        name: str,
        price: int,
        currency: str,
        description: str | None = None,
    ) -> Product:
        """Create product in local database only (no auto-sync)."""
        product = await self.products.create(
            name=name,
            price=price,
            currency=currency,
            description=description,
        )
        logger.info(f"Created product {product.id}: {product.name}")
        return product

    async def get_product(self, product_id: str) -> Product:
        product = await self.products.get(product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    async def list_products(self, limit: int = 50, offset: int = 0) -> list[Product]:
        return await self.products.find_all(limit=limit, offset=offset)

    # ==================== Sync ====================

    async def sync_to_providers(
        self,
        product_id: str,
        providers: Iterable[PaymentMethod | str] | None = None,
    ) -> SyncResult:
        """
        Mirror a product and its price into each requested provider.

        Providers are processed in the given order. A failure is recorded
        for that provider and does not stop the others. The product is
        saved once, with whatever ids were obtained.

        Args:
            product_id: Local product id
            providers: Methods to sync to; all registered providers if empty

        Returns:
            Product with the per-provider success/failure breakdown

        Raises:
            ProductNotFound: If the product does not exist
        """
        product = await self.get_product(product_id)
        requested = list(providers or self.registry.get_available_providers())
        result = SyncResult(product=product)

        for requested_method in requested:
            name = getattr(requested_method, "value", requested_method)
            logger.info(f"Syncing product {product_id} to {name}...")

            try:
                provider = self.registry.get_provider(requested_method)
                method = provider.method

                provider_product = await provider.create_product(product.name, product.description)
                logger.info(
                    f"Created product in {name}: {provider_product.id} (local {product.name})"
                )

                provider_price = await provider.create_price(
                    provider_product.id,
                    product.price,
                    product.currency,
                )
                logger.info(
                    f"Created price in {name}: {provider_price.id} "
                    f"({product.price} {product.currency})"
                )

                product.set_provider_ids(method, provider_product.id, provider_price.id)

            except PayHubError as e:
                logger.error(f"Failed to sync product {product_id} to {name}: {e.message}")
                result.failed_syncs.append(SyncFailure(provider=str(name), error=e.message))
                continue
            except Exception as e:
                logger.exception(f"Unexpected error syncing product {product_id} to {name}")
                result.failed_syncs.append(
                    SyncFailure(provider=str(name), error=str(e) or "Unknown error")
                )
                continue

            result.successful_syncs.append(method)

        result.product = await self.products.save(product)

        logger.info(
            f"Sync summary for product {product_id}: "
            f"{len(result.successful_syncs)}/{len(requested)} succeeded, "
            f"failed={[f.provider for f in result.failed_syncs]}"
        )
        return result

    async def get_sync_status(self, product_id: str) -> SyncStatus:
        """
        Report which providers hold both a product id and a price id.

        Raises:
            ProductNotFound: If the product does not exist
        """
        product = await self.get_product(product_id)
        available = self.registry.get_available_providers()

        return SyncStatus(
            product=product,
            synced_providers=[method for method in available if product.is_synced_to(method)],
            available_providers=available,
        )
