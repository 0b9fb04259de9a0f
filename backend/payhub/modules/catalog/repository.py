"""
Product repository.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.models.product import Product


class ProductRepository:
    """Async repository over the products table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(
        self,
        name: str,
        price: int,
        currency: str,
        description: str | None = None,
    ) -> Product:
        """Create product locally, without provider side effects."""
        product = Product(
            name=name,
            description=description,
            price=price,
            currency=currency.lower(),
        )
        self.db.add(product)
        await self.db.flush()
        return product

    async def get(self, product_id: str) -> Product | None:
        return await self.db.get(Product, product_id)

    async def find_all(self, limit: int = 50, offset: int = 0) -> list[Product]:
        query = select(Product).order_by(Product.created_at.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def save(self, product: Product) -> Product:
        self.db.add(product)
        await self.db.flush()
        return product
