"""
Product model with per-provider catalog references.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from payhub.core.database import Base
from payhub.modules.payments.base import PaymentMethod


class Product(Base):
    """
    Product for sale.

    Each provider gets a nullable (product id, price id) column pair.
    Adding a provider means adding its two columns and a PROVIDER_COLUMNS entry.
    """

    __tablename__ = "products"

    PROVIDER_COLUMNS = {
        PaymentMethod.STRIPE: ("stripe_product_id", "stripe_price_id"),
        PaymentMethod.PAYPAL: ("paypal_product_id", "paypal_price_id"),
    }

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)

    # Pricing (smallest currency unit)
    price: Mapped[int] = mapped_column(Integer)
    currency: Mapped[str] = mapped_column(String(3))

    # Provider catalog references
    stripe_product_id: Mapped[str | None] = mapped_column(String(255))
    stripe_price_id: Mapped[str | None] = mapped_column(String(255))
    paypal_product_id: Mapped[str | None] = mapped_column(String(255))
    paypal_price_id: Mapped[str | None] = mapped_column(String(255))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def get_provider_ids(self, method: PaymentMethod) -> tuple[str | None, str | None]:
        """Return (external product id, external price id) for a provider."""
        product_col, price_col = self.PROVIDER_COLUMNS[method]
        return getattr(self, product_col), getattr(self, price_col)

    def set_provider_ids(
        self,
        method: PaymentMethod,
        product_id: str,
        price_id: str,
    ) -> None:
        """Record external ids for one provider; other providers are untouched."""
        product_col, price_col = self.PROVIDER_COLUMNS[method]
        setattr(self, product_col, product_id)
        setattr(self, price_col, price_id)

    def is_synced_to(self, method: PaymentMethod) -> bool:
        """A provider counts as synced only when both ids are present."""
        if method not in self.PROVIDER_COLUMNS:
            return False
        product_id, price_id = self.get_provider_ids(method)
        return bool(product_id and price_id)

    def __repr__(self) -> str:
        return f"<Product {self.id}: {self.name}>"
