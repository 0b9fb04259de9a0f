"""
Catalog Module - products and provider synchronization.
"""

from payhub.modules.catalog.repository import ProductRepository
from payhub.modules.catalog.sync import CatalogService, SyncFailure, SyncResult, SyncStatus

__all__ = [
    "CatalogService",
    "ProductRepository",
    "SyncFailure",
    "SyncResult",
    "SyncStatus",
]
