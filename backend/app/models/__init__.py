# Database models

from .product import Product
from .ingestion_log import IngestionLog
from .price_cache_entry import PriceCacheEntry

__all__ = [
    "Product",
    "IngestionLog",
    "PriceCacheEntry",
]
