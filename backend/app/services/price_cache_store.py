"""
Storage for cached upstream price responses
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError
from app.models.price_cache_entry import PriceCacheEntry
from app.schemas.prices import CacheRecord

logger = logging.getLogger(__name__)


class PriceCacheStore(ABC):
    """Key/value rows keyed by normalized product name"""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheRecord]:
        """Return the row for ``key`` whether or not it has expired"""

    @abstractmethod
    async def upsert(self, record: CacheRecord) -> None:
        ...

    @abstractmethod
    async def count_cached_since(self, since: datetime) -> int:
        ...

    @abstractmethod
    async def recent(self, limit: int = 100) -> List[CacheRecord]:
        ...


class DatabasePriceCacheStore(PriceCacheStore):
    """Price cache backed by the price_cache table"""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[CacheRecord]:
        async with self.session_factory() as db:
            try:
                row = await db.get(PriceCacheEntry, key)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to read price cache: {str(e)}") from e
        return CacheRecord.model_validate(row) if row else None

    async def upsert(self, record: CacheRecord) -> None:
        values = record.model_dump()
        stmt = insert(PriceCacheEntry).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["product_name"],
            set_={
                "api_response": stmt.excluded.api_response,
                "cached_at": stmt.excluded.cached_at,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        async with self.session_factory() as db:
            try:
                await db.execute(stmt)
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise StorageError(f"Failed to write price cache: {str(e)}") from e

    async def count_cached_since(self, since: datetime) -> int:
        stmt = select(func.count()).select_from(PriceCacheEntry).where(PriceCacheEntry.cached_at >= since)
        async with self.session_factory() as db:
            try:
                result = await db.execute(stmt)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to count price cache writes: {str(e)}") from e
            return result.scalar_one()

    async def recent(self, limit: int = 100) -> List[CacheRecord]:
        stmt = select(PriceCacheEntry).order_by(desc(PriceCacheEntry.cached_at)).limit(limit)
        async with self.session_factory() as db:
            try:
                result = await db.execute(stmt)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to list price cache: {str(e)}") from e
            return [CacheRecord.model_validate(row) for row in result.scalars().all()]


class InMemoryPriceCacheStore(PriceCacheStore):
    """Process-local price cache for development and tests"""

    def __init__(self):
        self._rows: Dict[str, CacheRecord] = {}

    async def get(self, key: str) -> Optional[CacheRecord]:
        return self._rows.get(key)

    async def upsert(self, record: CacheRecord) -> None:
        self._rows[record.product_name] = record

    async def count_cached_since(self, since: datetime) -> int:
        return sum(1 for row in self._rows.values() if row.cached_at >= since)

    async def recent(self, limit: int = 100) -> List[CacheRecord]:
        rows = sorted(self._rows.values(), key=lambda row: row.cached_at, reverse=True)
        return rows[:limit]
