"""
Category-partitioned product storage

``ProductStore`` defines the operations the ingestion pipeline and the search
engine rely on. ``replace_partition`` always deletes the category's rows
before inserting the new ones, batch by batch; a failed batch stops the
replace and leaves the partition partially filled.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError
from app.models.product import Product
from app.schemas.products import ProductRecord

logger = logging.getLogger(__name__)


class SearchMode(str, Enum):
    EXACT = "exact"        # case-insensitive equality
    CONTAINS = "contains"  # case-insensitive substring
    FULLTEXT = "fulltext"  # native full text search


class ProductStore(ABC):
    """Product table, partitioned by category"""

    async def replace_partition(
        self,
        category: str,
        products: Sequence[ProductRecord],
        batch_size: int = 1000,
    ) -> int:
        """Delete every row of ``category`` then insert ``products``

        Returns the number of inserted rows. Raises StorageError carrying the
        count inserted so far when the delete or a batch insert fails.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        await self._delete_partition(category)
        logger.info(f"Cleared existing products for category {category}")

        inserted = 0
        for start in range(0, len(products), batch_size):
            batch = list(products[start:start + batch_size])
            try:
                await self._insert_batch(batch)
            except StorageError as e:
                e.inserted = inserted
                logger.error(
                    f"Insert failed for {category} batch {start}-{start + len(batch)} "
                    f"after {inserted} rows: {e.message}"
                )
                raise
            inserted += len(batch)
            logger.info(f"Inserted {category} batch {start}-{start + len(batch)} ({len(batch)} products)")

        return inserted

    @abstractmethod
    async def _delete_partition(self, category: str) -> None:
        ...

    @abstractmethod
    async def _insert_batch(self, products: List[ProductRecord]) -> None:
        """Insert one batch atomically"""

    @abstractmethod
    async def find_by_id(self, product_id: str, category: Optional[str] = None) -> Optional[ProductRecord]:
        ...

    @abstractmethod
    async def search(
        self,
        term: str,
        mode: SearchMode,
        category: Optional[str] = None,
        limit: int = 50,
    ) -> List[ProductRecord]:
        ...

    @abstractmethod
    async def count_by_category(self) -> Dict[str, int]:
        ...


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DatabaseProductStore(ProductStore):
    """Product store backed by the price_charting_products table"""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def _delete_partition(self, category: str) -> None:
        async with self.session_factory() as db:
            try:
                await db.execute(delete(Product).where(Product.category == category))
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise StorageError(f"Failed to clear category {category}: {str(e)}") from e

    async def _insert_batch(self, products: List[ProductRecord]) -> None:
        if not products:
            return
        async with self.session_factory() as db:
            try:
                await db.execute(insert(Product), [product.model_dump() for product in products])
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise StorageError(f"Failed to insert products: {str(e)}") from e

    async def find_by_id(self, product_id: str, category: Optional[str] = None) -> Optional[ProductRecord]:
        stmt = select(Product).where(Product.product_id == product_id)
        if category:
            stmt = stmt.where(Product.category == category)

        async with self.session_factory() as db:
            try:
                result = await db.execute(stmt.limit(1))
                row = result.scalars().first()
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to load product {product_id}: {str(e)}") from e

        return ProductRecord.model_validate(row) if row else None

    async def search(
        self,
        term: str,
        mode: SearchMode,
        category: Optional[str] = None,
        limit: int = 50,
    ) -> List[ProductRecord]:
        stmt = select(Product)

        if mode is SearchMode.EXACT:
            stmt = stmt.where(Product.product_name.ilike(_escape_like(term), escape="\\"))
        elif mode is SearchMode.CONTAINS:
            stmt = stmt.where(Product.product_name.ilike(f"%{_escape_like(term)}%", escape="\\"))
        else:
            stmt = stmt.where(
                func.to_tsvector("english", Product.product_name).op("@@")(
                    func.websearch_to_tsquery("english", term)
                )
            )

        if category:
            stmt = stmt.where(Product.category == category)

        async with self.session_factory() as db:
            try:
                result = await db.execute(stmt.limit(limit))
                rows = result.scalars().all()
            except SQLAlchemyError as e:
                raise StorageError(f"Product search failed for '{term}' ({mode.value}): {str(e)}") from e

        return [ProductRecord.model_validate(row) for row in rows]

    async def count_by_category(self) -> Dict[str, int]:
        stmt = select(Product.category, func.count()).group_by(Product.category)
        async with self.session_factory() as db:
            try:
                result = await db.execute(stmt)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to count products: {str(e)}") from e
            return {category: count for category, count in result.all()}


class InMemoryProductStore(ProductStore):
    """Process-local product store for development and tests"""

    def __init__(self):
        self._partitions: Dict[str, List[ProductRecord]] = {}

    async def _delete_partition(self, category: str) -> None:
        self._partitions[category] = []

    async def _insert_batch(self, products: List[ProductRecord]) -> None:
        for product in products:
            self._partitions.setdefault(product.category, []).append(product)

    def _rows(self, category: Optional[str]) -> List[ProductRecord]:
        if category:
            return list(self._partitions.get(category, []))
        return [row for rows in self._partitions.values() for row in rows]

    async def find_by_id(self, product_id: str, category: Optional[str] = None) -> Optional[ProductRecord]:
        for row in self._rows(category):
            if row.product_id == product_id:
                return row
        return None

    async def search(
        self,
        term: str,
        mode: SearchMode,
        category: Optional[str] = None,
        limit: int = 50,
    ) -> List[ProductRecord]:
        needle = term.lower()
        words = needle.split()

        def matches(row: ProductRecord) -> bool:
            name = row.product_name.lower()
            if mode is SearchMode.EXACT:
                return name == needle
            if mode is SearchMode.CONTAINS:
                return needle in name
            return bool(words) and all(word in name.split() for word in words)

        return [row for row in self._rows(category) if matches(row)][:limit]

    async def count_by_category(self) -> Dict[str, int]:
        return {category: len(rows) for category, rows in self._partitions.items() if rows}
