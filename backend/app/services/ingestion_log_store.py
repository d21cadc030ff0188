"""
Append-only storage for ingestion run logs
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StorageError
from app.models.ingestion_log import IngestionLog
from app.schemas.ingestion import IngestionLogRecord


class IngestionLogStore(ABC):

    @abstractmethod
    async def append(self, entry: IngestionLogRecord) -> None:
        ...

    @abstractmethod
    async def recent(self, limit: int = 20, category: Optional[str] = None) -> List[IngestionLogRecord]:
        """Newest entries first"""


class DatabaseIngestionLogStore(IngestionLogStore):

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def append(self, entry: IngestionLogRecord) -> None:
        async with self.session_factory() as db:
            try:
                db.add(IngestionLog(**entry.model_dump()))
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                raise StorageError(f"Failed to save ingestion log: {str(e)}") from e

    async def recent(self, limit: int = 20, category: Optional[str] = None) -> List[IngestionLogRecord]:
        stmt = select(IngestionLog).order_by(desc(IngestionLog.downloaded_at)).limit(limit)
        if category:
            stmt = stmt.where(IngestionLog.category == category)
        async with self.session_factory() as db:
            try:
                result = await db.execute(stmt)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to load ingestion logs: {str(e)}") from e
            return [IngestionLogRecord.model_validate(row) for row in result.scalars().all()]


class InMemoryIngestionLogStore(IngestionLogStore):

    def __init__(self):
        self.entries: List[IngestionLogRecord] = []

    async def append(self, entry: IngestionLogRecord) -> None:
        self.entries.append(entry)

    async def recent(self, limit: int = 20, category: Optional[str] = None) -> List[IngestionLogRecord]:
        rows = [entry for entry in self.entries if not category or entry.category == category]
        return list(reversed(rows))[:limit]
