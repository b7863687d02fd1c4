"""Search history repository and the database-backed ledger."""
import asyncio
import logging
from typing import List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from image_similarity.core.clock import MonotonicClock
from image_similarity.core.database import session_scope
from image_similarity.core.exceptions import (
    DanglingReferenceException,
    IntegrityException,
    ValidationException,
)
from image_similarity.models.database import Image, SearchHistory
from image_similarity.models.records import ImageRecord, SearchHistoryEntry
from image_similarity.repositories.base import BaseRepository
from image_similarity.repositories.image_repository import ImageRepository, in_id_range
from image_similarity.repositories.interfaces import HistoryItem, SearchHistoryLedger

logger = logging.getLogger(__name__)


class SearchHistoryRepository(BaseRepository[SearchHistory]):
    """Repository for search history operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(SearchHistory, db)

    async def get_with_images(self) -> List[Tuple[SearchHistory, Optional[Image]]]:
        """
        Get all entries with their source image, most recent first.

        The join is outer so that an entry whose image vanished is
        returned with None instead of being dropped.

        Returns:
            List of (entry, image or None) pairs
        """
        result = await self.db.execute(
            select(SearchHistory, Image)
            .outerjoin(Image, SearchHistory.source_image_id == Image.id)
            .order_by(SearchHistory.searched_at.desc(), SearchHistory.id.desc())
        )
        return [(entry, image) for entry, image in result.all()]

    async def delete_all(self) -> int:
        """
        Delete every entry.

        Returns:
            Number of deleted rows
        """
        result = await self.db.execute(delete(SearchHistory))
        await self.db.flush()
        return result.rowcount


class DatabaseSearchHistoryLedger(SearchHistoryLedger):
    """Search history persisted through SQLAlchemy."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Optional[MonotonicClock] = None,
        write_lock: Optional[asyncio.Lock] = None
    ):
        """
        Initialize the ledger.

        Args:
            session_factory: Factory opening one session per operation
            clock: Timestamp source for searched_at
            write_lock: Lock shared with the image store of the same database
        """
        self.session_factory = session_factory
        self._clock = clock or MonotonicClock()
        self._write_lock = write_lock or asyncio.Lock()

    async def append(self, source_image_id: int, result_count: int) -> SearchHistoryEntry:
        if result_count < 0:
            raise ValidationException(f"result_count must be non-negative, got {result_count}")

        if not in_id_range(source_image_id):
            raise DanglingReferenceException(source_image_id)

        async with self._write_lock:
            try:
                async with session_scope(self.session_factory) as db:
                    if not await ImageRepository(db).exists(source_image_id):
                        raise DanglingReferenceException(source_image_id)

                    row = await SearchHistoryRepository(db).create(SearchHistory(
                        source_image_id=source_image_id,
                        result_count=result_count,
                        searched_at=self._clock.now(),
                    ))
                    entry = SearchHistoryEntry.model_validate(row)
            except IntegrityError as e:
                # Foreign key rejected the row after the existence check
                raise DanglingReferenceException(source_image_id) from e

        return entry

    async def list_all(self) -> List[HistoryItem]:
        async with self.session_factory() as db:
            rows = await SearchHistoryRepository(db).get_with_images()

            items: List[HistoryItem] = []
            for entry, image in rows:
                if image is None:
                    raise IntegrityException(
                        f"search history entry {entry.id} references missing image "
                        f"{entry.source_image_id}"
                    )
                items.append((
                    SearchHistoryEntry.model_validate(entry),
                    ImageRecord.model_validate(image),
                ))
            return items

    async def clear(self) -> None:
        async with self._write_lock:
            async with session_scope(self.session_factory) as db:
                removed = await SearchHistoryRepository(db).delete_all()
        logger.info(f"Cleared {removed} search history entries")

    async def count(self) -> int:
        async with self.session_factory() as db:
            return await SearchHistoryRepository(db).count()
