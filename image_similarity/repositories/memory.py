"""In-memory store and ledger for tests and small deployments."""
import asyncio
import itertools
import logging
from typing import AsyncIterator, Dict, Any, List, Optional, Union

from image_similarity.core.clock import MonotonicClock
from image_similarity.core.exceptions import (
    DanglingReferenceException,
    DimensionMismatchException,
    IntegrityException,
    ValidationException,
)
from image_similarity.models.records import (
    DEFAULT_SOURCE,
    ImageCreate,
    ImageRecord,
    SearchHistoryEntry,
    validate_image_create,
)
from image_similarity.repositories.interfaces import HistoryItem, ImageStore, SearchHistoryLedger

logger = logging.getLogger(__name__)


class MemoryImageStore(ImageStore):
    """Dictionary-backed image store."""

    def __init__(self, clock: Optional[MonotonicClock] = None):
        self._images: Dict[int, ImageRecord] = {}
        self._ids = itertools.count(1)
        self._dimension: Optional[int] = None
        self._clock = clock or MonotonicClock()
        self._lock = asyncio.Lock()

    async def save(self, image: Union[ImageCreate, Dict[str, Any]]) -> ImageRecord:
        data = validate_image_create(image)

        async with self._lock:
            dimension = len(data.feature_vector)
            if self._dimension is not None and dimension != self._dimension:
                raise DimensionMismatchException(expected=self._dimension, actual=dimension)

            record = ImageRecord(
                **data.model_dump(exclude={"source"}),
                id=next(self._ids),
                source=data.source or DEFAULT_SOURCE,
                uploaded_at=self._clock.now(),
            )
            self._images[record.id] = record
            if self._dimension is None:
                self._dimension = dimension

        logger.debug(f"Saved image {record.id} ({record.filename}, dim={dimension})")
        return record

    async def get(self, image_id: int) -> Optional[ImageRecord]:
        return self._images.get(image_id)

    async def get_all(self) -> AsyncIterator[ImageRecord]:
        async with self._lock:
            snapshot = list(self._images.values())
        for record in snapshot:
            yield record

    async def count(self) -> int:
        return len(self._images)

    async def get_dimension(self) -> Optional[int]:
        return self._dimension


class MemorySearchHistoryLedger(SearchHistoryLedger):
    """List-backed search history over any image store."""

    def __init__(self, images: ImageStore, clock: Optional[MonotonicClock] = None):
        self.images = images
        self._entries: List[SearchHistoryEntry] = []
        # Never reset, so ids survive a clear() without reuse
        self._ids = itertools.count(1)
        self._clock = clock or MonotonicClock()
        self._lock = asyncio.Lock()

    async def append(self, source_image_id: int, result_count: int) -> SearchHistoryEntry:
        if result_count < 0:
            raise ValidationException(f"result_count must be non-negative, got {result_count}")
        if await self.images.get(source_image_id) is None:
            raise DanglingReferenceException(source_image_id)

        async with self._lock:
            entry = SearchHistoryEntry(
                id=next(self._ids),
                source_image_id=source_image_id,
                result_count=result_count,
                searched_at=self._clock.now(),
            )
            self._entries.append(entry)
        return entry

    async def list_all(self) -> List[HistoryItem]:
        async with self._lock:
            entries = sorted(
                self._entries,
                key=lambda entry: (entry.searched_at, entry.id),
                reverse=True,
            )

        items: List[HistoryItem] = []
        for entry in entries:
            image = await self.images.get(entry.source_image_id)
            if image is None:
                raise IntegrityException(
                    f"search history entry {entry.id} references missing image "
                    f"{entry.source_image_id}"
                )
            items.append((entry, image))
        return items

    async def clear(self) -> None:
        async with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {removed} search history entries")

    async def count(self) -> int:
        return len(self._entries)
