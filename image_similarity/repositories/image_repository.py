"""Image repository and the database-backed image store."""
import asyncio
import logging
from typing import AsyncIterator, Dict, Any, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from image_similarity.core.clock import MonotonicClock
from image_similarity.core.database import session_scope
from image_similarity.core.exceptions import DimensionMismatchException
from image_similarity.models.database import Image
from image_similarity.models.records import (
    DEFAULT_SOURCE,
    MAX_RECORD_ID,
    ImageCreate,
    ImageRecord,
    validate_image_create,
)
from image_similarity.repositories.base import BaseRepository
from image_similarity.repositories.interfaces import ImageStore

logger = logging.getLogger(__name__)


def in_id_range(image_id: int) -> bool:
    """Check that an id fits the primary key column, so it can be queried."""
    return 1 <= image_id <= MAX_RECORD_ID


class ImageRepository(BaseRepository[Image]):
    """Repository for image operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(Image, db)

    async def get_dimension(self) -> Optional[int]:
        """
        Get the feature vector length shared by stored images.

        Returns:
            Vector dimension or None when no image is stored
        """
        result = await self.db.execute(
            select(Image.vector_dimension).order_by(Image.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def stream_all(self, batch_size: int = 500) -> AsyncIterator[Image]:
        """
        Stream all images in ascending id order.

        Args:
            batch_size: Rows fetched per round trip

        Yields:
            Image rows from a single SELECT
        """
        result = await self.db.stream_scalars(
            select(Image)
            .order_by(Image.id)
            .execution_options(yield_per=batch_size)
        )
        async for image in result:
            yield image


class DatabaseImageStore(ImageStore):
    """Image store persisted through SQLAlchemy."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Optional[MonotonicClock] = None,
        write_lock: Optional[asyncio.Lock] = None
    ):
        """
        Initialize the store.

        Args:
            session_factory: Factory opening one session per operation
            clock: Timestamp source for uploaded_at
            write_lock: Lock serialising writers to the same database
        """
        self.session_factory = session_factory
        self._clock = clock or MonotonicClock()
        self._write_lock = write_lock or asyncio.Lock()

    @property
    def write_lock(self) -> asyncio.Lock:
        """Lock a ledger on the same database must share."""
        return self._write_lock

    async def save(self, image: Union[ImageCreate, Dict[str, Any]]) -> ImageRecord:
        data = validate_image_create(image)
        dimension = len(data.feature_vector)

        async with self._write_lock:
            async with session_scope(self.session_factory) as db:
                repo = ImageRepository(db)

                expected = await repo.get_dimension()
                if expected is not None and expected != dimension:
                    raise DimensionMismatchException(expected=expected, actual=dimension)

                row = await repo.create(Image(
                    filename=data.filename,
                    mime_type=data.mime_type,
                    width=data.width,
                    height=data.height,
                    size=data.size,
                    source=data.source or DEFAULT_SOURCE,
                    vector_dimension=dimension,
                    feature_vector=list(data.feature_vector),
                    image_data=data.image_data,
                    uploaded_at=self._clock.now(),
                ))
                record = ImageRecord.model_validate(row)

        logger.debug(f"Saved image {record.id} ({record.filename}, dim={dimension})")
        return record

    async def get(self, image_id: int) -> Optional[ImageRecord]:
        if not in_id_range(image_id):
            return None
        async with self.session_factory() as db:
            row = await ImageRepository(db).get_by_id(image_id)
            return ImageRecord.model_validate(row) if row is not None else None

    async def get_all(self) -> AsyncIterator[ImageRecord]:
        async with self.session_factory() as db:
            async for row in ImageRepository(db).stream_all():
                yield ImageRecord.model_validate(row)

    async def count(self) -> int:
        async with self.session_factory() as db:
            return await ImageRepository(db).count()

    async def get_dimension(self) -> Optional[int]:
        async with self.session_factory() as db:
            return await ImageRepository(db).get_dimension()
