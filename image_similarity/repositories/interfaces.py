"""Storage contracts shared by the in-memory and database backends."""
from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, Any, List, Optional, Tuple, Union

from image_similarity.models.records import (
    ImageCreate,
    ImageRecord,
    SearchHistoryEntry,
)

HistoryItem = Tuple[SearchHistoryEntry, ImageRecord]


class ImageStore(ABC):
    """Holds image records together with their feature vectors.

    Records are never updated or deleted. Every record in one store has
    the same feature vector length; the first saved record fixes it.
    """

    @abstractmethod
    async def save(self, image: Union[ImageCreate, Dict[str, Any]]) -> ImageRecord:
        """
        Commit a new image record.

        Args:
            image: Record fields without id and timestamp

        Returns:
            The committed record with id, uploaded_at and source filled in

        Raises:
            ValidationException: If a field is missing, empty or negative
            DimensionMismatchException: If the vector length differs from the store's
        """

    @abstractmethod
    async def get(self, image_id: int) -> Optional[ImageRecord]:
        """Return the record with this id, or None if there is none."""

    @abstractmethod
    def get_all(self) -> AsyncIterator[ImageRecord]:
        """Stream every record in ascending id order from one snapshot."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records."""

    @abstractmethod
    async def get_dimension(self) -> Optional[int]:
        """Feature vector length of this store, None while it is empty."""


class SearchHistoryLedger(ABC):
    """Append-only log of searches, referencing images by id."""

    @abstractmethod
    async def append(self, source_image_id: int, result_count: int) -> SearchHistoryEntry:
        """
        Record one search.

        Raises:
            DanglingReferenceException: If the image does not exist
            ValidationException: If result_count is negative
        """

    @abstractmethod
    async def list_all(self) -> List[HistoryItem]:
        """
        All entries joined with their source image, most recent first.

        Raises:
            IntegrityException: If a referenced image is missing
        """

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry. Images are left untouched."""

    @abstractmethod
    async def count(self) -> int:
        """Number of entries."""
