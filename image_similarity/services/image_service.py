"""Image service for reading committed images."""
from typing import Optional

from image_similarity.core.exceptions import NotFoundException
from image_similarity.models.records import ImageRecord
from image_similarity.repositories import ImageStore
from image_similarity.services.cache_service import CacheService


class ImageService:
    """Service for image lookups, fronted by the record cache."""

    def __init__(self, images: ImageStore, cache: Optional[CacheService] = None):
        """
        Initialize image service.

        Args:
            images: Image store
            cache: Cache service (optional)
        """
        self.images = images
        self.cache = cache

    async def find_image(self, image_id: int) -> Optional[ImageRecord]:
        """
        Get image by ID.

        Args:
            image_id: Image ID

        Returns:
            ImageRecord or None when absent
        """
        if self.cache:
            cached = await self.cache.get_image(image_id)
            if cached is not None:
                return cached

        record = await self.images.get(image_id)
        if record is not None and self.cache:
            await self.cache.set_image(record)
        return record

    async def get_image(self, image_id: int) -> ImageRecord:
        """
        Get image by ID or raise.

        Raises:
            NotFoundException: If image not found
        """
        record = await self.find_image(image_id)
        if record is None:
            raise NotFoundException("Image", image_id)
        return record

    async def count_images(self) -> int:
        """Count stored images."""
        return await self.images.count()
