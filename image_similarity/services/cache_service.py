"""Cache service wrapping Redis operations."""
import logging
from typing import Optional

from image_similarity.core.config import settings
from image_similarity.core.redis import RedisClient, redis_client
from image_similarity.models.records import ImageRecord

logger = logging.getLogger(__name__)


class CacheService:
    """Caches serialised image records.

    Image records never change once committed, so entries are never
    invalidated; they only expire. Cache failures are logged and treated
    as misses.
    """

    def __init__(self, client: Optional[RedisClient] = None, ttl: Optional[int] = None):
        """
        Initialize cache service.

        Args:
            client: Redis client, defaults to the shared client
            ttl: Entry time to live in seconds
        """
        self.redis = client or redis_client
        self.ttl = ttl if ttl is not None else settings.image_cache_ttl_seconds

    @property
    def enabled(self) -> bool:
        """Whether a Redis server is configured."""
        return self.redis.configured

    @staticmethod
    def image_key(image_id: int) -> str:
        return f"image:{image_id}"

    async def get_image(self, image_id: int) -> Optional[ImageRecord]:
        """
        Get a cached image record.

        Args:
            image_id: Image ID

        Returns:
            ImageRecord or None if not cached
        """
        if not self.enabled:
            return None
        try:
            cached = await self.redis.get_bytes(self.image_key(image_id))
            if cached is None:
                return None
            return ImageRecord.model_validate_json(cached)
        except Exception as e:
            logger.warning(f"Cache get error for image {image_id}: {e}")
            return None

    async def set_image(self, record: ImageRecord):
        """
        Cache an image record.

        Args:
            record: Committed image record
        """
        if not self.enabled:
            return
        try:
            await self.redis.set_bytes(
                self.image_key(record.id),
                record.model_dump_json().encode("utf-8"),
                ex=self.ttl or None
            )
        except Exception as e:
            logger.warning(f"Cache set error for image {record.id}: {e}")

    async def ping(self) -> bool:
        """Check if the cache backend is reachable."""
        if not self.enabled:
            return False
        return await self.redis.ping()
