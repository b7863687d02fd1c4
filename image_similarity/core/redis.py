"""Redis client configuration and utilities."""
from typing import Optional
import redis.asyncio as redis

from .config import settings
from .exceptions import CacheException


class RedisClient:
    """Async Redis client wrapper working on raw bytes."""

    def __init__(self, url: Optional[str] = None):
        self.url = url if url is not None else settings.redis_url
        self._client: Optional[redis.Redis] = None

    @property
    def configured(self) -> bool:
        """Whether a Redis URL is set."""
        return bool(self.url)

    async def connect(self):
        """Initialize Redis connection."""
        if not self.configured:
            raise CacheException("Redis URL is not configured")
        if self._client is None:
            self._client = redis.from_url(self.url, decode_responses=False)

    async def disconnect(self):
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_bytes(self, key: str) -> Optional[bytes]:
        """Get binary value."""
        await self.connect()
        return await self._client.get(key)

    async def set_bytes(
        self,
        key: str,
        value: bytes,
        ex: Optional[int] = None
    ):
        """
        Set binary value with optional expiration.

        Args:
            key: Cache key
            value: Value to store
            ex: Expiration time in seconds
        """
        await self.connect()
        await self._client.set(key, value, ex=ex)

    async def ping(self) -> bool:
        """Check if Redis is accessible."""
        try:
            await self.connect()
            return bool(await self._client.ping())
        except Exception:
            return False


# Singleton instance
redis_client = RedisClient()
