"""Redis client wrapper for webhook delivery dedup."""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from taller_inbox.settings import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client wrapper for async operations.

    Every method degrades to a no-op when Redis is disabled or unreachable,
    so callers never need to branch on availability.
    """

    def __init__(self) -> None:
        """Initialize Redis client."""
        self._client: aioredis.Redis | None = None
        self._enabled: bool = settings.redis_enabled

    @property
    def enabled(self) -> bool:
        return self._enabled and self._client is not None

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self._enabled:
            logger.info("Redis disabled - skipping connection")
            return
        if self._client is None:
            try:
                self._client = aioredis.from_url(
                    settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._client.ping()
                logger.info("Redis connected successfully")
            except (RedisError, OSError) as e:
                logger.warning(f"Redis connection failed: {e}. Continuing without Redis.")
                self._client = None
                self._enabled = False

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def setnx(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Set a key only if it does not exist yet.

        Args:
            key: Redis key
            value: Value to set
            ttl: Optional time-to-live in seconds

        Returns:
            True if this call claimed the key (or Redis is unavailable),
            False if the key was already held
        """
        if not self.enabled:
            return True
        try:
            claimed = await self._client.set(key, value, nx=True, ex=ttl)
        except RedisError as e:
            logger.warning(f"Redis setnx failed for {key}: {e}. Treating as first delivery.")
            return True
        return bool(claimed)


# Global Redis client instance
redis_client = RedisClient()
