"""
Redis Cache Implementation

DESIGN DECISION: Redis is the shared cache backend when more than one
process serves requests. Every key is namespaced with a configurable
prefix so the cache can share a Redis instance with other apps.

Only the startup connection (connect) is retried. On the request path
a missing connection gets one short attempt, and a failed get/set is
reported once as CacheError; the summary service decides what to do.
"""

from typing import Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import CacheSettings, get_settings
from expense_tracker.services.cache.interface import CacheError, CacheInterface


class RedisCache(CacheInterface):

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        client: Optional[aioredis.Redis] = None,
    ):
        self._settings = settings or get_settings().cache
        self._client = client

    def _key(self, key: str) -> str:
        return f"{self._settings.key_prefix}{key}"

    async def _open(self) -> aioredis.Redis:
        """Single connection attempt bounded by the socket timeout."""
        if self._client is None:
            timeout = self._settings.socket_timeout_seconds
            client = aioredis.from_url(
                self._settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=timeout,
                socket_timeout=timeout,
            )
            try:
                await client.ping()
            except RedisError as e:
                await client.aclose()
                raise CacheError(f"Failed to connect to Redis: {e}")
            self._client = client
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def connect(self) -> aioredis.Redis:
        """
        Establish (and verify) the Redis connection at startup.
        """
        return await self._open()

    async def get(self, key: str) -> Optional[str]:
        client = await self._open()
        try:
            return await client.get(self._key(key))
        except RedisError as e:
            raise CacheError(f"Failed to read cache entry: {e}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        client = await self._open()
        try:
            await client.set(self._key(key), value, ex=ttl_seconds)
        except RedisError as e:
            raise CacheError(f"Failed to write cache entry: {e}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
