"""Cache backends for summary snapshots."""

from expense_tracker.services.cache.interface import CacheError, CacheInterface
from expense_tracker.services.cache.memory import InMemoryCache
from expense_tracker.services.cache.redis_cache import RedisCache

__all__ = [
    "CacheError",
    "CacheInterface",
    "InMemoryCache",
    "RedisCache",
]
