"""
Abstract Cache Interface

A key -> string blob store with per-entry expiry. Nothing more:
no transactions, no invalidation hooks, no eviction callbacks.

Implementations must treat an expired entry exactly like a missing one.
"""

from abc import ABC, abstractmethod
from typing import Optional


class CacheInterface(ABC):
    """Abstract interface for the summary cache backend."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read a cached value.

        Returns:
            The stored string, or None if absent or expired

        Raises:
            CacheError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """
        Store a value, replacing any previous one (last write wins).

        Raises:
            CacheError: If the backend cannot be reached
        """
        pass


class CacheError(Exception):
    """Base exception for cache backend failures."""
    pass
