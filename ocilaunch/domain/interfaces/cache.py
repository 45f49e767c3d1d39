"""Interface for caching mechanisms.

Defines the contract for memoizing API lookups (e.g. availability domains)
between runs. A cache miss is never an error: implementations return None.
"""

import abc
from typing import Any, Optional

# Import relevant domain models
from ocilaunch.domain.models.common import CacheKey


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves an item from the cache.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached item if found and not expired, otherwise None.
        """
        pass

    @abc.abstractmethod
    def add(self, value: Any, key: CacheKey) -> None:
        """Stores an item in the cache.

        Args:
            value: The item to store.
            key: The cache key to store the item under.
        """
        pass


class NullCache(CacheService):
    """Cache that never holds anything. Used when no cache is configured."""

    def get(self, key: CacheKey) -> Optional[Any]:
        return None

    def add(self, value: Any, key: CacheKey) -> None:
        pass
