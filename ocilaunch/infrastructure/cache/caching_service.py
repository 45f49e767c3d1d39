"""Concrete implementation of the Caching Service.

Persists memoized API lookups to disk with `diskcache`, so values such as
the availability domains of a tenancy survive between runs and can be
shared by several processes.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import diskcache as dc

# Domain Layer Imports
from ocilaunch.domain.interfaces.cache import CacheService
from ocilaunch.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

# None means entries never expire
DEFAULT_TTL_SECONDS: Optional[int] = None


class DiskCachingService(CacheService):
    """File-based cache using diskcache."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        ttl: Optional[int] = DEFAULT_TTL_SECONDS,
        disk_cache: Optional[dc.Cache] = None,
    ):
        """Initializes the caching service.

        Args:
            cache_dir: Directory holding the cache database.
            ttl: Expiry for new entries in seconds (None keeps them forever).
            disk_cache: Pre-built diskcache.Cache (mainly for tests).
        """
        self.ttl = ttl
        self.disk_cache = disk_cache if disk_cache is not None else dc.Cache(str(cache_dir), timeout=1)
        logger.info(f"CachingService initialized at: {self.disk_cache.directory} (ttl={ttl})")

    def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves an item from the disk cache."""
        value = self.disk_cache.get(key, default=None)
        if value is None:
            logger.debug(f"Cache miss for key: {key}")
        else:
            logger.debug(f"Cache hit for key: {key}")
        return value

    def add(self, value: Any, key: CacheKey) -> None:
        """Stores an item in the disk cache, replacing any previous value."""
        self.disk_cache.set(key, value, expire=self.ttl)
        logger.debug(f"Stored item in cache: key={key}")
