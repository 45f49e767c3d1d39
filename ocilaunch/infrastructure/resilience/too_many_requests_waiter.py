"""Persistent backoff after "too many requests" responses.

Once the provider answers a creation request with 429, the waiter stores
the time it was armed. Until `cooldown_seconds` have passed, every new
creation attempt is refused locally instead of hitting the provider again.

The armed timestamp lives in a diskcache database, so the state is shared
by every process pointed at the same directory. Check-then-arm is not
atomic across processes: an occasional extra call may slip through.
"""

import logging
import math
import sqlite3
import time
from pathlib import Path
from typing import Callable, Optional, Union

import diskcache as dc

from ocilaunch.domain.interfaces.waiter import TooManyRequestsWaiter

logger = logging.getLogger(__name__)

ARMED_AT_KEY = "too_many_requests_armed_at"


class DiskCacheWaiter(TooManyRequestsWaiter):
    """TooManyRequestsWaiter backed by a diskcache entry."""

    def __init__(
        self,
        directory: Union[str, Path],
        cooldown_seconds: int,
        clock: Callable[[], float] = time.time,
        disk_cache: Optional[dc.Cache] = None,
    ):
        """Initializes the waiter.

        Args:
            directory: Directory holding the waiter database.
            cooldown_seconds: How long to back off after a 429. 0 disables the waiter.
            clock: Returns the current epoch time; injectable for tests.
            disk_cache: Pre-built diskcache.Cache (mainly for tests).
        """
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.disk_cache = disk_cache if disk_cache is not None else dc.Cache(str(directory), timeout=1)
        logger.debug(f"Waiter initialized: cooldown={cooldown_seconds}s, store={self.disk_cache.directory}")

    def _armed_at(self) -> Optional[float]:
        value = self.disk_cache.get(ARMED_AT_KEY, default=None)
        return float(value) if value is not None else None

    def is_configured(self) -> bool:
        return self.cooldown_seconds > 0

    def is_too_early(self) -> bool:
        armed_at = self._armed_at()
        if armed_at is None:
            return False
        return self.clock() < armed_at + self.cooldown_seconds

    def seconds_remaining(self) -> int:
        armed_at = self._armed_at()
        if armed_at is None:
            return 0
        remaining = armed_at + self.cooldown_seconds - self.clock()
        return max(0, math.ceil(remaining))

    def enable(self) -> None:
        now = self.clock()
        self.disk_cache.set(ARMED_AT_KEY, now)
        logger.warning(f"Too many requests: waiter armed, next attempt allowed in {self.cooldown_seconds}s")

    def remove(self) -> None:
        try:
            if self.disk_cache.delete(ARMED_AT_KEY):
                logger.info("Waiter cooldown elapsed, cleared.")
        except (dc.Timeout, sqlite3.Error, OSError) as e:
            # Locked or unreadable store; it will be cleared on the next attempt
            logger.warning(f"Could not clear waiter state: {e}")
