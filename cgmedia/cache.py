"""In-memory, TTL-bounded cache of normalized assets keyed by source locator."""

import logging
import threading
import time
from collections.abc import Callable

from cgmedia.models import CacheEntry, CacheStats, NormalizedAsset, shorten_locator

logger = logging.getLogger("cgmedia.cache")

# Entries expire one hour after creation
DEFAULT_TTL_SECONDS = 3600.0
# Namespace suffix for optimized results
_KEY_SUFFIX = "_optimized"


class ResultCache:
    """Process-lifetime memo of pipeline results.

    Safe to share between concurrent requests: every access to the entry map
    holds a single lock. Expired entries are evicted lazily on lookup.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        # Injectable time source (tests advance it manually)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key_for(locator: str) -> str:
        """Build the cache key for a source locator."""
        return f"{locator}{_KEY_SUFFIX}"

    def get(self, locator: str) -> NormalizedAsset | None:
        """Return the cached asset, or None if absent or expired (and evict it)."""
        key = self.key_for(locator)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.created_at >= self._ttl_seconds:
                del self._entries[key]
                logger.debug("Cache entry expired: %s", shorten_locator(key))
                return None
            return entry.value

    def put(self, locator: str, asset: NormalizedAsset) -> None:
        """Store an asset, replacing any existing entry for the locator."""
        key = self.key_for(locator)
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=asset, created_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Media cache cleared (%d entries)", count)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(count=len(self._entries), keys=list(self._entries))
