"""Process-local TTL cache shared by embeddings, page memoization and content memory."""

import time
from collections import OrderedDict
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol

from app.core.logging import get_logger

logger = get_logger(__name__)


class CacheStore(Protocol):
    """Capability interface for the injected cache."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def evict(self, key: str) -> None: ...


class TTLCache:
    """
    In-memory cache with per-entry expiry and a capacity bound.

    Best-effort only: callers must behave identically on a miss.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            ttl_seconds: Lifetime of each entry
            max_entries: Maximum number of live entries
            clock: Monotonic time source (overridable in tests)
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock

        # key -> (expires_at, value), insertion order = eviction order
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_entries:
            self._make_room()
        self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def evict(self, key: str) -> None:
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _make_room(self) -> None:
        self.purge_expired()
        while len(self._entries) >= self.max_entries:
            oldest, _ = self._entries.popitem(last=False)
            logger.debug(f"Cache full, evicted {oldest}")

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        return {"size": len(self._entries), "max_entries": self.max_entries, "ttl_seconds": self.ttl_seconds}


@lru_cache(maxsize=1)
def get_cache() -> TTLCache:
    """Get the process-wide cache (cached singleton)."""
    from app.core.config import get_settings

    settings = get_settings()
    return TTLCache(ttl_seconds=settings.CACHE_TTL_SECONDS, max_entries=settings.CACHE_MAX_ENTRIES)
