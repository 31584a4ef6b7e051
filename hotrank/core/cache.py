import time
import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional, Tuple

from hotrank.models import CachedTrendingResult, ProductMetrics

FNV_OFFSET = 0x811C9DC5
FNV_PRIME = 0x01000193


class TTLCache:
    def __init__(self, ttl_seconds: int = 60, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl_seconds
        self._clock = clock
        self._data: Dict[str, Tuple[float, Any]] = {}
        self._lock = asyncio.Lock()

    async def get_or_set(self, key: str, producer: Callable[[], Awaitable[Any]]):
        async with self._lock:
            now = self._clock()
            if key in self._data:
                ts, val = self._data[key]
                if now - ts < self.ttl:
                    return val
            val = await producer()
            self._data[key] = (now, val)
            return val

    async def invalidate(self, key: str | None = None):
        async with self._lock:
            if key is None:
                self._data.clear()
            else:
                self._data.pop(key, None)


def fnv1a_32(text: str) -> int:
    h = FNV_OFFSET
    for b in text.encode("utf-8"):
        h ^= b
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


def fingerprint(metrics: Iterable[ProductMetrics]) -> str:
    """Change-detection hash over every counter. Not a security property."""
    parts = sorted(
        f"{m.product_key}:{m.total_views}:{m.total_clicks}:{m.total_searches}" for m in metrics
    )
    return format(fnv1a_32("|".join(parts)), "08x")


class TrendingCache:
    """Enriched trending lists keyed by request shape.

    An entry is served only while its fingerprint equals the live one, while
    none of the badges it shows has run out, and, when ``ttl_seconds`` is
    set, while it is younger than that.
    """

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[Hashable, CachedTrendingResult] = {}

    def get(self, key: Hashable, current: str, now: datetime) -> Optional[CachedTrendingResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.fingerprint != current:
            self._entries.pop(key, None)
            return None
        if self.ttl_seconds is not None and now - entry.built_at >= timedelta(seconds=self.ttl_seconds):
            self._entries.pop(key, None)
            return None
        if any(until <= now for until in entry.badge_until.values()):
            # a shown badge lapsed; reconciliation has to run again
            self._entries.pop(key, None)
            return None
        return entry

    def set(self, key: Hashable, entry: CachedTrendingResult) -> None:
        self._entries[key] = entry

    def invalidate(self) -> None:
        self._entries.clear()

    def fingerprints(self) -> Dict[str, str]:
        return {repr(k): e.fingerprint for k, e in self._entries.items()}
