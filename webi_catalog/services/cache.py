"""
In-memory read-through cache with a size ceiling, TTL expiry and
stale-while-error serving.

One TTLCache instance is created per data class (repository tree, file
contents, repository metadata, assembled catalog). Nothing is persisted; the
caches live as long as the process.
"""
from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    stored_at: float
    ttl: float

    def is_stale(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


class TTLCache(Generic[T]):
    """
    Bounded key/value store with per-entry expiry.

    ``get`` only returns fresh values. With ``allow_stale`` set, expired
    entries are kept until they are replaced or evicted so ``get_stale`` can
    hand them out when a refresh fails. With ``update_age_on_get`` set, every
    hit restarts the entry's TTL. Beyond ``max_entries`` the least recently
    used entry is evicted.
    """

    def __init__(
        self,
        max_entries: int,
        ttl: float,
        allow_stale: bool = False,
        update_age_on_get: bool = True,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl = ttl
        self.allow_stale = allow_stale
        self.update_age_on_get = update_age_on_get
        self.name = name
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_stale(self._clock())

    def peek_entry(self, key: str) -> Optional[CacheEntry[T]]:
        """Return the raw entry without promoting it or checking expiry."""
        return self._entries.get(key)

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        now = self._clock()
        if entry.is_stale(now):
            if not self.allow_stale:
                del self._entries[key]
            return None

        self._entries.move_to_end(key)
        if self.update_age_on_get:
            entry.stored_at = now
        return entry.value

    def get_stale(self, key: str) -> Optional[T]:
        """
        Return the stored value even if it has expired, provided the cache
        allows stale serving. Fresh values are returned as well.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_stale(self._clock()) and not self.allow_stale:
            return None
        return entry.value

    def set(self, key: str, value: T) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=self.ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"[{self.name}] Evicted {evicted}")

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()


async def get_cached(
    cache: TTLCache[T],
    key: str,
    fetch_fn: Callable[[], Awaitable[T]],
    force: bool = False,
) -> T:
    """
    Read-through helper.

    Returns a fresh hit immediately. Otherwise awaits ``fetch_fn`` and stores
    the result. If the fetch raises and the cache still holds an expired value
    for ``key`` (stale serving enabled), that value is returned instead.

    Concurrent misses for the same key are not coalesced here.
    """
    if not force:
        cached = cache.get(key)
        if cached is not None:
            logger.debug(f"[{cache.name}] Cache hit for {key}")
            return cached

    logger.debug(f"[{cache.name}] Cache miss for {key}, fetching data...")
    try:
        data = await fetch_fn()
    except Exception as e:
        stale = cache.get_stale(key)
        if stale is None:
            raise
        logger.warning(f"[{cache.name}] Serving stale value for {key} after fetch failure: {e}")
        return stale

    cache.set(key, data)
    return data
