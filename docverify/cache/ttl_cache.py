"""In-process key/value cache with per-entry expiry.

Entries are visible only while ``now < expires_at``. Expired entries are
purged lazily on read; long-lived caches can also be swept periodically
with ``purge_expired()`` (see ``run_periodic_sweep``).

Example:
    >>> cache = TTLCache[str](default_ttl_seconds=300, name="cookie")
    >>> cache.set("verify.philsys.gov.ph", "__verify-token=abc")
    >>> cache.get("verify.philsys.gov.ph")
    '__verify-token=abc'
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


class TTLCache(Generic[T]):
    """TTL cache keyed by string.

    Args:
        default_ttl_seconds: TTL applied when ``set`` gets no explicit ttl
        name: Cache name used in logs and health output
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        default_ttl_seconds: float,
        name: str = "cache",
        clock: Optional[Clock] = None,
    ):
        if default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive")
        self.default_ttl_seconds = default_ttl_seconds
        self.name = name
        self._clock: Clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> Optional[T]:
        """Return the fresh value for ``key`` or None, dropping it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: T, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if not e.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


async def run_periodic_sweep(cache: TTLCache, interval_seconds: float) -> None:
    """Sweep ``cache`` every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = cache.purge_expired()
        if removed:
            logger.debug(
                "Swept %d expired entries", removed, extra={"service": cache.name}
            )
