"""
In-process TTL cache for normalized rate quotes.

Keys are ``<resource>:<params>`` strings (``forex:PEN:USD``) or a bare
resource name (``ars``). The resource prefix selects the TTL. Expiry is
lazy: an expired entry behaves as absent on read and is dropped then, there
is no background sweep.

One instance is created by the hosting application and injected into the
rate aggregator; it lives as long as the process.

Usage:
    >>> cache = TTLCache({"forex": 60, "ars": 45})
    >>> cache.set("ars", quote)
    >>> cache.get("ars")  # quote, for 45 seconds
"""

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ticketfx.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 60.0


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached payload and the instant it was stored."""

    data: T
    timestamp: float


def resource_of(key: str) -> str:
    """Resource part of a cache key (text before the first colon)."""
    return key.split(":", 1)[0]


class TTLCache:
    """
    Keyed store answering "is this entry still fresh".

    An entry is fresh while ``now - entry.timestamp < ttl``; at exactly the
    TTL it is already expired. Entries are replaced as whole values and never
    mutated, so concurrent writers can only ever race to last-writer-wins.
    """

    def __init__(
        self,
        ttls: Mapping[str, float] | None = None,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttls: TTL in seconds per resource prefix.
            default_ttl: TTL for resources not listed in ``ttls``.
            clock: Monotonic time source, injectable for tests.
        """
        self._ttls = dict(ttls or {})
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}

    def ttl_for(self, key: str) -> float:
        return self._ttls.get(resource_of(key), self._default_ttl)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        age = self._clock() - entry.timestamp
        if age < self.ttl_for(key):
            logger.debug("rate_cache_hit", key=key, age_seconds=round(age, 3))
            return entry.data

        # Only drop the slot if nobody replaced it in the meantime
        if self._entries.get(key) is entry:
            del self._entries[key]
        logger.debug("rate_cache_expired", key=key, age_seconds=round(age, 3))
        return None

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, superseding any previous entry."""
        self._entries[key] = CacheEntry(data=value, timestamp=self._clock())
        logger.debug("rate_cache_set", key=key, ttl=self.ttl_for(key))

    def clear(self, resource: str | None = None) -> int:
        """
        Drop entries, optionally only those of one resource.

        Returns:
            Number of entries removed
        """
        if resource is None:
            cleared = len(self._entries)
            self._entries.clear()
        else:
            keys = [k for k in self._entries if resource_of(k) == resource]
            for k in keys:
                del self._entries[k]
            cleared = len(keys)

        logger.info("rate_cache_cleared", resource=resource or "*", count=cleared)
        return cleared

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
