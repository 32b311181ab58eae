"""TTL cache for release data and resolved metadata."""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar

from constants import Constants

T = TypeVar("T")


def cache_key(kind: str, slug: str) -> str:
    """Cache key for one record kind under a slug namespace, e.g. ``release:my-plugin``."""
    if kind not in Constants.CACHE_KINDS:
        raise ValueError(f"Unknown cache kind: {kind}")
    return f"{kind}:{slug}"


class CacheStore(Protocol):
    """Host cache interface: get/set with expiry, delete by key.

    ``get`` returns None on a miss or when the entry has expired.
    """

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: int) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with TTL."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        return time.time() > self.expires_at


class MemoryCache:
    """In-process CacheStore.

    Values are deep-copied on the way in and out so callers can never mutate
    a cached record in place.
    """

    def __init__(self, max_entries: int = 1000):
        self._cache: Dict[str, CacheEntry[Any]] = {}
        self._max_entries = max_entries

    def get(self, key: str) -> Optional[Any]:
        """Get a cached value, or None if not found/expired."""
        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired():
            del self._cache[key]
            return None

        return copy.deepcopy(entry.value)

    def set(self, key: str, value: Any, ttl: int) -> None:
        """Cache value under key for ttl seconds."""
        self._cache[key] = CacheEntry(value=copy.deepcopy(value), expires_at=time.time() + ttl)

        if len(self._cache) > self._max_entries:
            self._cleanup()
        if len(self._cache) > self._max_entries:
            self._evict_oldest(len(self._cache) - self._max_entries)

    def delete(self, key: str) -> None:
        """Remove key; missing keys are ignored."""
        self._cache.pop(key, None)

    def __contains__(self, key: str) -> bool:
        entry = self._cache.get(key)
        return entry is not None and not entry.is_expired()

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        expired_count = sum(1 for e in self._cache.values() if e.is_expired())
        return {
            "total_entries": len(self._cache),
            "expired_entries": expired_count,
            "active_entries": len(self._cache) - expired_count,
            "max_entries": self._max_entries,
        }

    def _cleanup(self) -> None:
        """Remove expired entries."""
        keys_to_remove = [k for k, v in self._cache.items() if v.is_expired()]
        for key in keys_to_remove:
            del self._cache[key]

    def _evict_oldest(self, count: int) -> None:
        """Evict the oldest entries."""
        sorted_keys = sorted(self._cache.keys(), key=lambda k: self._cache[k].created_at)
        for key in sorted_keys[:count]:
            del self._cache[key]
