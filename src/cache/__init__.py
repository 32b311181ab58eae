"""Key/value cache with per-entry expiry used for release and metadata records."""

from .store import CacheEntry, CacheStore, MemoryCache, cache_key

__all__ = ["CacheEntry", "CacheStore", "MemoryCache", "cache_key"]
