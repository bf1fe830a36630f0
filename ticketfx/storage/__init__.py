"""
Storage layer.

Process-lifetime TTL cache for rate quotes. Nothing is persisted to disk.
"""

from ticketfx.storage.ttl_cache import CacheEntry, TTLCache

__all__ = ["CacheEntry", "TTLCache"]
