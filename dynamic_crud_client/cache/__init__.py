"""Response cache and its storage backends."""

from .backends import CacheBackend, JsonFileCacheBackend, MemoryCacheBackend
from .response_cache import ResponseCache

__all__ = ["CacheBackend", "JsonFileCacheBackend", "MemoryCacheBackend", "ResponseCache"]
