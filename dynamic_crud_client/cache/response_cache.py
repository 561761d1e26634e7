"""
TTL-keyed response cache.

GET payloads are memoized per request key until their expiry; any mutation
evicts every entry of the mutated resource family so stale list/detail reads
are never served after a write.
"""

import time
from typing import Any, Callable, Dict, Optional

from ..config import CacheConfig
from ..schemas.session_schema import CacheEntry
from ..utils.hash_utils import normalize_path, split_endpoint
from ..utils.logger import get_logger
from .backends import CacheBackend, JsonFileCacheBackend, MemoryCacheBackend


class ResponseCache:
    """Response cache over a pluggable backend."""

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            backend: Storage substrate (defaults to the configured backend)
            config: Cache configuration
            clock: Epoch-seconds source, injectable for tests
        """
        self.config = config or CacheConfig()
        self.backend = backend or self._backend_from_config(self.config)
        self.clock = clock
        self.logger = get_logger()
        self._durations: Dict[str, int] = {
            normalize_path(prefix): seconds
            for prefix, seconds in self.config.endpoint_durations.items()
        }

    @staticmethod
    def _backend_from_config(config: CacheConfig) -> CacheBackend:
        if config.backend == "file":
            return JsonFileCacheBackend(config.file_path)
        return MemoryCacheBackend()

    def get(self, key: str) -> Optional[Any]:
        """
        Get a cached payload.

        Args:
            key: Request cache key

        Returns:
            Payload, or None on miss; an expired entry is evicted and counts as a miss
        """
        entry = self.backend.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            self.backend.evict(key)
            self.logger.debug("Cache entry expired", extra={"cache_key": key})
            return None
        return entry.payload

    def put(
        self, key: str, payload: Any, family: str, ttl: Optional[int] = None
    ) -> None:
        """
        Store a payload; absent payloads are never cached.

        Args:
            key: Request cache key
            payload: Response payload
            family: Resource family for invalidation
            ttl: Time-to-live in seconds (defaults to config)
        """
        if payload is None:
            return
        seconds = self.config.default_ttl_seconds if ttl is None else ttl
        self.backend.put(
            CacheEntry(key=key, family=family, payload=payload, expires_at=self.clock() + seconds)
        )

    def invalidate(self, prefix: str) -> int:
        """
        Remove every entry in a resource family.

        Args:
            prefix: Resource family (first path segment)

        Returns:
            Number of evicted entries
        """
        family = prefix.strip("/").split("/", 1)[0]
        evicted = 0
        for key in self.backend.keys():
            entry = self.backend.get(key)
            if entry is not None and entry.family == family:
                self.backend.evict(key)
                evicted += 1
        if evicted:
            self.logger.debug(
                "Cache invalidated", extra={"family": family, "evicted": evicted}
            )
        return evicted

    def clear_all(self) -> None:
        """Remove everything, e.g. on login/logout."""
        self.backend.clear()

    # ==================== PER-ENDPOINT DURATIONS ====================

    def configure_duration(self, endpoint_prefix: str, seconds: int) -> None:
        """
        Override the TTL for endpoints under a path prefix.

        Args:
            endpoint_prefix: Path prefix such as "/products"
            seconds: Time-to-live in seconds
        """
        self._durations[normalize_path(endpoint_prefix)] = seconds

    def ttl_for(self, path: str) -> int:
        """TTL for a path: the longest matching configured prefix, else the default."""
        path, _ = split_endpoint(path)
        best: Optional[str] = None
        for prefix in self._durations:
            matches = path == prefix or path.startswith(prefix.rstrip("/") + "/")
            if matches and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return self.config.default_ttl_seconds
        return self._durations[best]
