"""
Key/value substrates for the response cache.

The cache only needs get/put/evict/keys/clear, so the same resolver code runs
against process memory or a JSON file on disk.
"""

import os
import tempfile
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..schemas.session_schema import CacheEntry
from ..utils.json_utils import dumps, loads
from ..utils.logger import get_logger


class CacheBackend(ABC):
    """Minimal storage interface behind the response cache."""

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry, or None."""

    @abstractmethod
    def put(self, entry: CacheEntry) -> None:
        """Store an entry, replacing any entry with the same key."""

    @abstractmethod
    def evict(self, key: str) -> None:
        """Remove an entry if present."""

    @abstractmethod
    def keys(self) -> List[str]:
        """All stored keys."""

    def clear(self) -> None:
        """Remove every entry."""
        for key in self.keys():
            self.evict(key)


class MemoryCacheBackend(CacheBackend):
    """Process-memory backend."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def evict(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()


class JsonFileCacheBackend(CacheBackend):
    """
    JSON-file backend for reuse across process restarts.

    Entries are mirrored in memory; every write rewrites the file atomically.
    Storage errors are logged and never propagate to the caller.
    """

    def __init__(self, path: str):
        """
        Initialize the backend and load any existing file.

        Args:
            path: Location of the JSON file
        """
        self.path = path
        self.logger = get_logger()
        self._entries: Dict[str, CacheEntry] = self._load()

    def _load(self) -> Dict[str, CacheEntry]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fp:
                raw = loads(fp.read() or "{}")
            return {key: CacheEntry(**value) for key, value in raw.items()}
        except (OSError, ValueError, TypeError) as e:
            self.logger.warning(
                "Ignoring unreadable cache file", extra={"path": self.path, "error": str(e)}
            )
            return {}

    def _flush(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(dumps({key: entry.model_dump() for key, entry in self._entries.items()}))
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            self.logger.warning(
                "Cache storage error", extra={"path": self.path, "error": str(e)}
            )

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def put(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry
        self._flush()

    def evict(self, key: str) -> None:
        if self._entries.pop(key, None) is not None:
            self._flush()

    def keys(self) -> List[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._flush()
