"""
Process cache - optional fast in-process lookup cache.

Used to keep the loaded production manifest across requests so it is read
from disk once per process. Absence of a process cache (``NullProcessCache``)
changes performance only, never behaviour.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Optional


class ProcessCache:
    """Minimal interface every process cache must implement."""

    def fetch(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def store(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError


class MemoryProcessCache(ProcessCache):
    """
    Dict-backed cache shared by every caller in the process.

    Thread-safe via a lock, since worker threads of one server process
    share the instance.
    """

    __slots__ = ("_data", "_lock", "hits", "misses")

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def fetch(self, key: str) -> Optional[Any]:
        with self._lock:
            if key in self._data:
                self.hits += 1
                return self._data[key]
            self.misses += 1
            return None

    def store(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class NullProcessCache(ProcessCache):
    """
    No-op cache: all operations are pass-through.

    Useful for:
    - Disabling the manifest cache in test environments
    - Hosts that cannot share memory between requests
    """

    __slots__ = ()

    def fetch(self, key: str) -> Optional[Any]:
        return None

    def store(self, key: str, value: Any) -> None:
        pass

    def delete(self, key: str) -> bool:
        return False


# Shared default for facades created without an explicit cache.
_default_cache: Optional[MemoryProcessCache] = None


def get_default_process_cache() -> MemoryProcessCache:
    global _default_cache
    if _default_cache is None:
        _default_cache = MemoryProcessCache()
    return _default_cache
