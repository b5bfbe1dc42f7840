"""
Build cache stores - durable keyed byte storage for compiled assets.

Provides two implementations:

- **MemoryCacheStore**: ephemeral, test-friendly
- **FilesystemCacheStore**: one file per key under the cache directory,
  served directly by the web server

All stores support:

- ``has(key)``: existence check
- ``get(key)``: read bytes (``None`` when absent)
- ``set(key, data)``: idempotent write
- ``keys(pattern)``: glob-filtered listing
- ``delete(key)``: remove one entry
- ``sweep(keep=, pattern=, before=)``: bulk removal with a keep-list

Keys are content-derived, so two writers racing on the same key write the
same bytes. The filesystem store writes through a temporary file and an
atomic rename; readers never observe a partial file.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..faults import CacheStoreUnavailable

logger = logging.getLogger("assetbuilder.cache.store")

_TMP_PREFIX = ".tmp-"


# ── Abstract Protocol ───────────────────────────────────────────────────


class CacheStoreProtocol:
    """Minimal interface every store must implement."""

    def has(self, key: str) -> bool:
        raise NotImplementedError

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def set(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    def keys(self, pattern: str = "*") -> List[str]:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def modified_at(self, key: str) -> float:
        raise NotImplementedError

    def sweep(
        self,
        *,
        keep: Iterable[str] = (),
        pattern: str = "*",
        before: Optional[float] = None,
    ) -> List[str]:
        """
        Delete entries matching *pattern*, except those named in *keep*.
        With *before* (a POSIX timestamp) only entries last modified
        earlier than it are removed.

        Returns:
            The removed keys.
        """
        keep = set(keep)
        removed: List[str] = []
        for key in self.keys(pattern):
            if key in keep:
                continue
            if before is not None and self.modified_at(key) >= before:
                continue
            if self.delete(key):
                removed.append(key)
                logger.info("Swept cache entry: %s", key)
        return removed


# ── Memory Store ────────────────────────────────────────────────────────


class MemoryCacheStore(CacheStoreProtocol):
    """
    Ephemeral in-memory store.

    Useful for tests and short-lived builds.
    """

    __slots__ = ("_entries", "writes")

    def __init__(self) -> None:
        # key -> (data, modified_at)
        self._entries: Dict[str, Tuple[bytes, float]] = {}
        self.writes = 0

    def has(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        return entry[0] if entry else None

    def set(self, key: str, data: bytes) -> None:
        self._entries[key] = (bytes(data), time.time())
        self.writes += 1

    def keys(self, pattern: str = "*") -> List[str]:
        return sorted(k for k in self._entries if fnmatch.fnmatchcase(k, pattern))

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def modified_at(self, key: str) -> float:
        return self._entries[key][1]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return self.has(key)


# ── Filesystem Store ────────────────────────────────────────────────────


class FilesystemCacheStore(CacheStoreProtocol):
    """
    Persistent filesystem store.

    Writes each entry as a plain file named after its key::

        <root>/
          app-0cc175b9c0f1b6a831c399e269772661.js
          theme-92eb5ffee6ae2fec3ad71c777531578f.css
          asset.cache            ← production manifest
    """

    __slots__ = ("root",)

    def __init__(self, root) -> None:
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheStoreUnavailable(str(self.root), "init", str(exc)) from exc

    # ── Helpers ──────────────────────────────────────────────────────

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise ValueError(f"Invalid cache key: {key!r}")
        return self.root / key

    def _unavailable(self, operation: str, exc: OSError) -> CacheStoreUnavailable:
        return CacheStoreUnavailable(str(self.root), operation, str(exc))

    # ── CRUD ─────────────────────────────────────────────────────────

    def has(self, key: str) -> bool:
        return self._path(key).is_file()

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise self._unavailable("get", exc) from exc

    def set(self, key: str, data: bytes) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=_TMP_PREFIX)
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
            os.replace(tmp_name, path)  # atomic on POSIX
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise self._unavailable("set", exc) from exc
        logger.debug("Stored cache entry: %s (%d bytes)", key, len(data))

    def keys(self, pattern: str = "*") -> List[str]:
        try:
            return sorted(
                f.name
                for f in self.root.iterdir()
                if f.is_file() and not f.name.startswith(_TMP_PREFIX) and fnmatch.fnmatchcase(f.name, pattern)
            )
        except OSError as exc:
            raise self._unavailable("keys", exc) from exc

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise self._unavailable("delete", exc) from exc
        return True

    def modified_at(self, key: str) -> float:
        try:
            return self._path(key).stat().st_mtime
        except OSError as exc:
            raise self._unavailable("stat", exc) from exc

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key) -> bool:
        return self.has(key)
