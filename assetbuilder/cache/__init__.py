"""
AssetCache: content-addressed build cache.

Exports:
- BuildCache / BuildStats: at-most-once compilation per fingerprint
- Fingerprint / SourceStamp: cache key derivation
- Stores: MemoryCacheStore, FilesystemCacheStore
- Process caches: MemoryProcessCache, NullProcessCache
"""

from .build import BuildCache, BuildStats
from .fingerprint import Fingerprint, SourceStamp, build_fingerprint, directory_salt
from .process import (
    MemoryProcessCache,
    NullProcessCache,
    ProcessCache,
    get_default_process_cache,
)
from .store import CacheStoreProtocol, FilesystemCacheStore, MemoryCacheStore

__all__ = [
    "BuildCache",
    "BuildStats",
    "Fingerprint",
    "SourceStamp",
    "build_fingerprint",
    "directory_salt",
    "ProcessCache",
    "MemoryProcessCache",
    "NullProcessCache",
    "get_default_process_cache",
    "CacheStoreProtocol",
    "MemoryCacheStore",
    "FilesystemCacheStore",
]
