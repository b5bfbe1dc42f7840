"""
Production manifest - precomputed render lists.

The manifest maps ``kind -> group name -> (compiled_files, enabled)`` and
is written once, offline, by :class:`ProductionManifestBuilder`::

    {
      "format": "assetbuilder-manifest/1",
      "built_at": "2024-05-01T12:00:00+00:00",
      "groups": {
        "js":  {"app": {"compiled_files": ["https://cdn/x.js",
                                           "assets/cache/app-ab12....js"],
                        "enabled": true}},
        "css": {}
      }
    }

In production the file is loaded once per process (through the process
cache) and rendering becomes a lookup.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from .cache.build import BuildCache
from .cache.process import NullProcessCache, ProcessCache
from .cache.store import CacheStoreProtocol
from .faults import ManifestMissing
from .registry import AssetKind, GroupRegistry, is_local
from .resolver import DependencyResolver, unique
from .transforms import TransformPipeline

if TYPE_CHECKING:
    from .config import AssetBuilderConfig

logger = logging.getLogger("assetbuilder.manifest")

MANIFEST_FORMAT = "assetbuilder-manifest/1"


def manifest_cache_key(docroot: Union[str, Path]) -> str:
    """Process-cache key under which a docroot's manifest is kept."""
    return f"asset:{docroot}"


@dataclass
class ManifestEntry:
    compiled_files: List[str] = field(default_factory=list)
    enabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"compiled_files": list(self.compiled_files), "enabled": self.enabled}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ManifestEntry":
        return cls(
            compiled_files=[str(f) for f in data.get("compiled_files", [])],
            enabled=bool(data.get("enabled", False)),
        )


@dataclass
class RenderManifest:
    """Serialized production render lists for every group of every kind."""

    groups: Dict[str, Dict[str, ManifestEntry]] = field(
        default_factory=lambda: {kind.value: {} for kind in AssetKind}
    )
    built_at: str = ""

    def entries(self, kind: Union[AssetKind, str]) -> Dict[str, ManifestEntry]:
        return self.groups.setdefault(AssetKind(kind).value, {})

    def add(self, kind: Union[AssetKind, str], name: str, entry: ManifestEntry) -> None:
        self.entries(kind)[name] = entry

    def get(self, kind: Union[AssetKind, str], name: str) -> Optional[ManifestEntry]:
        return self.entries(kind).get(name)

    def files(self) -> List[str]:
        """Every distinct reference across all entries."""
        return unique(
            ref for kind in AssetKind for entry in self.entries(kind).values() for ref in entry.compiled_files
        )

    # ── Serialization ────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": MANIFEST_FORMAT,
            "built_at": self.built_at,
            "groups": {
                kind: {name: entry.to_dict() for name, entry in entries.items()}
                for kind, entries in self.groups.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RenderManifest":
        if data.get("format") != MANIFEST_FORMAT:
            raise ValueError(f"unsupported manifest format: {data.get('format')!r}")
        manifest = cls(built_at=str(data.get("built_at", "")))
        for kind, entries in (data.get("groups") or {}).items():
            for name, entry in entries.items():
                manifest.add(kind, name, ManifestEntry.from_dict(entry))
        return manifest

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)

    # ── Persistence ──────────────────────────────────────────────────

    def save(self, path: Union[str, Path]) -> Path:
        """Write the manifest atomically (temp file + rename)."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".tmp-{path.name}")
        try:
            tmp.write_text(self.to_json(), encoding="utf-8")
            tmp.replace(path)  # atomic on POSIX
        except Exception:
            if tmp.exists():
                tmp.unlink()
            raise
        logger.info("Saved manifest → %s", path)
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "RenderManifest":
        """
        Read a manifest from disk.

        Raises:
            ManifestMissing: If the file is absent or unreadable.
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ManifestMissing(str(path)) from None
        except OSError as exc:
            raise ManifestMissing(str(path), str(exc)) from exc
        try:
            return cls.from_dict(json.loads(raw))
        except (ValueError, TypeError, AttributeError) as exc:
            raise ManifestMissing(str(path), f"corrupt manifest: {exc}") from exc


def load_manifest(
    path: Union[str, Path],
    process_cache: Optional[ProcessCache] = None,
    key: Optional[str] = None,
) -> RenderManifest:
    """
    Fetch the manifest from the process cache, reading it from disk on a
    miss and storing it back.
    """
    cache = process_cache if process_cache is not None else NullProcessCache()
    key = key or str(path)
    manifest = cache.fetch(key)
    if manifest is None:
        manifest = RenderManifest.load(path)
        cache.store(key, manifest)
        logger.debug("Loaded manifest from %s", path)
    return manifest


class ProductionManifestBuilder:
    """
    Offline production build.

    Force-builds every configured group (minified), precomputes each
    group's full render list, clears stale cache files and persists the
    manifest.
    """

    def __init__(
        self,
        config: "AssetBuilderConfig",
        store: CacheStoreProtocol,
        *,
        pipeline: Optional[TransformPipeline] = None,
        process_cache: Optional[ProcessCache] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.pipeline = pipeline if pipeline is not None else TransformPipeline.from_config(config)
        self.process_cache = process_cache if process_cache is not None else NullProcessCache()
        self.swept: List[str] = []

    def build_all(self) -> RenderManifest:
        config = self.config
        registry = GroupRegistry.from_config(config.groups)
        build_cache = BuildCache(config, self.store, self.pipeline, minify=True)

        built: Dict[AssetKind, Dict[str, List[str]]] = {kind: {} for kind in AssetKind}
        for group in registry:
            built[AssetKind(group.kind)][group.name] = build_cache.ensure_built(group)

        working = registry.snapshot()
        resolver = DependencyResolver(working, max_depth=config.deps_max_depth)
        manifest = RenderManifest(built_at=datetime.now(timezone.utc).isoformat())

        for kind in AssetKind:
            for group in registry.groups(kind):
                order = resolver.resolve(kind, group.name, force=True)
                compiled = unique(ref for name in order for ref in built[kind].get(name, []))
                manifest.add(kind, group.name, ManifestEntry(compiled_files=compiled, enabled=group.enabled))

        self.process_cache.delete(manifest_cache_key(config.docroot))

        keep = {Path(ref).name for ref in manifest.files() if is_local(ref)}
        keep.add(config.manifest_name)
        self.swept = self.store.sweep(keep=keep)

        manifest.save(config.manifest_path)
        logger.info(
            "Production build complete: %d groups, %d cache files (%d hits, %d builds, %d swept)",
            len(registry),
            len(keep) - 1,
            build_cache.stats.hits,
            build_cache.stats.builds,
            len(self.swept),
        )
        return manifest
