"""
Build cache - compile each group at most once per fingerprint.

``ensure_built(group)`` returns the output references for a group:

- every remote URL, verbatim, in declared order
- then one cache-relative path for the merged local output

The merged output is produced only when its fingerprint is not yet in the
persistent store. Because the key fully determines the bytes, concurrent
builders that both miss simply write the same content twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from ..faults import SourceMissing
from ..registry import AssetGroup, AssetKind
from ..transforms import SourceFile, TransformPipeline
from .fingerprint import Fingerprint, SourceStamp, build_fingerprint, directory_salt
from .store import CacheStoreProtocol

if TYPE_CHECKING:
    from ..config import AssetBuilderConfig

logger = logging.getLogger("assetbuilder.cache.build")


@dataclass
class BuildStats:
    """Counters for one build cache lifetime."""

    hits: int = 0
    misses: int = 0
    builds: int = 0

    def to_dict(self) -> dict:
        return {"hits": self.hits, "misses": self.misses, "builds": self.builds}


class BuildCache:
    """
    Fingerprint-checked builder on top of a persistent store.

    Args:
        config: Directory layout (docroot, source and cache directories).
        store: Persistent byte store holding compiled output.
        pipeline: Compile/minify transforms.
        minify: Default minification mode (production builds minify).
    """

    __slots__ = ("config", "store", "pipeline", "minify", "stats")

    def __init__(
        self,
        config: "AssetBuilderConfig",
        store: CacheStoreProtocol,
        pipeline: Optional[TransformPipeline] = None,
        *,
        minify: bool = False,
    ) -> None:
        self.config = config
        self.store = store
        self.pipeline = pipeline if pipeline is not None else TransformPipeline.from_config(config)
        self.minify = minify
        self.stats = BuildStats()

    # ── Sources ──────────────────────────────────────────────────────

    def sources(self, group: AssetGroup) -> List[SourceFile]:
        """Local sources in build order: LESS first, then plain files."""
        root = self.config.root
        result: List[SourceFile] = []
        for name in group.less:
            ref = self.config.less_root + name
            result.append(SourceFile(path=root / ref, ref=ref, compile=True))
        source_dir = self.config.source_dir(group.kind)
        for name in group.local_files:
            ref = source_dir + name
            result.append(SourceFile(path=root / ref, ref=ref))
        return result

    # ── Fingerprint ──────────────────────────────────────────────────

    def fingerprint(self, group: AssetGroup, *, minify: Optional[bool] = None) -> Optional[Fingerprint]:
        """
        Fingerprint of the group's merged local output, or ``None`` when
        the group has no local sources.

        Raises:
            SourceMissing: If a declared local source does not exist.
        """
        sources = self.sources(group)
        if not sources:
            return None

        stamps: List[SourceStamp] = []
        for source in sources:
            try:
                stamps.append(SourceStamp.of(source.path, source.ref))
            except OSError as exc:
                raise SourceMissing(group.name, source.ref) from exc

        has_less = bool(group.less)
        minify = self.minify if minify is None else minify
        salt = directory_salt(self.config.root / self.config.less_root) if has_less else ""

        return build_fingerprint(
            kind=AssetKind(group.kind).value,
            group=group.name,
            sources=stamps,
            transforms=self.pipeline.describe(group.kind, less=has_less, minify=minify),
            salt=salt,
        )

    # ── Build ────────────────────────────────────────────────────────

    def ensure_built(self, group: Optional[AssetGroup], *, minify: Optional[bool] = None) -> List[str]:
        """
        Make sure the group's compiled output exists and return its
        output references.

        Raises:
            SourceMissing: A declared local source does not exist.
            TransformFailure: Compilation or minification failed.
            CacheStoreUnavailable: The store could not be read or written.
        """
        if group is None or not group.has_sources:
            return []

        refs = list(group.remote_files)
        minify = self.minify if minify is None else minify
        fp = self.fingerprint(group, minify=minify)
        if fp is None:
            return refs

        key = fp.key
        if self.store.has(key):
            self.stats.hits += 1
            logger.debug("Cache hit for %s group '%s': %s", fp.kind, group.name, key)
        else:
            self.stats.misses += 1
            self._build(group, key, minify=minify)

        refs.append(self.config.cache_ref(key))
        return refs

    def _build(self, group: AssetGroup, key: str, *, minify: bool) -> None:
        data = self.pipeline.compile(group.kind, self.sources(group))
        if minify:
            data = self.pipeline.minify(group.kind, data)
        self.store.set(key, data)
        self.stats.builds += 1
        logger.info("Built %s group '%s' -> %s (%d bytes)", AssetKind(group.kind).value, group.name, key, len(data))
