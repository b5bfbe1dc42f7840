"""
Renderer - turns requested group names into ordered output references.

Development mode resolves dependencies and builds through the build cache
on every call. Production mode reads the precomputed ``compiled_files`` of
each group loaded from the manifest.

``render`` additionally filters through a :class:`RenderedSet`, so a
reference already emitted in the current render scope (e.g. a shared
dependency of two separately rendered groups) is never emitted twice.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional, Set, Union

from .cache.build import BuildCache
from .registry import AssetKind, GroupRegistry, as_name_list
from .resolver import DependencyResolver

logger = logging.getLogger("assetbuilder.renderer")


class RenderedSet:
    """References already emitted in one render scope."""

    __slots__ = ("_seen", "_lock")

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self._lock = threading.Lock()

    def claim(self, references: Iterable[str]) -> List[str]:
        """Record *references*, returning only those not seen before (in order)."""
        fresh: List[str] = []
        with self._lock:
            for ref in references:
                if ref not in self._seen:
                    self._seen.add(ref)
                    fresh.append(ref)
        return fresh

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()

    def __contains__(self, ref) -> bool:
        return ref in self._seen

    def __len__(self) -> int:
        return len(self._seen)


class Renderer:
    """
    Produces reference lists for one registry.

    Args:
        registry: Groups to render (configured or manifest-loaded).
        resolver: Dependency resolver (development mode only).
        build_cache: Build cache (development mode only).
        production: Use precomputed ``compiled_files`` instead of building.
        rendered: Render scope used by ``render``.
    """

    def __init__(
        self,
        registry: GroupRegistry,
        *,
        resolver: Optional[DependencyResolver] = None,
        build_cache: Optional[BuildCache] = None,
        production: bool = False,
        rendered: Optional[RenderedSet] = None,
    ) -> None:
        if not production and (resolver is None or build_cache is None):
            raise ValueError("development rendering needs a resolver and a build cache")
        self.registry = registry
        self.resolver = resolver
        self.build_cache = build_cache
        self.production = production
        self.rendered = rendered if rendered is not None else RenderedSet()

    def files(
        self,
        kind: Union[AssetKind, str],
        groups: Union[str, Iterable[str], None] = None,
        force: bool = False,
    ) -> List[str]:
        """All output references for *groups* (default: every group of *kind*)."""
        kind = AssetKind(kind)
        names = as_name_list(groups) or self.registry.names(kind)

        if self.production:
            return self._production_files(kind, names, force)
        return self._development_files(kind, names, force)

    def render(
        self,
        kind: Union[AssetKind, str],
        groups: Union[str, Iterable[str], None] = None,
        force: bool = False,
    ) -> List[str]:
        """Like :meth:`files`, minus references already rendered in this scope."""
        return self.rendered.claim(self.files(kind, groups, force))

    def _development_files(self, kind: AssetKind, names: List[str], force: bool) -> List[str]:
        files: List[str] = []
        for name in self.resolver.resolve(kind, names, force=force):
            group = self.registry.get(kind, name)
            if group is None or (not group.enabled and not force):
                continue
            files.extend(self.build_cache.ensure_built(group))
        return [f for f in files if f]

    def _production_files(self, kind: AssetKind, names: List[str], force: bool) -> List[str]:
        files: List[str] = []
        for name in names:
            group = self.registry.get(kind, name)
            if group is None:
                logger.debug("Skipping unknown %s group '%s'", kind.value, name)
                continue
            if not group.enabled and not force:
                continue
            files.extend(group.compiled_files)
        return [f for f in files if f]
