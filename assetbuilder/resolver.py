"""
Dependency resolution over asset groups.

``resolve`` expands a list of group names into the ordered closure needed
to render them: every dependency is emitted immediately before the group
that requires it, and duplicates keep their first position.

Resolution is also how conditionally-disabled groups become renderable:
each visited group is switched on. The one exception is a disabled group
named directly by the caller (depth 0) without ``force``; it stays off
and its dependencies are not expanded. A disabled group reached as a
dependency is always pulled in.

Cycles are not detected as such. Recursion is bounded by
``max_depth`` (config ``deps_max_depth``) and going past it raises
:class:`~assetbuilder.faults.DependencyDepthExceeded`.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Union

from .faults import DependencyDepthExceeded
from .registry import AssetKind, GroupRegistry, as_name_list

logger = logging.getLogger("assetbuilder.resolver")

DEFAULT_MAX_DEPTH = 5


def unique(names: Iterable[str]) -> List[str]:
    """Drop repeats, keeping the first occurrence of each name."""
    seen = set()
    ordered: List[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered


class DependencyResolver:
    """Expands group names of one kind into their dependency closure."""

    __slots__ = ("registry", "max_depth")

    def __init__(self, registry: GroupRegistry, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.registry = registry
        self.max_depth = max_depth

    def resolve(
        self,
        kind: Union[AssetKind, str],
        names: Union[str, Iterable[str]],
        *,
        force: bool = False,
        depth: int = 0,
    ) -> List[str]:
        """
        Resolve *names* of *kind* into an ordered, de-duplicated list.

        Args:
            kind: Asset kind whose namespace the names live in.
            names: A group name or a sequence of names.
            force: Expand top-level groups even when they are disabled.
            depth: Current recursion depth (callers leave the default).

        Returns:
            Group names, dependencies first.

        Raises:
            DependencyDepthExceeded: When expansion goes past ``max_depth``.
        """
        names = as_name_list(names)
        if depth > self.max_depth:
            raise DependencyDepthExceeded(names, depth, self.max_depth)

        resolved: List[str] = []
        for name in names:
            group = self.registry.get(kind, name)
            if group is None:
                logger.debug("Skipping unknown %s group '%s'", AssetKind(kind).value, name)
                continue

            if depth == 0 and not force and not group.enabled:
                logger.debug("Skipping disabled %s group '%s'", AssetKind(kind).value, name)
                continue

            self.registry.enable(name, kind)
            if group.deps:
                resolved.extend(self.resolve(kind, group.deps, force=force, depth=depth + 1))
            resolved.append(name)

        return unique(resolved)
