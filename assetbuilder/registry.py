"""
Group registry - declarative asset groups keyed by kind and name.

Groups come from configuration::

    groups:
      js:
        jquery: {js: ["https://code.jquery.com/jquery.min.js"], enabled: true}
        app:    {js: [app.js, widgets.js], deps: [jquery], enabled: true}
      css:
        base:   {css: [reset.css], enabled: true}
        theme:  {less: [theme.less], css: [extra.css], deps: base}

or, in production mode, from the compiled manifest (each group then
carries its precomputed ``compiled_files``).

The ``enabled`` flag is mutable shared state: ``enable``/``disable`` and
dependency resolution flip it. Every mutation takes the registry lock;
hosts serving concurrent requests hold ``registry.lock`` around a whole
render, or work on a ``snapshot()``.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Union

from .faults import ConfigInvalidFault, UnknownGroup

if TYPE_CHECKING:
    from .manifest import RenderManifest

logger = logging.getLogger("assetbuilder.registry")

REMOTE_PREFIXES = ("http://", "https://", "//")


class AssetKind(str, Enum):
    """The two asset kinds; values double as file extensions."""

    JS = "js"
    CSS = "css"


def is_local(reference: str) -> bool:
    """True unless *reference* is a remote URL passed through verbatim."""
    return not reference.startswith(REMOTE_PREFIXES)


def as_name_list(names: Union[str, Iterable[str], None]) -> List[str]:
    """Normalize a single name, a sequence, or ``None`` into a list."""
    if names is None:
        return []
    if isinstance(names, str):
        return [names] if names else []
    return [str(n) for n in names]


@dataclass
class AssetGroup:
    """A named collection of same-kind source references."""

    name: str
    kind: AssetKind
    files: List[str] = field(default_factory=list)
    less: List[str] = field(default_factory=list)
    deps: List[str] = field(default_factory=list)
    enabled: bool = False
    compiled_files: List[str] = field(default_factory=list)

    @property
    def local_files(self) -> List[str]:
        return [f for f in self.files if is_local(f)]

    @property
    def remote_files(self) -> List[str]:
        return [f for f in self.files if not is_local(f)]

    @property
    def has_sources(self) -> bool:
        return bool(self.files or self.less)

    @classmethod
    def from_dict(cls, kind: AssetKind, name: str, data: Optional[Dict[str, Any]]) -> "AssetGroup":
        """
        Build a group from its configuration mapping.

        Recognised keys: the kind's own key (``js`` or ``css``), ``less``
        (style groups only), ``deps`` and ``enabled``.

        Raises:
            ConfigInvalidFault: If a key has the wrong shape.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigInvalidFault(f"groups.{kind.value}.{name}", "group definition must be a mapping")

        def _names(key: str) -> List[str]:
            value = data.get(key)
            if value is not None and not isinstance(value, (str, list, tuple)):
                raise ConfigInvalidFault(
                    f"groups.{kind.value}.{name}.{key}", "expected a name or a list of names"
                )
            return as_name_list(value)

        less = _names("less")
        if less and kind is not AssetKind.CSS:
            raise ConfigInvalidFault(f"groups.{kind.value}.{name}.less", "LESS sources are only valid in css groups")

        return cls(
            name=name,
            kind=kind,
            files=_names(kind.value),
            less=less,
            deps=_names("deps"),
            enabled=bool(data.get("enabled", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {self.kind.value: list(self.files), "deps": list(self.deps), "enabled": self.enabled}
        if self.less:
            data["less"] = list(self.less)
        return data


class GroupRegistry:
    """
    Holds every configured group, namespaced by kind.

    Lookups of unknown names return ``None`` (``get``) so resolution can
    skip them silently; ``require`` raises :class:`UnknownGroup` for
    callers that want a hard failure.
    """

    __slots__ = ("_groups", "lock")

    def __init__(self, groups: Iterable[AssetGroup] = ()) -> None:
        self._groups: Dict[AssetKind, Dict[str, AssetGroup]] = {kind: {} for kind in AssetKind}
        self.lock = threading.RLock()
        for group in groups:
            self.add(group)

    @classmethod
    def from_config(cls, definitions: Optional[Dict[str, Any]]) -> "GroupRegistry":
        """Build a registry from the ``groups`` configuration mapping."""
        registry = cls()
        for kind_key, groups in (definitions or {}).items():
            try:
                kind = AssetKind(kind_key)
            except ValueError:
                raise ConfigInvalidFault(f"groups.{kind_key}", "kind must be 'js' or 'css'") from None
            if not isinstance(groups, dict):
                raise ConfigInvalidFault(f"groups.{kind_key}", "expected a mapping of group names")
            for name, data in groups.items():
                registry.add(AssetGroup.from_dict(kind, str(name), data))
        logger.debug(
            "Loaded %d js and %d css groups",
            len(registry._groups[AssetKind.JS]),
            len(registry._groups[AssetKind.CSS]),
        )
        return registry

    @classmethod
    def from_manifest(cls, manifest: "RenderManifest") -> "GroupRegistry":
        """Build a production registry whose groups carry compiled files only."""
        registry = cls()
        for kind in AssetKind:
            for name, entry in manifest.entries(kind).items():
                registry.add(
                    AssetGroup(
                        name=name,
                        kind=kind,
                        enabled=entry.enabled,
                        compiled_files=list(entry.compiled_files),
                    )
                )
        return registry

    # ── Lookup ───────────────────────────────────────────────────────

    def add(self, group: AssetGroup) -> None:
        with self.lock:
            self._groups[AssetKind(group.kind)][group.name] = group

    def get(self, kind: Union[AssetKind, str], name: str) -> Optional[AssetGroup]:
        return self._groups[AssetKind(kind)].get(name)

    def require(self, kind: Union[AssetKind, str], name: str) -> AssetGroup:
        group = self.get(kind, name)
        if group is None:
            raise UnknownGroup(AssetKind(kind).value, name)
        return group

    def names(self, kind: Union[AssetKind, str]) -> List[str]:
        """Configured group names of *kind*, in declaration order."""
        return list(self._groups[AssetKind(kind)])

    def groups(self, kind: Union[AssetKind, str]) -> List[AssetGroup]:
        return list(self._groups[AssetKind(kind)].values())

    def __contains__(self, item) -> bool:
        if isinstance(item, tuple) and len(item) == 2:
            return self.get(*item) is not None
        return any(item in groups for groups in self._groups.values())

    def __iter__(self) -> Iterator[AssetGroup]:
        for kind in AssetKind:
            yield from self._groups[kind].values()

    def __len__(self) -> int:
        return sum(len(groups) for groups in self._groups.values())

    # ── Enablement ───────────────────────────────────────────────────

    def set_enabled(
        self,
        names: Union[str, Iterable[str]],
        enabled: bool,
        kind: Union[AssetKind, str, None] = None,
    ) -> None:
        """
        Enable or disable groups by name.

        Without *kind* the change applies to every kind defining the name.
        Unknown names are of no consequence and are ignored.
        """
        kinds = [AssetKind(kind)] if kind is not None else list(AssetKind)
        with self.lock:
            for name in as_name_list(names):
                for k in kinds:
                    group = self._groups[k].get(name)
                    if group is not None:
                        group.enabled = enabled

    def enable(self, names: Union[str, Iterable[str]], kind: Union[AssetKind, str, None] = None) -> None:
        self.set_enabled(names, True, kind)

    def disable(self, names: Union[str, Iterable[str]], kind: Union[AssetKind, str, None] = None) -> None:
        self.set_enabled(names, False, kind)

    def is_enabled(self, kind: Union[AssetKind, str], name: str) -> bool:
        group = self.get(kind, name)
        return bool(group and group.enabled)

    # ── Copies ───────────────────────────────────────────────────────

    def snapshot(self) -> "GroupRegistry":
        """Independent copy for per-request, copy-on-read use."""
        with self.lock:
            return GroupRegistry(copy.deepcopy(group) for group in self)
