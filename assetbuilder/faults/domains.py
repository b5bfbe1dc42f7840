"""
AssetFaults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults
- REGISTRY faults (unknown groups, dependency depth)
- BUILD faults (transforms, missing sources)
- CACHE faults (persistent store)
- MANIFEST faults (production manifest)
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistryFault(Fault):
    """Base class for group registry faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REGISTRY,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class UnknownGroup(RegistryFault):
    """A requested group name is not defined for the given kind."""

    def __init__(self, kind: str, name: str, **kwargs):
        self.kind = kind
        self.name = name
        super().__init__(
            code="UNKNOWN_GROUP",
            message=f"No {kind} group named '{name}'",
            severity=Severity.WARN,
            metadata={"kind": kind, "group": name, **kwargs.get("metadata", {})},
        )


class DependencyDepthExceeded(RegistryFault):
    """Dependency expansion went deeper than the configured bound."""

    def __init__(self, group_names: Sequence[str], depth: int, max_depth: int, **kwargs):
        self.group_names = list(group_names)
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(
            code="DEPENDENCY_DEPTH_EXCEEDED",
            message=(
                f"Reached depth {depth} trying to resolve dependencies. "
                f"You've probably got some circular ones involving {','.join(self.group_names)}. "
                f"If not, adjust the config key deps_max_depth (currently {max_depth})."
            ),
            metadata={
                "groups": self.group_names,
                "depth": depth,
                "max_depth": max_depth,
                **kwargs.get("metadata", {}),
            },
        )


# ============================================================================
# BUILD Faults
# ============================================================================

class BuildFault(Fault):
    """Base class for asset build faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.BUILD,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class TransformFailure(BuildFault):
    """A compile or minify transform rejected its input."""

    def __init__(self, transform: str, reason: str, source: str = "", **kwargs):
        self.transform = transform
        self.reason = reason
        self.source = source
        where = f" on '{source}'" if source else ""
        super().__init__(
            code="TRANSFORM_FAILED",
            message=f"Transform '{transform}' failed{where}: {reason}",
            metadata={"transform": transform, "reason": reason, "source": source, **kwargs.get("metadata", {})},
        )


class SourceMissing(BuildFault):
    """A local source file declared by a group does not exist."""

    def __init__(self, group: str, path: str, **kwargs):
        self.group = group
        self.path = path
        super().__init__(
            code="SOURCE_MISSING",
            message=f"Group '{group}' references missing source '{path}'",
            metadata={"group": group, "path": path, **kwargs.get("metadata", {})},
        )


# ============================================================================
# CACHE Faults
# ============================================================================

class CacheStoreUnavailable(Fault):
    """The persistent build cache cannot be read or written."""

    def __init__(self, root: str, operation: str, reason: str, **kwargs):
        self.root = root
        self.operation = operation
        super().__init__(
            code="CACHE_STORE_UNAVAILABLE",
            message=f"Build cache at '{root}' unavailable during {operation}: {reason}",
            domain=FaultDomain.CACHE,
            severity=Severity.ERROR,
            retryable=True,
            metadata={"root": root, "operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# MANIFEST Faults
# ============================================================================

class ManifestMissing(Fault):
    """Production mode could not load its manifest."""

    def __init__(self, path: str, reason: str = "file not found", **kwargs):
        self.path = path
        super().__init__(
            code="MANIFEST_MISSING",
            message=f"Production asset manifest '{path}' could not be loaded: {reason}. "
                    f"Run `ab build` before serving in production mode.",
            domain=FaultDomain.MANIFEST,
            severity=Severity.FATAL,
            retryable=False,
            metadata={"path": path, "reason": reason, **kwargs.get("metadata", {})},
        )
