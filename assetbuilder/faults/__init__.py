"""
AssetFaults - Typed fault signals for the asset pipeline.

Errors are structured values carrying a stable code, a domain and a
severity. Resolution skips (disabled or unknown groups) are silent;
everything else propagates as one of the faults below.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigInvalidFault,
    RegistryFault,
    UnknownGroup,
    DependencyDepthExceeded,
    BuildFault,
    TransformFailure,
    SourceMissing,
    CacheStoreUnavailable,
    ManifestMissing,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",

    # Domain faults
    "ConfigFault",
    "ConfigInvalidFault",
    "RegistryFault",
    "UnknownGroup",
    "DependencyDepthExceeded",
    "BuildFault",
    "TransformFailure",
    "SourceMissing",
    "CacheStoreUnavailable",
    "ManifestMissing",
]
