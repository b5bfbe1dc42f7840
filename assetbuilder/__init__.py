"""
AssetBuilder - grouped, dependency-aware asset compilation.

Groups of scripts, stylesheets and LESS sources are resolved in
dependency order, compiled once per fingerprint into a content-addressed
cache, and rendered as ``<script>``/``<link>`` tags. Production serves a
precomputed manifest.
"""

from .cache import (
    BuildCache,
    BuildStats,
    FilesystemCacheStore,
    Fingerprint,
    MemoryCacheStore,
    MemoryProcessCache,
    NullProcessCache,
)
from .config import AssetBuilderConfig, ConfigLoader
from .core import AssetBuilder
from .faults import (
    CacheStoreUnavailable,
    ConfigInvalidFault,
    DependencyDepthExceeded,
    Fault,
    ManifestMissing,
    SourceMissing,
    TransformFailure,
    UnknownGroup,
)
from .html import HtmlTagRenderer
from .manifest import ManifestEntry, ProductionManifestBuilder, RenderManifest
from .registry import AssetGroup, AssetKind, GroupRegistry
from .renderer import RenderedSet, Renderer
from .resolver import DependencyResolver
from .transforms import CssMinifier, JsMinifier, LessCompiler, SourceFile, TransformPipeline

__version__ = "1.0.0"

__all__ = [
    "AssetBuilder",
    "AssetBuilderConfig",
    "ConfigLoader",
    "AssetGroup",
    "AssetKind",
    "GroupRegistry",
    "DependencyResolver",
    "BuildCache",
    "BuildStats",
    "Fingerprint",
    "MemoryCacheStore",
    "FilesystemCacheStore",
    "MemoryProcessCache",
    "NullProcessCache",
    "TransformPipeline",
    "SourceFile",
    "LessCompiler",
    "CssMinifier",
    "JsMinifier",
    "Renderer",
    "RenderedSet",
    "RenderManifest",
    "ManifestEntry",
    "ProductionManifestBuilder",
    "HtmlTagRenderer",
    "Fault",
    "ConfigInvalidFault",
    "UnknownGroup",
    "DependencyDepthExceeded",
    "TransformFailure",
    "SourceMissing",
    "CacheStoreUnavailable",
    "ManifestMissing",
]
