"""
AssetBuilder - the context object a host application holds.

Wires configuration, the group registry, dependency resolution, the build
cache, the production manifest and HTML tag formatting together::

    builder = AssetBuilder.from_config(["assetbuilder.yaml"])
    builder.enable("datepicker")
    head = builder.render_css() + builder.render_js()

One instance per application is typical. Calls that mutate the shared
``enabled`` flags hold the registry lock for their whole duration; hosts
that want full per-request isolation call ``reset_rendered()`` at the start
of each request, or build per-request instances over ``registry.snapshot()``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from .cache.build import BuildCache
from .cache.process import ProcessCache, get_default_process_cache
from .cache.store import CacheStoreProtocol, FilesystemCacheStore
from .config import AssetBuilderConfig, ConfigLoader
from .faults import ManifestMissing
from .html import HtmlTagRenderer
from .manifest import ProductionManifestBuilder, RenderManifest, load_manifest, manifest_cache_key
from .registry import AssetKind, GroupRegistry, is_local
from .renderer import Renderer, RenderedSet
from .resolver import DependencyResolver
from .transforms import TransformPipeline

logger = logging.getLogger("assetbuilder.core")

GroupNames = Union[str, Iterable[str], None]


class AssetBuilder:
    """
    Asset pipeline facade.

    Args:
        config: Typed settings.
        store: Persistent store for compiled output
            (default: filesystem store at ``cache_dir``).
        pipeline: Compile/minify transforms (default: from config).
        process_cache: Where the production manifest is kept between
            requests (default: process-wide memory cache).
        registry: Pre-built registry; by default built from configuration
            in development and from the manifest in production.

    Raises:
        ManifestMissing: In production mode when no manifest was built.
    """

    def __init__(
        self,
        config: AssetBuilderConfig,
        *,
        store: Optional[CacheStoreProtocol] = None,
        pipeline: Optional[TransformPipeline] = None,
        process_cache: Optional[ProcessCache] = None,
        registry: Optional[GroupRegistry] = None,
    ) -> None:
        self.config = config
        self.production = config.production
        self.store = store if store is not None else FilesystemCacheStore(config.cache_root)
        self.pipeline = pipeline if pipeline is not None else TransformPipeline.from_config(config)
        self.process_cache = process_cache if process_cache is not None else get_default_process_cache()
        self.html = HtmlTagRenderer(config.base_url, config.html5)

        if registry is None:
            registry = self._load_registry()
        self.registry = registry

        self.resolver = DependencyResolver(registry, max_depth=config.deps_max_depth)
        self.build_cache = BuildCache(config, self.store, self.pipeline)
        self.rendered = RenderedSet()
        self.renderer = Renderer(
            registry,
            resolver=self.resolver,
            build_cache=self.build_cache,
            production=self.production,
            rendered=self.rendered,
        )
        self.inline_assets: Dict[str, List[str]] = {kind.value: [] for kind in AssetKind}
        self.clear_cache_blacklist: Set[str] = self._protected_files(self._manifest_on_disk())

    @classmethod
    def from_config(
        cls,
        paths: Optional[List[str]] = None,
        *,
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        **kwargs,
    ) -> "AssetBuilder":
        """Load layered configuration and build an instance from it."""
        loader = ConfigLoader.load(paths=paths, env_file=env_file, overrides=overrides)
        return cls(loader.get_asset_config(), **kwargs)

    def _load_registry(self) -> GroupRegistry:
        if not self.production:
            return GroupRegistry.from_config(self.config.groups)
        manifest = load_manifest(
            self.config.manifest_path,
            self.process_cache,
            manifest_cache_key(self.config.docroot),
        )
        logger.debug("Production registry loaded from manifest built at %s", manifest.built_at)
        return GroupRegistry.from_manifest(manifest)

    # ── Groups ───────────────────────────────────────────────────────

    def enable(self, groups: GroupNames) -> None:
        """Enable groups by name in every kind defining them."""
        self.registry.enable(groups)

    def disable(self, groups: GroupNames) -> None:
        self.registry.disable(groups)

    def resolve(self, kind: Union[AssetKind, str], groups: GroupNames, force: bool = False) -> List[str]:
        with self.registry.lock:
            return self.resolver.resolve(kind, groups, force=force)

    # ── Rendering ────────────────────────────────────────────────────

    def files(self, kind: Union[AssetKind, str], groups: GroupNames = None, force: bool = False) -> List[str]:
        with self.registry.lock:
            return self.renderer.files(kind, groups, force)

    def js_files(self, groups: GroupNames = None, force: bool = False) -> List[str]:
        return self.files(AssetKind.JS, groups, force)

    def css_files(self, groups: GroupNames = None, force: bool = False) -> List[str]:
        return self.files(AssetKind.CSS, groups, force)

    def render(self, kind: Union[AssetKind, str], groups: GroupNames = None, force: bool = False) -> List[str]:
        """References not yet rendered in the current scope, in order."""
        with self.registry.lock:
            return self.renderer.render(kind, groups, force)

    def render_js(self, groups: GroupNames = None, force: bool = False) -> str:
        """``<script>`` tags for the enabled (or forced) groups and their deps."""
        return self.html.tags("js", self.render(AssetKind.JS, groups, force))

    def render_css(self, groups: GroupNames = None, force: bool = False) -> str:
        """``<link>`` tags for the enabled (or forced) groups and their deps."""
        return self.html.tags("css", self.render(AssetKind.CSS, groups, force))

    def reset_rendered(self) -> None:
        """Start a new render scope (e.g. at the beginning of a request)."""
        self.rendered.clear()

    # ── Inline assets ────────────────────────────────────────────────

    def js_inline(self, content: str) -> None:
        self.inline_assets["js"].append(content)

    def js_inline_function(self, function: str, *args: Any) -> None:
        """Queue ``function(arg1,arg2,...);`` with JSON-encoded arguments."""
        encoded = ",".join(json.dumps(arg, separators=(",", ":")) for arg in args)
        self.js_inline(f"{function}({encoded});")

    def css_inline(self, content: str) -> None:
        self.inline_assets["css"].append(content)

    def render_js_inline(self) -> str:
        return self.html.inline_script(";\n".join(self.inline_assets["js"]))

    def render_css_inline(self) -> str:
        return self.html.inline_style("\n".join(self.inline_assets["css"]))

    # ── Production build ─────────────────────────────────────────────

    def build_production(self) -> RenderManifest:
        """
        Build every group for production and write the manifest.

        Cache files that are not part of the new build are deleted.
        """
        builder = ProductionManifestBuilder(
            self.config,
            self.store,
            pipeline=self.pipeline,
            process_cache=self.process_cache,
        )
        manifest = builder.build_all()
        self.clear_cache_blacklist = self._protected_files(manifest)
        return manifest

    # ── Cache maintenance ────────────────────────────────────────────

    def _manifest_on_disk(self) -> Optional[RenderManifest]:
        if not self.config.manifest_path.exists():
            return None
        try:
            return RenderManifest.load(self.config.manifest_path)
        except ManifestMissing as exc:
            logger.warning("Ignoring unreadable manifest while protecting cache files: %s", exc)
            return None

    def _protected_files(self, manifest: Optional[RenderManifest]) -> Set[str]:
        """Cache file names that cache clears never delete."""
        protected = {self.config.manifest_name}
        if manifest is not None:
            protected.update(Path(ref).name for ref in manifest.files() if is_local(ref))
        return protected

    def _clear(self, pattern: str, before: Union[float, datetime, None]) -> List[str]:
        if before is None:
            before = datetime.now()
        if isinstance(before, datetime):
            before = before.timestamp()
        return self.store.sweep(keep=self.clear_cache_blacklist, pattern=pattern, before=before)

    def clear_cache(self, before: Union[float, datetime, None] = None) -> List[str]:
        """
        Delete cache files last modified before *before* (default: now).

        Returns:
            The deleted file names.
        """
        return self._clear("*", before)

    def clear_js_cache(self, before: Union[float, datetime, None] = None) -> List[str]:
        return self._clear("*.js", before)

    def clear_css_cache(self, before: Union[float, datetime, None] = None) -> List[str]:
        return self._clear("*.css", before)

    # ── URLs ─────────────────────────────────────────────────────────

    def get_js_url(self) -> str:
        return self.config.base_url + self.config.source_dir(AssetKind.JS)

    def get_css_url(self) -> str:
        return self.config.base_url + self.config.source_dir(AssetKind.CSS)

    def get_image_url(self) -> str:
        return self.config.base_url + self.config.asset_dir + self.config.image_dir
