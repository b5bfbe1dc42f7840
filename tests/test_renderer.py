"""
Tests for the renderer (development and production paths) and the
per-scope de-duplication of rendered references.
"""

import re
import threading

import pytest

from assetbuilder.cache import BuildCache
from assetbuilder.registry import GroupRegistry
from assetbuilder.renderer import RenderedSet, Renderer
from assetbuilder.resolver import DependencyResolver

from conftest import JQUERY_URL


def cache_ref(group, kind):
    return re.compile(rf"^assets/cache/{group}-[0-9a-f]{{32}}\.{kind}$")


@pytest.fixture
def make_renderer(pipeline, memory_store):
    def _make(config):
        registry = GroupRegistry.from_config(config.groups)
        renderer = Renderer(
            registry,
            resolver=DependencyResolver(registry, max_depth=config.deps_max_depth),
            build_cache=BuildCache(config, memory_store, pipeline),
        )
        return renderer, registry

    return _make


class TestRenderedSet:
    def test_claim(self):
        rendered = RenderedSet()
        assert rendered.claim(["a", "b"]) == ["a", "b"]
        assert rendered.claim(["b", "c", "a"]) == ["c"]
        assert "a" in rendered
        assert len(rendered) == 3

    def test_claim_drops_repeats_within_call(self):
        assert RenderedSet().claim(["a", "a", "b"]) == ["a", "b"]

    def test_clear(self):
        rendered = RenderedSet()
        rendered.claim(["a"])
        rendered.clear()
        assert rendered.claim(["a"]) == ["a"]

    def test_concurrent_claims_emit_once(self):
        rendered = RenderedSet()
        refs = [f"r{i}" for i in range(200)]
        results = []

        def worker():
            results.append(rendered.claim(refs))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        emitted = [ref for batch in results for ref in batch]
        assert sorted(emitted) == sorted(refs)


class TestDevelopmentRender:
    def test_base_theme_forced(self, make_config, make_renderer):
        config = make_config(groups={
            "css": {
                "base": {"css": ["reset.css"], "enabled": True},
                "theme": {"css": ["extra.css"], "deps": ["base"], "enabled": False},
            }
        })
        renderer, registry = make_renderer(config)
        refs = renderer.render("css", ["theme"], force=True)

        assert len(refs) == 2
        assert cache_ref("base", "css").match(refs[0])
        assert cache_ref("theme", "css").match(refs[1])
        assert registry.is_enabled("css", "base")
        assert registry.is_enabled("css", "theme")

    def test_disabled_top_level_not_rendered(self, config, make_renderer):
        renderer, _ = make_renderer(config)
        assert renderer.files("css", ["theme"]) == []

    def test_default_renders_all_enabled(self, config, make_renderer):
        renderer, _ = make_renderer(config)
        refs = renderer.files("js")
        # jquery (remote), util (pulled in as a dep of app), app
        assert refs[0] == JQUERY_URL
        assert cache_ref("util", "js").match(refs[1])
        assert cache_ref("app", "js").match(refs[2])
        assert len(refs) == 3

    def test_shared_dependency_rendered_once(self, make_config, make_renderer):
        groups = {
            "js": {
                "lib": {"js": ["util.js"], "enabled": True},
                "forms": {"js": ["app.js"], "deps": ["lib"], "enabled": True},
                "grid": {"js": ["widgets.js"], "deps": ["lib"], "enabled": True},
            }
        }
        renderer, _ = make_renderer(make_config(groups=groups))
        first = renderer.render("js", "forms")
        second = renderer.render("js", "grid")

        assert len(first) == 2
        assert len(second) == 1
        assert cache_ref("lib", "js").match(first[0])
        assert cache_ref("grid", "js").match(second[0])
        assert renderer.render("js", ["forms", "grid"]) == []

    def test_remote_only_group(self, config, make_renderer, memory_store):
        renderer, _ = make_renderer(config)
        assert renderer.files("js", "jquery") == [JQUERY_URL]
        assert len(memory_store) == 0

    def test_unknown_groups_skipped(self, config, make_renderer):
        renderer, _ = make_renderer(config)
        assert renderer.files("js", ["ghost"]) == []

    def test_development_requires_builder(self, config):
        with pytest.raises(ValueError):
            Renderer(GroupRegistry.from_config(config.groups))


class TestProductionRender:
    @pytest.fixture
    def registry(self):
        return GroupRegistry.from_config({
            "js": {
                "app": {"enabled": True},
                "admin": {"enabled": False},
            }
        })

    def test_uses_compiled_files(self, registry):
        registry.get("js", "app").compiled_files = [JQUERY_URL, "assets/cache/app-1.js"]
        registry.get("js", "admin").compiled_files = [JQUERY_URL, "assets/cache/admin-2.js"]
        renderer = Renderer(registry, production=True)

        assert renderer.files("js") == [JQUERY_URL, "assets/cache/app-1.js"]
        assert renderer.files("js", "admin", force=True) == [JQUERY_URL, "assets/cache/admin-2.js"]
        assert renderer.files("js", ["ghost", "app"]) == [JQUERY_URL, "assets/cache/app-1.js"]

    def test_render_dedupes(self, registry):
        registry.get("js", "app").compiled_files = [JQUERY_URL, "assets/cache/app-1.js"]
        registry.get("js", "admin").compiled_files = [JQUERY_URL, "assets/cache/admin-2.js"]
        renderer = Renderer(registry, production=True)

        assert renderer.render("js", "app") == [JQUERY_URL, "assets/cache/app-1.js"]
        assert renderer.render("js", "admin", force=True) == ["assets/cache/admin-2.js"]
