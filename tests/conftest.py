"""
Shared test fixtures and helpers for the AssetBuilder test suite.

Every test gets a throw-away docroot laid out like a real site::

    <tmp>/assets/js/       app.js widgets.js util.js
    <tmp>/assets/css/      reset.css extra.css
    <tmp>/assets/css/less/ theme.less vars.less
    <tmp>/assets/cache/    (build output)

LESS compilation goes through ``FakeLessCompiler`` so no ``lessc``
binary is needed.
"""

import os
import stat
from pathlib import Path
from typing import Any, Dict

import pytest

from assetbuilder.cache import MemoryCacheStore, MemoryProcessCache
from assetbuilder.config import AssetBuilderConfig
from assetbuilder.core import AssetBuilder
from assetbuilder.transforms import TransformPipeline

JQUERY_URL = "https://code.jquery.com/jquery.min.js"


# ============================================================================
# Transforms
# ============================================================================


class FakeLessCompiler:
    """Stands in for lessc: tags the source so compiled output is recognisable."""

    name = "fake-less"

    def __init__(self, flavor: str = "plain") -> None:
        self.flavor = flavor
        self.calls = 0

    def params(self) -> Dict[str, Any]:
        return {"flavor": self.flavor}

    def apply(self, data: bytes, *, source: str = "") -> bytes:
        self.calls += 1
        return b"/* compiled " + self.flavor.encode() + b" */\n" + data


# ============================================================================
# Filesystem helpers
# ============================================================================


def write(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def bump_mtime(path: Path, seconds: int = 10) -> None:
    """Move a file's mtime forward so fingerprints see a change."""
    st = path.stat()
    delta = seconds * 1_000_000_000
    os.utime(path, ns=(st.st_atime_ns + delta, st.st_mtime_ns + delta))


def make_script(directory: Path, name: str, body: str) -> str:
    """Write an executable shell script (a stand-in for external tools)."""
    path = directory / name
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return str(path)


def default_groups() -> Dict[str, Any]:
    return {
        "js": {
            "jquery": {"js": [JQUERY_URL], "enabled": True},
            "util": {"js": ["util.js"]},
            "app": {"js": ["app.js", "widgets.js"], "deps": ["jquery", "util"], "enabled": True},
        },
        "css": {
            "base": {"css": ["reset.css"], "enabled": True},
            "theme": {"less": ["theme.less"], "css": ["extra.css"], "deps": "base"},
        },
    }


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def docroot(tmp_path):
    root = tmp_path / "site"
    write(root, "assets/js/app.js", "var app = 1;\n")
    write(root, "assets/js/widgets.js", "var widgets = 2;\n")
    write(root, "assets/js/util.js", "function util() { return 3; }\n")
    write(root, "assets/css/reset.css", "body { margin: 0; }\n")
    write(root, "assets/css/extra.css", ".extra { color: red; }\n")
    write(root, "assets/css/less/theme.less", "@import 'vars.less';\n.theme { color: @brand; }\n")
    write(root, "assets/css/less/vars.less", "@brand: #336699;\n")
    return root


@pytest.fixture
def fake_less():
    return FakeLessCompiler()


@pytest.fixture
def pipeline(fake_less):
    return TransformPipeline(compiler=fake_less)


@pytest.fixture
def make_config(docroot):
    def _make(**overrides) -> AssetBuilderConfig:
        values = {"docroot": str(docroot), "groups": default_groups()}
        values.update(overrides)
        return AssetBuilderConfig(**values)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def memory_store():
    return MemoryCacheStore()


@pytest.fixture
def process_cache():
    return MemoryProcessCache()


@pytest.fixture
def make_builder(make_config, pipeline, process_cache):
    """Factory for facades over the temp docroot (filesystem store by default)."""

    def _make(config: AssetBuilderConfig = None, **kwargs) -> AssetBuilder:
        kwargs.setdefault("pipeline", pipeline)
        kwargs.setdefault("process_cache", process_cache)
        return AssetBuilder(config or make_config(), **kwargs)

    return _make
