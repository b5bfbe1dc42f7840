"""
Tests for the transform pipeline and the shipped transforms.

The LESS compiler is exercised against small shell scripts standing in
for the ``lessc`` executable.
"""

import pytest

from assetbuilder.config import AssetBuilderConfig
from assetbuilder.faults import TransformFailure
from assetbuilder.registry import AssetKind
from assetbuilder.transforms import (
    CssMinifier,
    JsMinifier,
    LessCompiler,
    SourceFile,
    TransformPipeline,
    describe,
)

from conftest import FakeLessCompiler, make_script


# ════════════════════════════════════════════════════════════════════════
# LessCompiler
# ════════════════════════════════════════════════════════════════════════


class TestLessCompiler:
    def test_params(self):
        compiler = LessCompiler("lessc", ["--strict-math=on"])
        assert describe(compiler) == {"name": "lessc", "params": {"binary": "lessc", "options": ["--strict-math=on"]}}

    def test_stdout_is_output(self, tmp_path):
        compiler = LessCompiler(make_script(tmp_path, "fake-lessc", "cat"))
        assert compiler.apply(b".a { color: red; }", source=str(tmp_path / "a.less")) == b".a { color: red; }"

    def test_include_path_passed(self, tmp_path):
        compiler = LessCompiler(make_script(tmp_path, "fake-lessc", 'echo "$@"'))
        out = compiler.apply(b"", source=str(tmp_path / "less" / "theme.less"))
        assert f"--include-path={tmp_path / 'less'}".encode() in out
        assert out.strip().endswith(b"-")

    def test_nonzero_exit(self, tmp_path):
        compiler = LessCompiler(make_script(tmp_path, "bad-lessc", "echo 'ParseError: missing }' >&2; exit 2"))
        with pytest.raises(TransformFailure) as exc_info:
            compiler.apply(b".a {", source="theme.less")
        assert exc_info.value.code == "TRANSFORM_FAILED"
        assert "ParseError" in exc_info.value.reason
        assert exc_info.value.source == "theme.less"

    def test_missing_executable(self, tmp_path):
        compiler = LessCompiler(str(tmp_path / "no-such-lessc"))
        with pytest.raises(TransformFailure) as exc_info:
            compiler.apply(b"")
        assert "not found" in exc_info.value.reason

    def test_timeout(self, tmp_path):
        compiler = LessCompiler(make_script(tmp_path, "slow-lessc", "sleep 5"), timeout=0.2)
        with pytest.raises(TransformFailure) as exc_info:
            compiler.apply(b"")
        assert "timed out" in exc_info.value.reason


# ════════════════════════════════════════════════════════════════════════
# Minifiers
# ════════════════════════════════════════════════════════════════════════


class TestMinifiers:
    def test_css(self):
        assert CssMinifier().apply(b"body {\n  margin: 0;\n}\n/* note */\n") == b"body{margin:0}"

    def test_css_bang_comments(self):
        out = CssMinifier(keep_bang_comments=True).apply(b"/*! license */\nbody { margin: 0; }")
        assert out.startswith(b"/*! license */")

    def test_js(self):
        out = JsMinifier().apply(b"var  a = 1;\n// comment\nvar b = 2;\n")
        assert out.startswith(b"var a=1;")
        assert b"comment" not in out
        assert out.rstrip().endswith(b"var b=2;")

    def test_invalid_utf8(self):
        with pytest.raises(TransformFailure):
            JsMinifier().apply(b"\xff\xfe\xfa")


# ════════════════════════════════════════════════════════════════════════
# Pipeline
# ════════════════════════════════════════════════════════════════════════


class TestTransformPipeline:
    def test_from_config(self):
        pipeline = TransformPipeline.from_config(AssetBuilderConfig(lessc="/opt/lessc", lessc_options=["-x"]))
        assert pipeline.compiler.binary == "/opt/lessc"
        assert pipeline.compiler.options == ["-x"]

    def test_chain(self):
        pipeline = TransformPipeline(compiler=FakeLessCompiler())
        assert pipeline.describe("js") == []
        assert [t["name"] for t in pipeline.describe("css", less=True, minify=True)] == ["fake-less", "rcssmin"]
        assert [t["name"] for t in pipeline.describe(AssetKind.JS, minify=True)] == ["rjsmin"]

    def test_compile_only_flagged_sources(self, tmp_path):
        (tmp_path / "a.less").write_bytes(b"@x: 1;")
        (tmp_path / "b.css").write_bytes(b".b {}")
        fake = FakeLessCompiler()
        pipeline = TransformPipeline(compiler=fake)
        data = pipeline.compile("css", [
            SourceFile(tmp_path / "a.less", "a.less", compile=True),
            SourceFile(tmp_path / "b.css", "b.css"),
        ])
        assert data == b"/* compiled plain */\n@x: 1;\n.b {}"
        assert fake.calls == 1

    def test_compile_unreadable_source(self, tmp_path):
        pipeline = TransformPipeline(compiler=FakeLessCompiler())
        with pytest.raises(TransformFailure) as exc_info:
            pipeline.compile("js", [SourceFile(tmp_path / "gone.js", "gone.js")])
        assert exc_info.value.transform == "read"

    def test_minify_without_minifier(self):
        pipeline = TransformPipeline(compiler=FakeLessCompiler(), minifiers={})
        assert pipeline.minify("js", b"var  a = 1;") == b"var  a = 1;"
