"""
Transform pipeline - compile and minify group sources.

A transform is a pure function from bytes to bytes plus a stable identity
(``name`` and ``params()``). The build cache only needs that identity for
fingerprinting and the output bytes for storage; changing any parameter
changes every affected cache key.

Shipped transforms:

- :class:`LessCompiler`: runs the ``lessc`` executable on one source
- :class:`CssMinifier`: ``rcssmin``
- :class:`JsMinifier`: ``rjsmin``
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

import rcssmin
import rjsmin

from .faults import TransformFailure
from .registry import AssetKind

logger = logging.getLogger("assetbuilder.transforms")


class Transform(Protocol):
    """Minimal interface every transform must implement."""

    name: str

    def params(self) -> Dict[str, Any]:
        ...

    def apply(self, data: bytes, *, source: str = "") -> bytes:
        ...


def describe(transform: Transform) -> Dict[str, Any]:
    """Identity of *transform* as it enters a fingerprint."""
    return {"name": transform.name, "params": transform.params()}


@dataclass(frozen=True)
class SourceFile:
    """A local source ready for compilation."""

    path: Path       # filesystem location
    ref: str         # docroot-relative identity
    compile: bool = False


# ── Transforms ──────────────────────────────────────────────────────────


class LessCompiler:
    """
    Compiles one LESS source through the ``lessc`` command line tool.

    The source is fed on stdin with its own directory on the include
    path, so relative ``@import`` statements keep working.
    """

    name = "lessc"

    def __init__(self, binary: str = "lessc", options: Sequence[str] = (), timeout: float = 60.0) -> None:
        self.binary = binary
        self.options = list(options)
        self.timeout = timeout

    def params(self) -> Dict[str, Any]:
        return {"binary": self.binary, "options": self.options}

    def apply(self, data: bytes, *, source: str = "") -> bytes:
        cmd = [self.binary, "--no-color", *self.options]
        if source:
            cmd.append(f"--include-path={Path(source).parent}")
        cmd.append("-")

        try:
            result = subprocess.run(cmd, input=data, capture_output=True, timeout=self.timeout)
        except FileNotFoundError as exc:
            raise TransformFailure(self.name, f"executable '{self.binary}' not found", source) from exc
        except subprocess.TimeoutExpired as exc:
            raise TransformFailure(self.name, f"timed out after {self.timeout}s", source) from exc

        if result.returncode != 0:
            reason = result.stderr.decode("utf-8", "replace").strip() or f"exit status {result.returncode}"
            raise TransformFailure(self.name, reason, source)
        return result.stdout


class CssMinifier:
    """Stylesheet minification with rcssmin."""

    name = "rcssmin"

    def __init__(self, keep_bang_comments: bool = False) -> None:
        self.keep_bang_comments = keep_bang_comments

    def params(self) -> Dict[str, Any]:
        return {"keep_bang_comments": self.keep_bang_comments}

    def apply(self, data: bytes, *, source: str = "") -> bytes:
        try:
            text = data.decode("utf-8")
            return rcssmin.cssmin(text, keep_bang_comments=self.keep_bang_comments).encode("utf-8")
        except (UnicodeDecodeError, ValueError) as exc:
            raise TransformFailure(self.name, str(exc), source) from exc


class JsMinifier:
    """Script minification with rjsmin."""

    name = "rjsmin"

    def __init__(self, keep_bang_comments: bool = False) -> None:
        self.keep_bang_comments = keep_bang_comments

    def params(self) -> Dict[str, Any]:
        return {"keep_bang_comments": self.keep_bang_comments}

    def apply(self, data: bytes, *, source: str = "") -> bytes:
        try:
            text = data.decode("utf-8")
            return rjsmin.jsmin(text, keep_bang_comments=self.keep_bang_comments).encode("utf-8")
        except (UnicodeDecodeError, ValueError) as exc:
            raise TransformFailure(self.name, str(exc), source) from exc


# ── Pipeline ────────────────────────────────────────────────────────────


class TransformPipeline:
    """
    Concatenates a group's sources, compiling LESS sources on the way, and
    optionally minifies the merged output.

    Args:
        compiler: Transform applied to each LESS source.
        minifiers: Per-kind minifier. Kinds without one pass through.
    """

    def __init__(
        self,
        compiler: Optional[Transform] = None,
        minifiers: Optional[Dict[AssetKind, Transform]] = None,
    ) -> None:
        self.compiler = compiler if compiler is not None else LessCompiler()
        if minifiers is None:
            minifiers = {AssetKind.JS: JsMinifier(), AssetKind.CSS: CssMinifier()}
        self.minifiers = minifiers

    @classmethod
    def from_config(cls, config) -> "TransformPipeline":
        return cls(compiler=LessCompiler(config.lessc, config.lessc_options))

    def chain(self, kind: Union[AssetKind, str], *, less: bool = False, minify: bool = False) -> List[Transform]:
        """Transforms applied to a group, in application order."""
        transforms: List[Transform] = []
        if less:
            transforms.append(self.compiler)
        if minify:
            minifier = self.minifiers.get(AssetKind(kind))
            if minifier is not None:
                transforms.append(minifier)
        return transforms

    def describe(self, kind: Union[AssetKind, str], *, less: bool = False, minify: bool = False) -> List[Dict[str, Any]]:
        return [describe(t) for t in self.chain(kind, less=less, minify=minify)]

    def compile(self, kind: Union[AssetKind, str], sources: Sequence[SourceFile]) -> bytes:
        """Read, compile where flagged, and concatenate *sources*."""
        parts: List[bytes] = []
        for source in sources:
            try:
                data = source.path.read_bytes()
            except OSError as exc:
                raise TransformFailure("read", str(exc), source.ref) from exc
            if source.compile:
                logger.debug("Compiling %s with %s", source.ref, self.compiler.name)
                data = self.compiler.apply(data, source=str(source.path))
            parts.append(data)
        return b"\n".join(parts)

    def minify(self, kind: Union[AssetKind, str], data: bytes) -> bytes:
        minifier = self.minifiers.get(AssetKind(kind))
        if minifier is None:
            return data
        return minifier.apply(data)
