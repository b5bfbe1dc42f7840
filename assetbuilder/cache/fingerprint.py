"""
Fingerprints - deterministic build cache keys.

A fingerprint digests everything that determines a group's compiled
bytes: the identity and modification time of each local source, the
ordered transform chain with its parameters, and an optional salt.

Components are serialised as canonical JSON (sorted keys, fixed
separators) before hashing, so no two distinct component sets can
concatenate to the same input.

Pattern: ``{group}-{md5_hex}.{kind}``

Example: ``app-7d793037a0760186574b0282f2f435e7.js``
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

DIGEST_ALGORITHM = "md5"


@dataclass(frozen=True)
class SourceStamp:
    """Identity + modification state of one local source."""

    ref: str
    mtime_ns: int

    @classmethod
    def of(cls, path: Path, ref: str) -> "SourceStamp":
        """Stamp *path*; raises ``OSError`` when it cannot be stat'ed."""
        return cls(ref=ref, mtime_ns=path.stat().st_mtime_ns)

    def to_dict(self) -> Dict[str, Any]:
        return {"ref": self.ref, "mtime_ns": self.mtime_ns}


def digest(data: bytes, algorithm: str = DIGEST_ALGORITHM) -> str:
    h = hashlib.new(algorithm)
    h.update(data)
    return h.hexdigest()


def canonical(payload: Any) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


@dataclass(frozen=True)
class Fingerprint:
    """Cache key derivation for one group build."""

    kind: str
    group: str = ""
    sources: Tuple[SourceStamp, ...] = ()
    transforms: Tuple[Dict[str, Any], ...] = field(default=(), hash=False)
    salt: str = ""

    def payload(self) -> Dict[str, Any]:
        return {
            "group": self.group,
            "kind": self.kind,
            "sources": [s.to_dict() for s in self.sources],
            "transforms": list(self.transforms),
            "salt": self.salt,
        }

    @property
    def digest(self) -> str:
        return digest(canonical(self.payload()))

    @property
    def key(self) -> str:
        prefix = f"{self.group}-" if self.group else ""
        return f"{prefix}{self.digest}.{self.kind}"


def directory_salt(directory: Path, pattern: str = "*.less") -> str:
    """
    Digest of every file matching *pattern* directly inside *directory*.

    LESS sources may ``@import`` files that no group lists, so any change
    among them must invalidate every LESS-derived entry. A missing
    directory yields a stable empty salt.
    """
    stamps: List[Dict[str, Any]] = []
    if directory.is_dir():
        for path in sorted(directory.glob(pattern)):
            if path.is_file():
                stamps.append(SourceStamp.of(path, path.name).to_dict())
    return digest(canonical(stamps))


def build_fingerprint(
    kind: str,
    group: str,
    sources: Sequence[SourceStamp],
    transforms: Sequence[Dict[str, Any]] = (),
    salt: str = "",
) -> Fingerprint:
    return Fingerprint(
        kind=kind,
        group=group,
        sources=tuple(sources),
        transforms=tuple(transforms),
        salt=salt,
    )
