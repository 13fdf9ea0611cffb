"""Shared helpers for edr_tooling (hashing, atomic writes, version, retry).

Used by build, pack and install.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

# --- Hashing ---


def sha256_file(path: Path, chunk_size: int = 1 << 16) -> str:
    """Hex sha256 of a file, read in chunks."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def parse_sha256sums(text: str) -> dict[str, str]:
    """Parse sha256sum output ('<hex>  <name>' or '<hex> *<name>') into {name: hex}."""
    out: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        m = re.match(r"^([0-9a-fA-F]{64})\s+\*?(.+)$", line)
        if not m:
            msg = f"Invalid checksum line: {line!r}"
            raise ValueError(msg)
        out[m.group(2).strip()] = m.group(1).lower()
    return out


def format_sha256sums(entries: dict[str, str]) -> str:
    return "".join(f"{digest}  {name}\n" for name, digest in sorted(entries.items()))


# --- File ---


def atomic_write_text(path: Path, text: str) -> None:
    """Write text to a temp file beside path, then rename over it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def read_json(path: Path) -> dict[str, Any]:
    with path.open() as f:
        data = json.load(f)
    if not isinstance(data, dict):
        msg = f"{path}: expected a JSON object"
        raise ValueError(msg)
    return data


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON the way npm does (2-space indent, trailing newline)."""
    atomic_write_text(path, json.dumps(data, indent=2) + "\n")


# --- Version ---

_SEMVER = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-([\w.-]+))?(?:\+([\w.-]+))?$")


def normalize_version(v: str) -> str:
    """Strip a leading 'v' and validate semver. Raises ValueError on invalid format."""
    v = v.strip().lstrip("v")
    if not _SEMVER.match(v):
        msg = "Invalid version format: " + str(v)
        raise ValueError(msg)
    return v


# --- Retry ---


def exponential_backoff_sequence(
    attempts: int, base_seconds: float = 1.0, max_seconds: float = 30.0
) -> list[float]:
    """Delays before retries 1..attempts-1: base, 2*base, 4*base, ... capped at max_seconds."""
    return [min(base_seconds * (2**i), max_seconds) for i in range(max(attempts - 1, 0))]
