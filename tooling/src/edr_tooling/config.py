"""Project layout and release settings. All paths relative to project_root.

Defaults match the EDR repository; override per project with an
edr-tooling.yaml at the project root, e.g.:

    crate_dir: crates/edr_napi
    features: op
    shared_files: [index.js, index.d.ts]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger(__name__)

CONFIG_FILE_NAME = "edr-tooling.yaml"

DEFAULT_LAYOUT: dict[str, Any] = {
    "crate_dir": "crates/edr_napi",
    "npm_dir": "npm",
    "dist_dir": "dist",
    "crate_package": "edr_napi",
    "package_name": "@nomicfoundation/edr",
    "features": "op",
    "shared_files": ["index.js", "index.d.ts"],
    "installer_script": "install.js",
    "artifact_base_url": "https://github.com/NomicFoundation/edr/releases/download",
}

_LIST_KEYS = frozenset({"shared_files"})


def resolve_layout(layout: dict[str, Any] | None) -> dict[str, Any]:
    """Return layout dict with defaults filled. Unknown keys are ignored."""
    out = {k: list(v) if k in _LIST_KEYS else v for k, v in DEFAULT_LAYOUT.items()}
    if layout is None:
        return out
    for k, v in layout.items():
        if k not in out:
            continue
        if k in _LIST_KEYS:
            out[k] = [str(x) for x in (v if isinstance(v, list) else [v])]
        elif k == "features" and isinstance(v, list):
            out[k] = ",".join(str(x) for x in v)
        else:
            out[k] = str(v)
    return out


def load_layout(project_root: Path, config_path: Path | None = None) -> dict[str, Any]:
    """Load layout from edr-tooling.yaml (or config_path) merged over defaults. Missing file means defaults."""
    path = config_path or project_root / CONFIG_FILE_NAME
    if not path.is_file():
        return resolve_layout(None)
    with path.open() as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        msg = f"{path}: expected a mapping at top level"
        raise ValueError(msg)
    unknown = sorted(set(data) - set(DEFAULT_LAYOUT))
    if unknown:
        log.warning("Ignoring unknown keys in %s: %s", path, ", ".join(unknown))
    return resolve_layout(data)


def crate_dir(project_root: Path, layout: dict[str, Any] | None = None) -> Path:
    return project_root / resolve_layout(layout)["crate_dir"]


def staging_dir(project_root: Path, canonical_name: str, layout: dict[str, Any] | None = None) -> Path:
    """Per-target package directory, e.g. crates/edr_napi/npm/linux-x64-gnu."""
    cfg = resolve_layout(layout)
    return project_root / cfg["crate_dir"] / cfg["npm_dir"] / canonical_name


def dist_dir(project_root: Path, layout: dict[str, Any] | None = None) -> Path:
    cfg = resolve_layout(layout)
    return project_root / cfg["crate_dir"] / cfg["dist_dir"]


def target_package_name(canonical_name: str, layout: dict[str, Any] | None = None) -> str:
    """npm name of a per-target package: <package_name>-<canonical_name>."""
    return f"{resolve_layout(layout)['package_name']}-{canonical_name}"
