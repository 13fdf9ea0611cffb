"""Per-target toolchain invocation: napi (native macOS) and cross (Linux via Docker).

Every call takes project_root explicitly and passes cwd to subprocess; nothing
here changes the process working directory.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any

from edr_tooling.catalog import CROSS, NAPI, Target
from edr_tooling.config import crate_dir, resolve_layout
from edr_tooling.errors import ToolchainFailure, ToolchainUnavailable

log = logging.getLogger(__name__)

TOOL_EXECUTABLES: dict[str, str] = {
    NAPI: "npx",
    CROSS: "cross",
}


def toolchain_command(target: Target, features: str, crate_package: str) -> list[str]:
    """Command line that compiles target with the given cargo feature set."""
    if target.toolchain == NAPI:
        return [
            "npx",
            "napi",
            "build",
            "--platform",
            "--release",
            "--features",
            features,
            "--target",
            target.compiler_triple,
        ]
    if target.toolchain == CROSS:
        return [
            "cross",
            "build",
            "--release",
            "-p",
            crate_package,
            "--features",
            features,
            "--target",
            target.compiler_triple,
        ]
    msg = f"Unknown toolchain {target.toolchain!r} for {target.canonical_name}"
    raise ValueError(msg)


def toolchain_cwd(project_root: Path, target: Target, layout: dict[str, Any] | None = None) -> Path:
    """napi builds run inside the crate; cross builds run at the workspace root."""
    if target.toolchain == NAPI:
        return crate_dir(project_root, layout)
    return project_root


def produced_artifact(
    project_root: Path, target: Target, layout: dict[str, Any] | None = None
) -> Path:
    """Where the toolchain leaves the compiled addon for target."""
    cfg = resolve_layout(layout)
    if target.toolchain == NAPI:
        return crate_dir(project_root, cfg) / target.artifact_file_name
    lib = f"lib{cfg['crate_package']}.so"
    return project_root / "target" / target.compiler_triple / "release" / lib


def ensure_available(target: Target, project_root: Path) -> None:
    """Raise ToolchainUnavailable if the executable (or Docker, for cross) is missing."""
    exe = TOOL_EXECUTABLES.get(target.toolchain, target.toolchain)
    if not shutil.which(exe):
        msg = f"{exe} not found in PATH; cannot build {target.canonical_name}"
        raise ToolchainUnavailable(target.canonical_name, msg)
    if target.toolchain != CROSS:
        return
    if not shutil.which("docker"):
        msg = f"docker not found in PATH; cross needs it to build {target.canonical_name}"
        raise ToolchainUnavailable(target.canonical_name, msg)
    try:
        r = subprocess.run(
            ["docker", "info"],
            capture_output=True,
            text=True,
            cwd=str(project_root),
        )
    except OSError as e:
        msg = f"could not run docker info ({e}); cross cannot build {target.canonical_name}"
        raise ToolchainUnavailable(target.canonical_name, msg) from e
    if r.returncode != 0:
        msg = f"Docker daemon is not reachable; cross cannot build {target.canonical_name}"
        raise ToolchainUnavailable(target.canonical_name, msg, r.returncode)


def run_toolchain(
    project_root: Path,
    target: Target,
    features: str,
    layout: dict[str, Any] | None = None,
) -> Path:
    """Compile target. Returns path of the produced artifact; raises ToolchainFailure."""
    cfg = resolve_layout(layout)
    ensure_available(target, project_root)
    cmd = toolchain_command(target, features, cfg["crate_package"])
    cwd = toolchain_cwd(project_root, target, cfg)
    log.debug("running %s in %s", " ".join(cmd), cwd)
    try:
        r = subprocess.run(cmd, cwd=str(cwd))
    except OSError as e:
        msg = f"could not run {cmd[0]} for {target.compiler_triple}: {e}"
        raise ToolchainFailure(target.canonical_name, msg) from e
    if r.returncode != 0:
        msg = f"{cmd[0]} build for {target.compiler_triple} exited with {r.returncode}"
        raise ToolchainFailure(target.canonical_name, msg, r.returncode)
    produced = produced_artifact(project_root, target, cfg)
    if not produced.is_file():
        msg = f"{cmd[0]} reported success but {produced} was not produced"
        raise ToolchainFailure(target.canonical_name, msg, r.returncode)
    return produced
