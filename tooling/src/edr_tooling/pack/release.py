"""Package a whole release: every per-target tarball, SHA256SUMS, then the meta package.

The meta package references each per-target package by name and version and
ships SHA256SUMS next to the installer, so it is packed last. Source of truth
for the release version is the meta package.json in the crate directory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from edr_tooling.catalog import TARGETS, Target
from edr_tooling.config import crate_dir, dist_dir, resolve_layout, staging_dir
from edr_tooling.errors import PackagingFailure
from edr_tooling.helpers import atomic_write_text, format_sha256sums, normalize_version, read_json, sha256_file
from edr_tooling.pack.archive import (
    load_target_manifest,
    package_meta,
    package_target,
    read_archive_manifest,
)
from edr_tooling.pack.manifest import MANIFEST_NAME

log = logging.getLogger(__name__)

CHECKSUMS_FILE = "SHA256SUMS"


@dataclass
class ReleaseReport:
    version: str
    target_archives: dict[str, Path] = field(default_factory=dict)
    meta_archive: Path | None = None
    checksums_path: Path | None = None

    @property
    def archives(self) -> list[Path]:
        out = list(self.target_archives.values())
        if self.meta_archive is not None:
            out.append(self.meta_archive)
        return out


def read_release_version(project_root: Path, layout: dict[str, Any] | None = None) -> str:
    """Version from the meta package.json. Raises PackagingFailure if missing or invalid."""
    path = crate_dir(project_root, layout) / MANIFEST_NAME
    if not path.is_file():
        msg = f"{path} not found"
        raise PackagingFailure(msg)
    try:
        return normalize_version(str(read_json(path).get("version", "")))
    except ValueError as e:
        msg = f"{path}: {e}"
        raise PackagingFailure(msg) from e


def check_unique_names(
    project_root: Path, targets: list[Target], layout: dict[str, Any] | None = None
) -> list[str]:
    """Per-target package names; raises PackagingFailure on a duplicate."""
    seen: dict[str, str] = {}
    for t in targets:
        name = load_target_manifest(project_root, t, layout).name
        if name in seen:
            msg = f"Package name {name!r} used by both {seen[name]} and {t.canonical_name}"
            raise PackagingFailure(msg)
        seen[name] = t.canonical_name
    return list(seen)


def check_staged_artifacts(
    project_root: Path, targets: list[Target], layout: dict[str, Any] | None = None
) -> None:
    """Raise PackagingFailure naming every target whose artifact is not staged."""
    cfg = resolve_layout(layout)
    missing = [
        t.canonical_name
        for t in targets
        if not (staging_dir(project_root, t.canonical_name, cfg) / t.artifact_file_name).is_file()
    ]
    if missing:
        msg = f"Staged artifact missing for {', '.join(missing)} (run build first)"
        raise PackagingFailure(msg)


def check_release_versions(
archives: list[Path]) -> str:
    """Every archive's package.json must carry the same version. Returns it."""
    versions = {a.name: str(read_archive_manifest(a).get("version")) for a in archives}
    distinct = set(versions.values())
    if len(distinct) != 1:
        detail = ", ".join(f"{n}={v}" for n, v in sorted(versions.items()))
        msg = f"Release archives disagree on version: {detail}"
        raise PackagingFailure(msg)
    return distinct.pop()


def write_checksums(
    project_root: Path, targets: list[Target], layout: dict[str, Any] | None = None
) -> Path:
    """SHA256SUMS for the staged artifacts (the files the installer downloads)."""
    cfg = resolve_layout(layout)
    entries = {
        t.artifact_file_name: sha256_file(
            staging_dir(project_root, t.canonical_name, cfg) / t.artifact_file_name
        )
        for t in targets
    }
    path = dist_dir(project_root, cfg) / CHECKSUMS_FILE
    atomic_write_text(path, format_sha256sums(entries))
    return path


def package_release(
    project_root: Path,
    version: str | None = None,
    targets: list[Target] | None = None,
    layout: dict[str, Any] | None = None,
) -> ReleaseReport:
    """Pack every target then the meta package at one version; verify and checksum. Raises PackagingFailure."""
    cfg = resolve_layout(layout)
    release_targets = list(targets) if targets is not None else list(TARGETS)
    try:
        ver = normalize_version(version) if version else read_release_version(project_root, cfg)
    except ValueError as e:
        raise PackagingFailure(str(e)) from e

    names = check_unique_names(project_root, release_targets, cfg)
    check_staged_artifacts(project_root, release_targets, cfg)
    report = ReleaseReport(version=ver)
    for t in release_targets:
        report.target_archives[t.canonical_name] = package_target(project_root, t, ver, cfg)
    report.checksums_path = write_checksums(project_root, release_targets, cfg)
    report.meta_archive = package_meta(
        project_root,
        ver,
        layout=cfg,
        target_packages=names,
        extra_members=[(report.checksums_path, CHECKSUMS_FILE)],
    )

    check_release_versions(report.archives)
    log.info("release %s: %d archive(s)", ver, len(report.archives))
    print(f"✅ Release {ver} packaged: {len(report.archives)} archive(s)")
    return report
