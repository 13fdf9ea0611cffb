"""Produce npm-pack style tarballs for per-target packages and the meta package.

A tarball holds its files under package/ and is named like `npm pack` output
(@scope/name -> scope-name-<version>.tgz). Member metadata is normalized
(fixed mtime, root ownership) so repacking identical inputs gives identical
bytes.
"""

from __future__ import annotations

import gzip
import io
import json
import logging
import os
import tarfile
import tempfile
from pathlib import Path
from typing import Any

from edr_tooling.catalog import TARGETS, Target
from edr_tooling.config import crate_dir, dist_dir, resolve_layout, staging_dir, target_package_name
from edr_tooling.errors import PackagingFailure
from edr_tooling.helpers import read_json, write_json
from edr_tooling.pack.manifest import MANIFEST_NAME, PackageManifest, target_manifest_template

log = logging.getLogger(__name__)

# npm pack uses this timestamp for every entry (1985-10-26T08:15:00Z).
NPM_MTIME = 499162500


def tarball_name(package_name: str, version: str) -> str:
    """File name npm pack would give package_name@version."""
    return f"{package_name.lstrip('@').replace('/', '-')}-{version}.tgz"


def _normalize(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.mtime = NPM_MTIME
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    if info.isfile():
        info.mode = 0o755 if info.mode & 0o111 else 0o644
    return info


def write_archive(dest: Path, manifest: dict[str, Any], members: list[tuple[Path, str]]) -> Path:
    """Write package/package.json from manifest plus each (src, arcname) under package/. Atomic."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    os.close(fd)
    try:
        with (
            open(tmp, "wb") as raw,
            gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz,
            tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar,
        ):
            data = (json.dumps(manifest, indent=2) + "\n").encode()
            info = tarfile.TarInfo(f"package/{MANIFEST_NAME}")
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(_normalize(info), io.BytesIO(data))
            for src, arcname in members:
                tar.add(str(src), arcname=f"package/{arcname}", filter=_normalize)
        os.replace(tmp, dest)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return dest


def read_archive_manifest(archive: Path) -> dict[str, Any]:
    """package/package.json from a tarball."""
    with tarfile.open(archive, "r:gz") as tar:
        f = tar.extractfile(f"package/{MANIFEST_NAME}")
        if f is None:
            msg = f"{archive}: no package/{MANIFEST_NAME}"
            raise PackagingFailure(msg)
        return json.loads(f.read().decode())


def archive_members(archive: Path) -> list[str]:
    with tarfile.open(archive, "r:gz") as tar:
        return sorted(tar.getnames())


def _meta_manifest_path(project_root: Path, layout: dict[str, Any]) -> Path:
    return crate_dir(project_root, layout) / MANIFEST_NAME


def create_npm_dirs(
    project_root: Path,
    targets: list[Target] | None = None,
    layout: dict[str, Any] | None = None,
) -> list[Path]:
    """Create npm/<target>/package.json for targets that lack one. Returns created manifests."""
    cfg = resolve_layout(layout)
    meta_path = _meta_manifest_path(project_root, cfg)
    meta = read_json(meta_path) if meta_path.is_file() else None
    created: list[Path] = []
    for t in targets or list(TARGETS):
        path = staging_dir(project_root, t.canonical_name, cfg) / MANIFEST_NAME
        if path.exists():
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        target_manifest_template(t, cfg, meta).save(path)
        log.info("created %s", path)
        created.append(path)
    return created


def load_target_manifest(
    project_root: Path, target: Target, layout: dict[str, Any] | None = None
) -> PackageManifest:
    """Staged manifest for target, or a fresh template if none is staged."""
    cfg = resolve_layout(layout)
    path = staging_dir(project_root, target.canonical_name, cfg) / MANIFEST_NAME
    if path.is_file():
        try:
            return PackageManifest.load(path, target)
        except ValueError as e:
            msg = f"{path}: {e}"
            raise PackagingFailure(msg) from e
    meta_path = _meta_manifest_path(project_root, cfg)
    meta = read_json(meta_path) if meta_path.is_file() else None
    return target_manifest_template(target, cfg, meta)


def package_target(
    project_root: Path,
    target: Target,
    version: str,
    layout: dict[str, Any] | None = None,
) -> Path:
    """Stamp version into target's manifest and pack manifest + artifact. Returns the tarball path."""
    cfg = resolve_layout(layout)
    stage = staging_dir(project_root, target.canonical_name, cfg)
    artifact = stage / target.artifact_file_name
    if not artifact.is_file():
        msg = f"Staged artifact missing for {target.canonical_name}: {artifact} (run build first)"
        raise PackagingFailure(msg)

    manifest = load_target_manifest(project_root, target, cfg)
    try:
        manifest.stamp(version)
    except ValueError as e:
        raise PackagingFailure(str(e)) from e
    manifest.entry_point = target.artifact_file_name
    manifest.files = [target.artifact_file_name]
    manifest.save(stage / MANIFEST_NAME)

    dest = dist_dir(project_root, cfg) / tarball_name(manifest.name, manifest.version)
    write_archive(dest, manifest.to_dict(), [(artifact, target.artifact_file_name)])
    print(f"📦 {manifest.name}@{manifest.version} -> {dest.relative_to(project_root)}")
    return dest


def package_meta(
    project_root: Path,
    version: str,
    shared_files: list[str] | None = None,
    layout: dict[str, Any] | None = None,
    target_packages: list[str] | None = None,
    extra_members: list[tuple[Path, str]] | None = None,
) -> Path:
    """Pack the platform-agnostic package: shared files, installer script, stamped manifest.

    optionalDependencies lists every per-target package (target_packages, default
    all catalog targets) at the same version. extra_members are (src, arcname)
    pairs packed next to the shared files, e.g. the release SHA256SUMS.

    Only "version" is rewritten in the source package.json; files and
    optionalDependencies are set on the packed copy.
    """
    cfg = resolve_layout(layout)
    root = crate_dir(project_root, cfg)
    meta_path = root / MANIFEST_NAME
    if not meta_path.is_file():
        msg = f"Meta manifest not found: {meta_path}"
        raise PackagingFailure(msg)

    names = list(shared_files if shared_files is not None else cfg["shared_files"])
    installer = cfg["installer_script"]
    if installer and installer not in names:
        names.append(installer)
    members = [(root / n, n) for n in names] + list(extra_members or [])
    missing = [str(src) for src, _ in members if not src.is_file()]
    if missing:
        msg = f"Meta package file(s) missing in {root}: {', '.join(missing)}"
        raise PackagingFailure(msg)

    try:
        source = read_json(meta_path)
        manifest = PackageManifest.from_dict(source)
        manifest.stamp(version)
    except ValueError as e:
        msg = f"{meta_path}: {e}"
        raise PackagingFailure(msg) from e
    source["version"] = manifest.version
    write_json(meta_path, source)

    packages = (
        target_packages
        if target_packages is not None
        else [target_package_name(t.canonical_name, cfg) for t in TARGETS]
    )
    packed = dict(source)
    files = list(source.get("files") or [])
    files += [arc for _, arc in members if arc not in files]
    packed["files"] = files
    packed["optionalDependencies"] = {name: manifest.version for name in sorted(packages)}

    dest = dist_dir(project_root, cfg) / tarball_name(manifest.name, manifest.version)
    write_archive(dest, packed, members)
    print(f"📦 {manifest.name}@{manifest.version} -> {dest.relative_to(project_root)}")
    return dest
