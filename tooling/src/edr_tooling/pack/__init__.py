"""Packaging: stamp manifests and produce npm-style tarballs per target, meta and release."""

from .archive import (
    create_npm_dirs,
    package_meta,
    package_target,
    read_archive_manifest,
    tarball_name,
)
from .manifest import PackageManifest
from .release import (
    ReleaseReport,
    package_release,
    read_release_version,
)

__all__ = [
    "PackageManifest",
    "ReleaseReport",
    "create_npm_dirs",
    "package_meta",
    "package_release",
    "package_target",
    "read_archive_manifest",
    "read_release_version",
    "tarball_name",
]
