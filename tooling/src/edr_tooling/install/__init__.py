"""Installer: resolve the host to a target and fetch/verify/place its prebuilt binary."""

from .download import ReleaseAsset, asset_url, download, release_asset, verify
from .host import detect_host, detect_libc
from .installer import InstalledBinary, InstallResult, check_local, install, place_atomically
from .resolve import TARGET_ENV, resolve_host_target, resolve_target, target_from_override

__all__ = [
    "TARGET_ENV",
    "InstallResult",
    "InstalledBinary",
    "ReleaseAsset",
    "asset_url",
    "check_local",
    "detect_host",
    "detect_libc",
    "download",
    "install",
    "place_atomically",
    "release_asset",
    "resolve_host_target",
    "resolve_target",
    "target_from_override",
    "verify",
]
