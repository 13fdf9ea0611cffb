"""Make sure the right prebuilt EDR binary for this host is installed.

Sequence: detect host -> resolve target -> check local install -> (download ->
verify -> place) -> done.

The binary is downloaded into a temp file in the install directory and then
renamed over the final path, so the final path only ever holds a complete
binary (the old one or the new one). Concurrent installers each use their own
temp file; the rename is the only write to the final path. A sidecar record
(<artifact>.install.json) stores version, target and sha256 of what was placed.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from edr_tooling.catalog import Target
from edr_tooling.errors import PermissionFailure
from edr_tooling.helpers import atomic_write_text, normalize_version, sha256_file
from edr_tooling.install.download import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_TIMEOUT,
    download,
    release_asset,
    verify,
)
from edr_tooling.install.host import HostDetector, detect_host
from edr_tooling.install.resolve import resolve_host_target

log = logging.getLogger(__name__)

RECORD_SUFFIX = ".install.json"
BINARY_MODE = 0o755


@dataclass(frozen=True)
class InstalledBinary:
    path: Path
    target: Target
    version: str


@dataclass(frozen=True)
class InstallResult:
    binary: InstalledBinary
    downloaded: bool


def record_path(binary: Path) -> Path:
    return binary.with_name(binary.name + RECORD_SUFFIX)


def read_record(binary: Path) -> dict[str, str] | None:
    """Install record next to binary, or None if absent or unreadable."""
    path = record_path(binary)
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        log.warning("ignoring unreadable install record %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def write_record(binary: Path, target: Target, version: str, sha256: str) -> None:
    payload = {"version": version, "target": target.canonical_name, "sha256": sha256}
    atomic_write_text(record_path(binary), json.dumps(payload, indent=2) + "\n")


def check_local(binary: Path, target: Target, version: str) -> InstalledBinary | None:
    """InstalledBinary if binary is present, recorded at version for target, and unmodified."""
    if not binary.is_file():
        return None
    rec = read_record(binary)
    if rec is None:
        return None
    if rec.get("version") != version or rec.get("target") != target.canonical_name:
        return None
    if rec.get("sha256") != sha256_file(binary):
        log.info("%s does not match its install record; reinstalling", binary)
        return None
    return InstalledBinary(binary, target, version)


def place_atomically(tmp: Path, final: Path) -> None:
    """Rename tmp over final, then mark final executable on POSIX."""
    os.replace(tmp, final)
    if os.name != "posix":
        return
    try:
        os.chmod(final, BINARY_MODE)
    except OSError as e:
        msg = (
            f"Installed {final} but could not make it executable ({e}). "
            f"Fix permissions manually: chmod 755 {final}"
        )
        raise PermissionFailure(msg) from e


def install(
    install_dir: Path,
    version: str,
    base_url: str,
    checksums: dict[str, str] | None = None,
    sizes: dict[str, int] | None = None,
    detect: HostDetector = detect_host,
    env: Mapping[str, str] | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    timeout: float = DEFAULT_TIMEOUT,
    backoff_base: float = 1.0,
) -> InstallResult:
    """Install the binary for this host at version into install_dir. Idempotent.

    Raises UnsupportedPlatform, DownloadFailure, ChecksumMismatch or
    PermissionFailure; on any of them the final path is left as it was.
    """
    ver = normalize_version(version)
    target = resolve_host_target(detect, env)
    final = install_dir / target.artifact_file_name

    existing = check_local(final, target, ver)
    if existing is not None:
        print(f"✅ {target.artifact_file_name} {ver} already installed")
        return InstallResult(existing, downloaded=False)

    asset = release_asset(base_url, ver, target, checksums, sizes)
    install_dir.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=install_dir, prefix=f".{final.name}.", suffix=".download")
    os.close(fd)
    tmp = Path(tmp_name)
    print(f"📥 Downloading {asset.download_url}")
    try:
        size, digest = download(
            asset,
            tmp,
            max_attempts=max_attempts,
            timeout=timeout,
            backoff_base=backoff_base,
        )
        verify(asset, size, digest)
        place_atomically(tmp, final)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    write_record(final, target, ver, digest)
    print(f"✅ Installed {final} ({target.canonical_name}, {ver})")
    return InstallResult(InstalledBinary(final, target, ver), downloaded=True)
