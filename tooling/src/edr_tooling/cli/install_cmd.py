"""`edr install`: fetch the prebuilt binary for this host (runs inside the consuming project)."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from edr_tooling.config import DEFAULT_LAYOUT
from edr_tooling.errors import EdrToolingError
from edr_tooling.helpers import parse_sha256sums, read_json
from edr_tooling.install.download import DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT
from edr_tooling.install.installer import install
from edr_tooling.pack.release import CHECKSUMS_FILE

BASE_URL_ENV = "EDR_ARTIFACT_BASE_URL"
INSTALL_DIR_ENV = "EDR_INSTALL_DIR"


def _version_from_manifest(install_dir: Path) -> str | None:
    """Version of the meta package the installer ships in, if there is one."""
    manifest = install_dir / "package.json"
    if not manifest.is_file():
        return None
    return str(read_json(manifest).get("version") or "") or None


def run(
    install_dir: Path,
    version: str | None = None,
    base_url: str | None = None,
    checksums_file: Path | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    timeout: float = DEFAULT_TIMEOUT,
) -> int:
    """Install and report. Returns 0 or 1."""
    try:
        ver = version or _version_from_manifest(install_dir)
        if not ver:
            print(
                f"❌ No version given and no package.json in {install_dir}; pass --version",
                file=sys.stderr,
            )
            return 1
        checksums = None
        if checksums_file is None and (install_dir / CHECKSUMS_FILE).is_file():
            checksums_file = install_dir / CHECKSUMS_FILE
        if checksums_file is not None:
            checksums = parse_sha256sums(checksums_file.read_text())
        url = base_url or os.environ.get(BASE_URL_ENV) or DEFAULT_LAYOUT["artifact_base_url"]
        install(
            install_dir,
            ver,
            url,
            checksums=checksums,
            max_attempts=max_attempts,
            timeout=timeout,
        )
    except (EdrToolingError, ValueError, OSError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    return 0


def run_install_argv(argv: list[str] | None = None) -> None:
    """Parse argv and run install."""
    import argparse

    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    ap = argparse.ArgumentParser(prog="edr install", description="Install the EDR binary for this host")
    ap.add_argument("--version", default=None, help="Release version (default: package.json version)")
    ap.add_argument(
        "--install-dir",
        type=Path,
        default=None,
        help=f"Where to place the binary (default: ${INSTALL_DIR_ENV} or cwd)",
    )
    ap.add_argument("--base-url", default=None, help=f"Artifact store base URL (or ${BASE_URL_ENV})")
    ap.add_argument(
        "--checksums",
        type=Path,
        default=None,
        help="SHA256SUMS file to verify against (default: SHA256SUMS in the install dir)",
    )
    ap.add_argument("--max-attempts", type=int, default=DEFAULT_MAX_ATTEMPTS)
    ap.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Per-attempt timeout (s)")
    args = ap.parse_args(argv)

    install_dir = args.install_dir or Path(os.environ.get(INSTALL_DIR_ENV) or Path.cwd())
    rc = run(
        install_dir.resolve(),
        version=args.version,
        base_url=args.base_url,
        checksums_file=args.checksums,
        max_attempts=args.max_attempts,
        timeout=args.timeout,
    )
    sys.exit(rc)
