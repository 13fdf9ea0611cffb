"""Detect the host (os, arch, libc) tuple.

detect_host() is the only place that looks at the running system; everything
downstream takes a HostTuple so tests can pass one in directly.
"""

from __future__ import annotations

import platform
import sys
from collections.abc import Callable
from pathlib import Path

from edr_tooling.catalog import HostTuple

# sys.platform prefix -> os name used by the catalog (Node's process.platform values).
OS_PREFIXES: tuple[tuple[str, str], ...] = (
    ("linux", "linux"),
    ("darwin", "darwin"),
    ("win32", "win32"),
    ("cygwin", "win32"),
    ("freebsd", "freebsd"),
    ("openbsd", "openbsd"),
    ("sunos", "sunos"),
    ("aix", "aix"),
)

# platform.machine() -> arch name used by the catalog (Node's process.arch values).
ARCH_NAMES: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv6l": "arm",
    "armv7l": "arm",
    "armv7": "arm",
    "arm": "arm",
    "i386": "ia32",
    "i686": "ia32",
    "x86": "ia32",
    "ppc64le": "ppc64",
    "s390x": "s390x",
    "riscv64": "riscv64",
}

MUSL_LOADER_GLOBS = (
    "lib/ld-musl-*.so.1",
    "lib64/ld-musl-*.so.1",
    "usr/lib/ld-musl-*.so.1",
)

HostDetector = Callable[[], HostTuple]


def normalize_os(platform_name: str) -> str:
    for prefix, name in OS_PREFIXES:
        if platform_name.startswith(prefix):
            return name
    return platform_name


def normalize_arch(machine: str) -> str:
    m = machine.strip().lower()
    return ARCH_NAMES.get(m, m)


def detect_libc(
    root: Path = Path("/"),
    libc_ver: Callable[[], tuple[str, str]] = platform.libc_ver,
) -> str:
    """gnu or musl. A glibc-linked interpreter wins; otherwise a musl loader on disk means musl."""
    lib, _version = libc_ver()
    if lib == "glibc":
        return "gnu"
    for pattern in MUSL_LOADER_GLOBS:
        if any(root.glob(pattern)):
            return "musl"
    return "gnu"


def detect_host(
    platform_name: str | None = None,
    machine: str | None = None,
    root: Path = Path("/"),
    libc_ver: Callable[[], tuple[str, str]] = platform.libc_ver,
) -> HostTuple:
    """Host tuple for the running system; libc is probed only on Linux."""
    os_name = normalize_os(platform_name if platform_name is not None else sys.platform)
    arch = normalize_arch(machine if machine is not None else platform.machine())
    libc = detect_libc(root, libc_ver) if os_name == "linux" else None
    return HostTuple(os_name, arch, libc)
