"""Supported build targets for the EDR native addon.

One TargetId member per supported (os, arch, libc) combination. TARGETS keeps
the fixed build order; HOST_TABLE maps detected host tuples to targets by
explicit lookup, never by assembling names from host attributes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

MODULE_NAME = "edr"
ARTIFACT_EXT = "node"

NAPI = "napi"
CROSS = "cross"


class TargetId(str, Enum):
    DARWIN_ARM64 = "darwin-arm64"
    DARWIN_X64 = "darwin-x64"
    LINUX_X64_GNU = "linux-x64-gnu"
    LINUX_X64_MUSL = "linux-x64-musl"
    LINUX_ARM64_GNU = "linux-arm64-gnu"
    LINUX_ARM64_MUSL = "linux-arm64-musl"


@dataclass(frozen=True)
class HostTuple:
    os: str
    arch: str
    libc: str | None = None

    def __str__(self) -> str:
        parts = [self.os, self.arch]
        if self.libc:
            parts.append(self.libc)
        return "/".join(parts)


@dataclass(frozen=True)
class Target:
    """One supported platform. canonical_name and artifact_file_name derive from the other fields."""

    operating_system: str
    cpu_architecture: str
    libc: str | None
    compiler_triple: str
    toolchain: str
    module_name: str = MODULE_NAME

    def __post_init__(self) -> None:
        if self.libc is not None and self.operating_system != "linux":
            msg = f"libc variant is Linux-only, got {self.libc!r} for {self.operating_system}"
            raise ValueError(msg)

    @property
    def canonical_name(self) -> str:
        base = f"{self.operating_system}-{self.cpu_architecture}"
        return f"{base}-{self.libc}" if self.libc else base

    @property
    def artifact_file_name(self) -> str:
        return f"{self.module_name}.{self.canonical_name}.{ARTIFACT_EXT}"

    @property
    def host_tuple(self) -> HostTuple:
        return HostTuple(self.operating_system, self.cpu_architecture, self.libc)

    @property
    def id(self) -> TargetId:
        return TargetId(self.canonical_name)


CATALOG: dict[TargetId, Target] = {
    TargetId.DARWIN_ARM64: Target("darwin", "arm64", None, "aarch64-apple-darwin", NAPI),
    TargetId.DARWIN_X64: Target("darwin", "x64", None, "x86_64-apple-darwin", NAPI),
    TargetId.LINUX_X64_GNU: Target("linux", "x64", "gnu", "x86_64-unknown-linux-gnu", CROSS),
    TargetId.LINUX_X64_MUSL: Target("linux", "x64", "musl", "x86_64-unknown-linux-musl", CROSS),
    TargetId.LINUX_ARM64_GNU: Target("linux", "arm64", "gnu", "aarch64-unknown-linux-gnu", CROSS),
    TargetId.LINUX_ARM64_MUSL: Target(
        "linux", "arm64", "musl", "aarch64-unknown-linux-musl", CROSS
    ),
}

# Build order of the release matrix.
TARGETS: tuple[Target, ...] = tuple(CATALOG[t] for t in TargetId)

# Darwin hosts carry no libc component.
HOST_TABLE: dict[HostTuple, TargetId] = {
    HostTuple("darwin", "arm64"): TargetId.DARWIN_ARM64,
    HostTuple("darwin", "x64"): TargetId.DARWIN_X64,
    HostTuple("linux", "x64", "gnu"): TargetId.LINUX_X64_GNU,
    HostTuple("linux", "x64", "musl"): TargetId.LINUX_X64_MUSL,
    HostTuple("linux", "arm64", "gnu"): TargetId.LINUX_ARM64_GNU,
    HostTuple("linux", "arm64", "musl"): TargetId.LINUX_ARM64_MUSL,
}


def get_target(name: str | TargetId) -> Target | None:
    """Look up a target by canonical name (e.g. linux-x64-musl). None if unknown."""
    try:
        return CATALOG[TargetId(name)]
    except ValueError:
        return None


def select_targets(names: list[str] | None) -> list[Target]:
    """Targets for the given canonical names in catalog order; all targets when names is empty. Raises ValueError on unknown names."""
    if not names:
        return list(TARGETS)
    unknown = [n for n in names if get_target(n) is None]
    if unknown:
        valid = ", ".join(t.value for t in TargetId)
        msg = f"Unknown target(s): {', '.join(unknown)}. Valid: {valid}"
        raise ValueError(msg)
    wanted = {TargetId(n) for n in names}
    return [t for t in TARGETS if t.id in wanted]
