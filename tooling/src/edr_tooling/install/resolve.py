"""Map a host tuple to a catalog target by table lookup."""

from __future__ import annotations

import os
from collections.abc import Mapping

from edr_tooling.catalog import CATALOG, HOST_TABLE, HostTuple, Target, TargetId, get_target
from edr_tooling.errors import UnsupportedPlatform
from edr_tooling.install.host import HostDetector, detect_host

TARGET_ENV = "EDR_TARGET"


def _supported() -> str:
    return ", ".join(t.value for t in TargetId)


def _unsupported_message(what: str) -> str:
    return (
        f"Unsupported platform {what}: no prebuilt EDR binary is published for it. "
        f"Supported targets: {_supported()}. "
        "Build from source instead: cargo build --release -p edr_napi"
    )


def resolve_target(host: HostTuple) -> Target:
    """Target for host. libc is ignored off Linux. Raises UnsupportedPlatform."""
    key = host if host.os == "linux" else HostTuple(host.os, host.arch)
    target_id = HOST_TABLE.get(key)
    if target_id is None:
        raise UnsupportedPlatform(_unsupported_message(str(host)))
    return CATALOG[target_id]


def target_from_override(value: str) -> Target:
    """Target named by an override such as EDR_TARGET=linux-x64-musl."""
    target = get_target(value.strip())
    if target is None:
        raise UnsupportedPlatform(_unsupported_message(f"{value!r} (from {TARGET_ENV})"))
    return target


def resolve_host_target(
    detect: HostDetector = detect_host,
    env: Mapping[str, str] | None = None,
) -> Target:
    """EDR_TARGET override if set, else the detected host's target."""
    environ = os.environ if env is None else env
    override = environ.get(TARGET_ENV)
    if override:
        return target_from_override(override)
    return resolve_target(detect())
