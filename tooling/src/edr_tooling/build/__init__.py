"""Build matrix: compile the EDR addon per target (napi/cross) and stage artifacts."""

from .matrix import (
    BuildReport,
    TargetResult,
    build,
    build_target,
)
from .toolchain import (
    ensure_available,
    produced_artifact,
    run_toolchain,
    toolchain_command,
)

__all__ = [
    "BuildReport",
    "TargetResult",
    "build",
    "build_target",
    "ensure_available",
    "produced_artifact",
    "run_toolchain",
    "toolchain_command",
]
