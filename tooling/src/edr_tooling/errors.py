"""Error taxonomy shared by build, pack and install.

Library code raises these; CLI entry points catch EdrToolingError, print the
message to stderr and exit 1.
"""

from __future__ import annotations


class EdrToolingError(Exception):
    """Base class for all fatal edr_tooling conditions."""


class ToolchainFailure(EdrToolingError):
    """A target's compiler invocation exited nonzero."""

    def __init__(self, target: str, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.target = target
        self.returncode = returncode


class ToolchainUnavailable(ToolchainFailure):
    """Toolchain executable or its Docker daemon is missing; nothing was compiled."""


class PackagingFailure(EdrToolingError):
    """Staged artifact, manifest or shared file missing, or release is inconsistent."""


class UnsupportedPlatform(EdrToolingError):
    """Host tuple has no catalog entry. Never retried."""


class DownloadFailure(EdrToolingError):
    """Asset could not be fetched (non-transient error or retry budget exhausted)."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class ChecksumMismatch(EdrToolingError):
    """Downloaded bytes do not match the expected size or sha256."""


class PermissionFailure(EdrToolingError):
    """Execute permission could not be set on the installed binary."""
