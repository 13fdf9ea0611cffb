"""Main CLI entry point for EDR tooling."""

import logging
import os
import sys

from edr_tooling.cli import (
    install_cmd,
    pack_cmd,
    targets_cmd,
)
from edr_tooling.cli import (
    build as build_cli,
)

LOG_LEVEL_ENV = "EDR_LOG_LEVEL"


def _configure_logging() -> None:
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Main CLI entry point."""
    _configure_logging()
    if len(sys.argv) < 2:
        print("Usage: edr <command> [args...]", file=sys.stderr)
        print("Commands:", file=sys.stderr)
        print(
            "  build [--target T] [--keep-going] [--parallel]  - Build the addon for every target",
            file=sys.stderr,
        )
        print(
            "  pack target|meta|release|init-dirs  - Stamp versions and create npm tarballs",
            file=sys.stderr,
        )
        print(
            "  install [--version V]  - Download the prebuilt binary for this host",
            file=sys.stderr,
        )
        print("  targets                - List targets and the host's resolved target", file=sys.stderr)
        sys.exit(1)

    command = sys.argv[1]

    if command == "build":
        build_cli.run_build_argv()
    elif command == "pack":
        pack_cmd.run_pack_argv()
    elif command == "install":
        install_cmd.run_install_argv()
    elif command == "targets":
        sys.exit(targets_cmd.run())
    else:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
