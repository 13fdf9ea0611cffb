"""`edr pack` subcommands: target, meta, release, init-dirs."""

import argparse
import sys
from pathlib import Path

from edr_tooling.catalog import get_target, select_targets
from edr_tooling.config import load_layout
from edr_tooling.errors import EdrToolingError
from edr_tooling.pack import (
    create_npm_dirs,
    package_meta,
    package_release,
    package_target,
    read_release_version,
)

SUBCOMMANDS = ("target", "meta", "release", "init-dirs")


def _parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--project-root",
        type=lambda s: Path(s).resolve(),
        default=None,
        help="Project root (default: cwd)",
    )
    common.add_argument("--config", type=lambda s: Path(s).resolve(), default=None)
    versioned = argparse.ArgumentParser(add_help=False, parents=[common])
    versioned.add_argument(
        "--version",
        default=None,
        help="Release version (default: version in the meta package.json)",
    )

    ap = argparse.ArgumentParser(prog="edr pack", description="Stamp versions and create npm tarballs")
    sub = ap.add_subparsers(dest="cmd", metavar="{" + ",".join(SUBCOMMANDS) + "}")
    p_target = sub.add_parser("target", parents=[versioned], help="Pack one target package")
    p_target.add_argument("name", help="Canonical target name, e.g. linux-x64-musl")
    sub.add_parser("meta", parents=[versioned], help="Pack the platform-agnostic meta package")
    p_release = sub.add_parser(
        "release", parents=[versioned], help="Pack every target, the meta package and SHA256SUMS"
    )
    p_release.add_argument("targets", nargs="*", help="Subset of targets (default: all)")
    sub.add_parser("init-dirs", parents=[common], help="Create missing npm/<target>/package.json")
    return ap


def run_pack_argv(argv: list[str] | None = None) -> None:
    """Parse pack subcommand from argv and run. argv defaults to sys.argv[2:] when called from main."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    if not argv:
        print("edr pack: missing subcommand", file=sys.stderr)
        _parser().print_usage(sys.stderr)
        sys.exit(1)
    if argv[0] not in SUBCOMMANDS:
        print(f"Unknown pack subcommand: {argv[0]}", file=sys.stderr)
        _parser().print_usage(sys.stderr)
        sys.exit(1)
    args = _parser().parse_args(argv)
    project_root: Path = args.project_root or Path.cwd()

    try:
        layout = load_layout(project_root, args.config)
        if args.cmd == "init-dirs":
            created = create_npm_dirs(project_root, layout=layout)
            for p in created:
                print(f"✅ Created {p.relative_to(project_root)}")
            if not created:
                print("Info:  All target package directories already exist.")
            sys.exit(0)

        version = args.version or read_release_version(project_root, layout)

        if args.cmd == "target":
            target = get_target(args.name)
            if target is None:
                print(f"❌ Unknown target: {args.name}", file=sys.stderr)
                sys.exit(1)
            package_target(project_root, target, version, layout)
        elif args.cmd == "meta":
            package_meta(project_root, version, layout=layout)
        else:
            package_release(project_root, version, select_targets(args.targets), layout)
    except (EdrToolingError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)
