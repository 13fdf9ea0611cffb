"""`edr build`: compile the addon for every target and stage it under npm/<target>/."""

import sys
from pathlib import Path

from edr_tooling.build.matrix import build
from edr_tooling.catalog import select_targets
from edr_tooling.config import load_layout


def run_build_argv(argv: list[str] | None = None) -> None:
    """Parse argv and run the build matrix. No flags: all targets, in order, stop at first failure."""
    import argparse

    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []  # skip 'edr build'
    ap = argparse.ArgumentParser(prog="edr build", description="Build EDR for all platforms")
    ap.add_argument(
        "--target",
        action="append",
        default=None,
        help="Canonical target name (repeatable; default: all, e.g. linux-x64-musl)",
    )
    ap.add_argument(
        "--keep-going",
        action="store_true",
        help="Build every target even if one fails; report all results",
    )
    ap.add_argument("--parallel", action="store_true", help="Build targets concurrently")
    ap.add_argument("--features", default=None, help="Cargo features (default from config: op)")
    ap.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project root (default: cwd)",
    )
    ap.add_argument("--config", type=Path, default=None, help="Layout config (edr-tooling.yaml)")
    args = ap.parse_args(argv)

    project_root = args.project_root.resolve()
    try:
        layout = load_layout(project_root, args.config)
        targets = select_targets(args.target)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    print("=== Building EDR for all platforms ===")
    report = build(
        project_root,
        targets,
        args.features,
        fail_fast=not args.keep_going,
        parallel=args.parallel,
        layout=layout,
    )
    print("")
    print("=== Build summary ===")
    print(report.summary())
    if report.ok:
        print("🎉 All builds complete!")
    sys.exit(report.exit_code)
