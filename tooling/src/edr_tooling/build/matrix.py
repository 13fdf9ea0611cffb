"""Build the native addon for every requested target and stage it for packaging.

Each target compiles with its own toolchain and copies the artifact into its
own staging directory (npm/<canonical_name>/<artifact_file_name>). Staging
paths are disjoint, so targets may run in parallel.

Failure policy: fail_fast=True stops at the first failing target and marks the
remaining ones skipped; fail_fast=False builds everything and reports per
target. Either way the caller gets a BuildReport, never a process abort.
"""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from edr_tooling.build.toolchain import run_toolchain
from edr_tooling.catalog import Target
from edr_tooling.config import resolve_layout, staging_dir
from edr_tooling.errors import ToolchainFailure, ToolchainUnavailable

log = logging.getLogger(__name__)

OK = "ok"
FAILED = "failed"
UNAVAILABLE = "unavailable"
SKIPPED = "skipped"


@dataclass
class TargetResult:
    target: Target
    status: str
    artifact_path: Path | None = None
    error: ToolchainFailure | None = None

    @property
    def ok(self) -> bool:
        return self.status == OK


@dataclass
class BuildReport:
    results: list[TargetResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.results) and all(r.ok for r in self.results)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def by_status(self, status: str) -> list[TargetResult]:
        return [r for r in self.results if r.status == status]

    def summary(self) -> str:
        icons = {OK: "✅", FAILED: "❌", UNAVAILABLE: "⚠️ ", SKIPPED: "⏭️ "}
        lines = []
        for r in self.results:
            line = f"  {icons[r.status]} {r.target.canonical_name}: {r.status}"
            if r.artifact_path is not None:
                line += f" -> {r.artifact_path}"
            elif r.error is not None:
                line += f" ({r.error})"
            lines.append(line)
        return "\n".join(lines)


def _check_disjoint_staging(
    project_root: Path, targets: list[Target], layout: dict[str, Any]
) -> None:
    seen: dict[Path, str] = {}
    for t in targets:
        dest = staging_dir(project_root, t.canonical_name, layout) / t.artifact_file_name
        if dest in seen:
            msg = f"Targets {seen[dest]} and {t.canonical_name} share staging path {dest}"
            raise ValueError(msg)
        seen[dest] = t.canonical_name


def build_target(
    project_root: Path,
    target: Target,
    features: str,
    layout: dict[str, Any] | None = None,
) -> TargetResult:
    """Compile one target and copy its artifact into the staging dir. Never raises ToolchainFailure."""
    cfg = resolve_layout(layout)
    try:
        produced = run_toolchain(project_root, target, features, cfg)
    except ToolchainUnavailable as e:
        log.warning("%s: %s", target.canonical_name, e)
        return TargetResult(target, UNAVAILABLE, error=e)
    except ToolchainFailure as e:
        log.error("%s: %s", target.canonical_name, e)
        return TargetResult(target, FAILED, error=e)
    dest_dir = staging_dir(project_root, target.canonical_name, cfg)
    dest = dest_dir / target.artifact_file_name
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(produced, dest)
    except OSError as e:
        msg = f"could not stage {produced} at {dest}: {e}"
        err = ToolchainFailure(target.canonical_name, msg)
        log.error("%s: %s", target.canonical_name, err)
        return TargetResult(target, FAILED, error=err)
    return TargetResult(target, OK, artifact_path=dest)


def _build_sequential(
    project_root: Path,
    targets: list[Target],
    features: str,
    fail_fast: bool,
    layout: dict[str, Any],
) -> list[TargetResult]:
    results: list[TargetResult] = []
    n = len(targets)
    for i, t in enumerate(targets, start=1):
        if fail_fast and any(not r.ok for r in results):
            results.append(TargetResult(t, SKIPPED))
            continue
        print(f">>> [{i}/{n}] Building for {t.compiler_triple} ({t.toolchain})...")
        r = build_target(project_root, t, features, layout)
        if r.ok:
            print(f"✅ {t.canonical_name} staged: {r.artifact_path}")
        else:
            print(f"❌ {t.canonical_name}: {r.error}", file=sys.stderr)
        results.append(r)
    return results


def _build_parallel(
    project_root: Path,
    targets: list[Target],
    features: str,
    fail_fast: bool,
    layout: dict[str, Any],
    max_workers: int | None,
) -> list[TargetResult]:
    done_results: dict[str, TargetResult] = {}
    with ThreadPoolExecutor(max_workers=max_workers or len(targets)) as pool:
        pending: dict[Future[TargetResult], Target] = {
            pool.submit(build_target, project_root, t, features, layout): t for t in targets
        }
        while pending:
            finished, _ = wait(pending, return_when=FIRST_COMPLETED)
            for fut in finished:
                t = pending.pop(fut)
                r = fut.result()
                done_results[t.canonical_name] = r
                if r.ok:
                    print(f"✅ {t.canonical_name} staged: {r.artifact_path}")
                else:
                    print(f"❌ {t.canonical_name}: {r.error}", file=sys.stderr)
            if fail_fast and any(not r.ok for r in done_results.values()):
                for fut in list(pending):
                    if fut.cancel():
                        t = pending.pop(fut)
                        done_results[t.canonical_name] = TargetResult(t, SKIPPED)
    return [done_results[t.canonical_name] for t in targets]


def build(
    project_root: Path,
    targets: Iterable[Target],
    features: str | None = None,
    *,
    fail_fast: bool = True,
    parallel: bool = False,
    max_workers: int | None = None,
    layout: dict[str, Any] | None = None,
) -> BuildReport:
    """Build every target; return one result per target in the order given."""
    cfg = resolve_layout(layout)
    target_list = list(targets)
    if not target_list:
        return BuildReport()
    _check_disjoint_staging(project_root, target_list, cfg)
    feats = features if features is not None else cfg["features"]
    if parallel:
        results = _build_parallel(project_root, target_list, feats, fail_fast, cfg, max_workers)
    else:
        results = _build_sequential(project_root, target_list, feats, fail_fast, cfg)
    return BuildReport(results)
