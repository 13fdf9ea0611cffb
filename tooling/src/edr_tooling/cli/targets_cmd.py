"""`edr targets`: list the catalog and show which target this host resolves to."""

import sys

from edr_tooling.catalog import TARGETS
from edr_tooling.errors import UnsupportedPlatform
from edr_tooling.install.host import HostDetector, detect_host
from edr_tooling.install.resolve import resolve_host_target


def run(detect: HostDetector = detect_host) -> int:
    for t in TARGETS:
        print(f"{t.canonical_name:<18} {t.compiler_triple:<28} {t.toolchain:<6} {t.artifact_file_name}")
    host = detect()
    try:
        target = resolve_host_target(lambda: host)
    except UnsupportedPlatform as e:
        print(f"\nHost {host}: {e}", file=sys.stderr)
        return 1
    print(f"\nHost {host} -> {target.canonical_name}")
    return 0
