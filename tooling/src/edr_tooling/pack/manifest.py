"""package.json manifests for per-target packages and the meta package.

Fields this module owns are name, version, main, files and the os/cpu/libc
restriction fields npm uses to pick the matching per-target package; anything
else in the file (license, repository, engines, ...) is carried through
untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from edr_tooling.catalog import Target
from edr_tooling.config import resolve_layout, target_package_name
from edr_tooling.helpers import normalize_version, read_json, write_json

MANIFEST_NAME = "package.json"

# npm's "libc" field uses glibc/musl.
NPM_LIBC: dict[str, str] = {"gnu": "glibc", "musl": "musl"}

# Metadata copied from the meta manifest into generated per-target manifests.
INHERITED_FIELDS = ("description", "license", "repository", "author", "engines", "publishConfig")

_OWNED = ("name", "version", "main", "files", "os", "cpu", "libc")


@dataclass
class PackageManifest:
    name: str
    version: str
    entry_point: str
    target: Target | None = None
    files: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_meta(self) -> bool:
        return self.target is None

    @classmethod
    def from_dict(cls, data: dict[str, Any], target: Target | None = None) -> PackageManifest:
        name = data.get("name")
        if not name or not isinstance(name, str):
            msg = "package.json has no name"
            raise ValueError(msg)
        return cls(
            name=name,
            version=str(data.get("version", "0.0.0")),
            entry_point=str(data.get("main") or (target.artifact_file_name if target else "index.js")),
            target=target,
            files=list(data.get("files") or []),
            extra={k: v for k, v in data.items() if k not in _OWNED},
        )

    @classmethod
    def load(cls, path: Path, target: Target | None = None) -> PackageManifest:
        return cls.from_dict(read_json(path), target)

    def stamp(self, version: str) -> None:
        """Set the release version (leading 'v' stripped)."""
        self.version = normalize_version(version)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "version": self.version}
        if self.target is not None:
            out["os"] = [self.target.operating_system]
            out["cpu"] = [self.target.cpu_architecture]
            if self.target.libc:
                out["libc"] = [NPM_LIBC.get(self.target.libc, self.target.libc)]
        out["main"] = self.entry_point
        if self.files:
            out["files"] = list(self.files)
        out.update(self.extra)
        return out

    def save(self, path: Path) -> None:
        write_json(path, self.to_dict())


def target_manifest_template(
    target: Target,
    layout: dict[str, Any] | None = None,
    meta: dict[str, Any] | None = None,
) -> PackageManifest:
    """Fresh manifest for a per-target package, inheriting shared metadata from meta."""
    cfg = resolve_layout(layout)
    extra = {k: meta[k] for k in INHERITED_FIELDS if meta and k in meta}
    return PackageManifest(
        name=target_package_name(target.canonical_name, cfg),
        version=str((meta or {}).get("version", "0.0.0")),
        entry_point=target.artifact_file_name,
        target=target,
        files=[target.artifact_file_name],
        extra=extra,
    )
