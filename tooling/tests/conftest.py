"""Pytest fixtures for EDR tooling tests."""

import json
from pathlib import Path

import pytest

from edr_tooling.catalog import TARGETS
from edr_tooling.config import staging_dir


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project root with crates/edr_napi holding the meta package.json and shared files."""
    crate = tmp_path / "crates" / "edr_napi"
    crate.mkdir(parents=True)
    (crate / "package.json").write_text(
        json.dumps(
            {
                "name": "@nomicfoundation/edr",
                "version": "0.1.0",
                "main": "index.js",
                "types": "index.d.ts",
                "license": "MIT",
                "repository": "NomicFoundation/edr.git",
            },
            indent=2,
        )
    )
    (crate / "index.js").write_text("module.exports = require('./binding');\n")
    (crate / "index.d.ts").write_text("export declare function run(): void;\n")
    (crate / "install.js").write_text("// fetch prebuilt binary\n")
    return tmp_path


@pytest.fixture
def staged_project(project: Path) -> Path:
    """project with an artifact staged for every target."""
    for t in TARGETS:
        d = staging_dir(project, t.canonical_name)
        d.mkdir(parents=True, exist_ok=True)
        (d / t.artifact_file_name).write_bytes(f"addon:{t.canonical_name}".encode())
    return project
