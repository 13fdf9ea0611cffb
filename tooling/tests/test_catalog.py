"""Tests for edr_tooling.catalog."""

import pytest

from edr_tooling.catalog import (
    CATALOG,
    HOST_TABLE,
    TARGETS,
    HostTuple,
    Target,
    TargetId,
    get_target,
    select_targets,
)


class TestTarget:
    def test_artifact_names_match_published_naming(self) -> None:
        names = [t.artifact_file_name for t in TARGETS]
        assert names == [
            "edr.darwin-arm64.node",
            "edr.darwin-x64.node",
            "edr.linux-x64-gnu.node",
            "edr.linux-x64-musl.node",
            "edr.linux-arm64-gnu.node",
            "edr.linux-arm64-musl.node",
        ]

    def test_canonical_name_derived_from_fields(self) -> None:
        t = CATALOG[TargetId.LINUX_ARM64_MUSL]
        assert t.canonical_name == "linux-arm64-musl"
        assert t.compiler_triple == "aarch64-unknown-linux-musl"
        assert t.id is TargetId.LINUX_ARM64_MUSL

    def test_canonical_names_unique(self) -> None:
        names = [t.canonical_name for t in TARGETS]
        assert len(names) == len(set(names))

    def test_catalog_keys_match_target_names(self) -> None:
        for tid, t in CATALOG.items():
            assert tid.value == t.canonical_name

    def test_libc_only_on_linux(self) -> None:
        with pytest.raises(ValueError, match="Linux-only"):
            Target("darwin", "arm64", "musl", "aarch64-apple-darwin", "napi")

    def test_target_is_immutable(self) -> None:
        t = TARGETS[0]
        with pytest.raises(AttributeError):
            t.cpu_architecture = "x64"  # type: ignore[misc]


class TestHostTable:
    def test_every_target_has_exactly_one_host_tuple(self) -> None:
        assert sorted(HOST_TABLE.values()) == sorted(TargetId)
        assert len(set(HOST_TABLE.values())) == len(HOST_TABLE)

    def test_host_tuple_of_target_maps_back(self) -> None:
        for t in TARGETS:
            assert HOST_TABLE[t.host_tuple] is t.id

    def test_host_tuple_str(self) -> None:
        assert str(HostTuple("linux", "x64", "musl")) == "linux/x64/musl"
        assert str(HostTuple("darwin", "arm64")) == "darwin/arm64"


class TestSelectTargets:
    def test_empty_selects_all_in_build_order(self) -> None:
        assert select_targets(None) == list(TARGETS)
        assert select_targets([]) == list(TARGETS)

    def test_keeps_catalog_order(self) -> None:
        picked = select_targets(["linux-x64-musl", "darwin-arm64"])
        assert [t.canonical_name for t in picked] == ["darwin-arm64", "linux-x64-musl"]

    def test_unknown_raises(self) -> None:
        with pytest.raises(ValueError, match="win32-x64-msvc"):
            select_targets(["win32-x64-msvc"])

    def test_get_target(self) -> None:
        assert get_target("darwin-x64") is CATALOG[TargetId.DARWIN_X64]
        assert get_target("freebsd-arm") is None
