"""Tests for the edr CLI entry points."""

import hashlib
import io
import json
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from edr_tooling.catalog import TARGETS, HostTuple
from edr_tooling.cli import build as build_cli
from edr_tooling.cli import install_cmd, pack_cmd, targets_cmd
from edr_tooling.cli.main import main
from edr_tooling.config import dist_dir

download_module = sys.modules["edr_tooling.install.download"]


class TestMain:
    def test_no_command_prints_usage(self, capsys) -> None:
        with patch("sys.argv", ["edr"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1
        _, err = capsys.readouterr()
        assert "Usage: edr <command>" in err

    def test_unknown_command(self, capsys) -> None:
        with patch("sys.argv", ["edr", "publish"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1
        _, err = capsys.readouterr()
        assert "Unknown command: publish" in err

    def test_dispatches_targets(self) -> None:
        with (
            patch("sys.argv", ["edr", "targets"]),
            patch.object(targets_cmd, "run", return_value=0) as m_run,
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 0
        m_run.assert_called_once()


class TestBuildCli:
    def test_unknown_target_exits_1(self, tmp_path: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            build_cli.run_build_argv(["--target", "win32-x64-msvc", "--project-root", str(tmp_path)])
        assert exc_info.value.code == 1
        _, err = capsys.readouterr()
        assert "Unknown target(s): win32-x64-msvc" in err

    def test_failed_build_exits_1_with_summary(self, tmp_path: Path, capsys) -> None:
        with (
            patch("edr_tooling.build.toolchain.shutil.which", return_value="/usr/bin/npx"),
            patch("edr_tooling.build.toolchain.subprocess.run", return_value=MagicMock(returncode=101)),
        ):
            with pytest.raises(SystemExit) as exc_info:
                build_cli.run_build_argv(
                    ["--target", "darwin-arm64", "--target", "darwin-x64", "--project-root", str(tmp_path)]
                )
        assert exc_info.value.code == 1
        out, _ = capsys.readouterr()
        assert "=== Build summary ===" in out
        assert "darwin-arm64: failed" in out
        assert "darwin-x64: skipped" in out


class TestPackCli:
    def test_missing_subcommand(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            pack_cmd.run_pack_argv([])
        assert exc_info.value.code == 1

    def test_unknown_subcommand(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            pack_cmd.run_pack_argv(["publish"])
        assert exc_info.value.code == 1
        _, err = capsys.readouterr()
        assert "Unknown pack subcommand: publish" in err

    def test_release(self, staged_project: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            pack_cmd.run_pack_argv(["release", "--version", "1.4.0", "--project-root", str(staged_project)])
        assert exc_info.value.code == 0
        tarballs = sorted(p.name for p in dist_dir(staged_project).glob("*.tgz"))
        assert len(tarballs) == len(TARGETS) + 1
        assert "nomicfoundation-edr-1.4.0.tgz" in tarballs

    def test_target_unknown_name(self, staged_project: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            pack_cmd.run_pack_argv(["target", "freebsd-arm", "--project-root", str(staged_project)])
        assert exc_info.value.code == 1
        _, err = capsys.readouterr()
        assert "Unknown target: freebsd-arm" in err

    def test_target_missing_artifact_reports_error(self, project: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            pack_cmd.run_pack_argv(["target", "linux-x64-gnu", "--project-root", str(project)])
        assert exc_info.value.code == 1
        _, err = capsys.readouterr()
        assert "Staged artifact missing" in err

    def test_init_dirs(self, project: Path, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            pack_cmd.run_pack_argv(["init-dirs", "--project-root", str(project)])
        assert exc_info.value.code == 0
        out, _ = capsys.readouterr()
        assert out.count("✅ Created") == len(TARGETS)


class TestInstallCli:
    def test_no_version_returns_1(self, tmp_path: Path, capsys) -> None:
        assert install_cmd.run(tmp_path) == 1
        _, err = capsys.readouterr()
        assert "No version given" in err

    def test_installs_using_package_json_version(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("EDR_TARGET", "linux-arm64-musl")
        (tmp_path / "package.json").write_text(json.dumps({"name": "@nomicfoundation/edr", "version": "2.0.1"}))
        payload = b"addon bytes"
        sums = tmp_path / "SHA256SUMS"
        sums.write_text(f"{hashlib.sha256(payload).hexdigest()}  edr.linux-arm64-musl.node\n")
        with patch.object(
            download_module, "urlopen", side_effect=lambda *a, **k: io.BytesIO(payload)
        ) as m_open:
            rc = install_cmd.run(tmp_path, base_url="https://mirror.test/dl", checksums_file=sums)
        assert rc == 0
        (req,) = m_open.call_args[0]
        assert req.full_url == "https://mirror.test/dl/v2.0.1/edr.linux-arm64-musl.node"
        assert (tmp_path / "edr.linux-arm64-musl.node").read_bytes() == payload

    def test_checksum_mismatch_returns_1(self, tmp_path: Path, monkeypatch, capsys) -> None:
        monkeypatch.setenv("EDR_TARGET", "darwin-x64")
        sums = tmp_path / "SHA256SUMS"
        sums.write_text(f"{'0' * 64}  edr.darwin-x64.node\n")
        with patch.object(download_module, "urlopen", side_effect=lambda *a, **k: io.BytesIO(b"x")):
            rc = install_cmd.run(tmp_path, version="1.0.0", checksums_file=sums)
        assert rc == 1
        _, err = capsys.readouterr()
        assert "sha256 mismatch" in err
        assert not (tmp_path / "edr.darwin-x64.node").exists()

    def test_bundled_checksums_reject_corrupt_download(self, tmp_path: Path, monkeypatch, capsys) -> None:
        monkeypatch.setenv("EDR_TARGET", "linux-x64-gnu")
        good = b"released addon"
        (tmp_path / "SHA256SUMS").write_text(f"{hashlib.sha256(good).hexdigest()}  edr.linux-x64-gnu.node\n")
        with patch.object(download_module, "urlopen", side_effect=lambda *a, **k: io.BytesIO(b"corrupted")):
            rc = install_cmd.run(tmp_path, version="1.0.0")
        assert rc == 1
        _, err = capsys.readouterr()
        assert "sha256 mismatch" in err
        assert not (tmp_path / "edr.linux-x64-gnu.node").exists()

    def test_bundled_checksums_accept_matching_download(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("EDR_TARGET", "linux-x64-gnu")
        good = b"released addon"
        (tmp_path / "SHA256SUMS").write_text(f"{hashlib.sha256(good).hexdigest()}  edr.linux-x64-gnu.node\n")
        with patch.object(download_module, "urlopen", side_effect=lambda *a, **k: io.BytesIO(good)):
            assert install_cmd.run(tmp_path, version="1.0.0") == 0
        assert (tmp_path / "edr.linux-x64-gnu.node").read_bytes() == good


class TestTargetsCli:
    def test_lists_catalog_and_host(self, monkeypatch, capsys) -> None:
        monkeypatch.delenv("EDR_TARGET", raising=False)
        assert targets_cmd.run(lambda: HostTuple("linux", "arm64", "gnu")) == 0
        out, _ = capsys.readouterr()
        for t in TARGETS:
            assert t.artifact_file_name in out
        assert "Host linux/arm64/gnu -> linux-arm64-gnu" in out

    def test_unsupported_host(self, monkeypatch, capsys) -> None:
        monkeypatch.delenv("EDR_TARGET", raising=False)
        assert targets_cmd.run(lambda: HostTuple("win32", "x64")) == 1
        _, err = capsys.readouterr()
        assert "Unsupported platform win32/x64" in err
