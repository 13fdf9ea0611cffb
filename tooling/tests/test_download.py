"""Tests for edr_tooling.install.download (URLs, retry, verification)."""

import hashlib
import io
import sys
from io import StringIO
from pathlib import Path
from unittest.mock import patch
from urllib.error import HTTPError, URLError

import pytest

from edr_tooling.catalog import get_target
from edr_tooling.errors import ChecksumMismatch, DownloadFailure
from edr_tooling.install.download import asset_url, download, release_asset, verify

# Module under test (sys.modules so we get the .py module, not install's re-exported function).
download_module = sys.modules["edr_tooling.install.download"]

BASE = "https://example.test/releases/download"
PAYLOAD = b"\x7fELF prebuilt addon"


def _ok(*_args, **_kwargs):
    return io.BytesIO(PAYLOAD)


def _http(code: int) -> HTTPError:
    return HTTPError("url", code, "err", {}, None)


@pytest.fixture
def asset():
    return release_asset(BASE, "1.2.3", get_target("linux-x64-gnu"))


class TestAssetUrl:
    def test_pure_function_of_version_and_artifact(self) -> None:
        t = get_target("linux-x64-musl")
        assert asset_url(BASE, "1.2.3", t) == f"{BASE}/v1.2.3/edr.linux-x64-musl.node"
        assert asset_url(BASE + "/", "v1.2.3", t) == f"{BASE}/v1.2.3/edr.linux-x64-musl.node"

    def test_release_asset_picks_checksum_and_size(self) -> None:
        t = get_target("darwin-arm64")
        a = release_asset(
            BASE,
            "1.0.0",
            t,
            checksums={"edr.darwin-arm64.node": "AB" * 32, "other.node": "0" * 64},
            sizes={"edr.darwin-arm64.node": 42},
        )
        assert a.expected_checksum == "ab" * 32
        assert a.expected_size == 42
        assert release_asset(BASE, "1.0.0", t).expected_checksum is None


class TestDownloadRetry:
    def test_success_first_try(self, asset, tmp_path: Path) -> None:
        dest = tmp_path / "out"
        with patch.object(download_module, "urlopen", side_effect=_ok) as m_open:
            size, digest = download(asset, dest)
        assert (size, digest) == (len(PAYLOAD), hashlib.sha256(PAYLOAD).hexdigest())
        assert dest.read_bytes() == PAYLOAD
        (req,) = m_open.call_args[0]
        assert req.full_url == f"{BASE}/v1.2.3/edr.linux-x64-gnu.node"
        assert m_open.call_args[1]["timeout"] == 30.0

    def test_n_minus_one_transient_failures_then_success(self, asset, tmp_path: Path) -> None:
        with (
            patch.object(download_module, "urlopen") as m_open,
            patch("time.sleep") as m_sleep,
            patch("sys.stderr", new=StringIO()) as fake_err,
        ):
            m_open.side_effect = [URLError("refused"), _http(503), TimeoutError("slow"), _ok()]
            size, _ = download(asset, tmp_path / "out", max_attempts=4)
        assert size == len(PAYLOAD)
        assert m_open.call_count == 4
        assert [c[0][0] for c in m_sleep.call_args_list] == [1.0, 2.0, 4.0]
        err = fake_err.getvalue()
        assert "Retry 1/4: Network error" in err
        assert "Retry 2/4: HTTP 503 error" in err

    def test_exhausting_attempt_cap_is_fatal(self, asset, tmp_path: Path) -> None:
        with (
            patch.object(download_module, "urlopen", side_effect=_http(502)) as m_open,
            patch("time.sleep") as m_sleep,
            patch("sys.stderr", new=StringIO()),
        ):
            with pytest.raises(DownloadFailure) as exc_info:
                download(asset, tmp_path / "out", max_attempts=3)
        assert m_open.call_count == 3
        assert m_sleep.call_count == 2
        assert exc_info.value.attempts == 3
        assert "after 3 attempts" in str(exc_info.value)
        assert "HTTP 502" in str(exc_info.value)

    def test_timeouts_count_toward_budget(self, asset, tmp_path: Path) -> None:
        with (
            patch.object(download_module, "urlopen", side_effect=TimeoutError("timed out")) as m_open,
            patch("time.sleep"),
            patch("sys.stderr", new=StringIO()),
        ):
            with pytest.raises(DownloadFailure):
                download(asset, tmp_path / "out", max_attempts=2, timeout=0.5)
        assert m_open.call_count == 2
        assert m_open.call_args[1]["timeout"] == 0.5

    def test_not_found_is_not_retried(self, asset, tmp_path: Path) -> None:
        with (
            patch.object(download_module, "urlopen", side_effect=_http(404)) as m_open,
            patch("time.sleep") as m_sleep,
        ):
            with pytest.raises(DownloadFailure, match="HTTP 404") as exc_info:
                download(asset, tmp_path / "out", max_attempts=5)
        assert m_open.call_count == 1
        assert m_sleep.call_count == 0
        assert exc_info.value.attempts == 1

    def test_partial_attempt_is_overwritten(self, asset, tmp_path: Path) -> None:
        dest = tmp_path / "out"
        dest.write_bytes(b"stale bytes from a broken attempt that were longer")
        with patch.object(download_module, "urlopen", side_effect=_ok):
            download(asset, dest)
        assert dest.read_bytes() == PAYLOAD

    def test_invalid_attempt_cap(self, asset, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            download(asset, tmp_path / "out", max_attempts=0)


class TestVerify:
    def test_accepts_matching(self) -> None:
        digest = hashlib.sha256(PAYLOAD).hexdigest()
        a = release_asset(
            BASE,
            "1.0.0",
            get_target("darwin-x64"),
            checksums={"edr.darwin-x64.node": digest},
            sizes={"edr.darwin-x64.node": len(PAYLOAD)},
        )
        verify(a, len(PAYLOAD), digest)

    def test_size_mismatch(self) -> None:
        a = release_asset(BASE, "1.0.0", get_target("darwin-x64"), sizes={"edr.darwin-x64.node": 1})
        with pytest.raises(ChecksumMismatch, match="expected 1 bytes"):
            verify(a, 2, "0" * 64)

    def test_checksum_mismatch(self) -> None:
        a = release_asset(
            BASE, "1.0.0", get_target("darwin-x64"), checksums={"edr.darwin-x64.node": "1" * 64}
        )
        with pytest.raises(ChecksumMismatch, match="sha256 mismatch"):
            verify(a, 10, "2" * 64)

    def test_nothing_known_passes(self) -> None:
        verify(release_asset(BASE, "1.0.0", get_target("darwin-x64")), 10, "f" * 64)
