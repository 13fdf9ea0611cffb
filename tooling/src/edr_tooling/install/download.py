"""Compute release asset URLs and download them with bounded retry."""

from __future__ import annotations

import hashlib
import http.client
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from edr_tooling import __version__
from edr_tooling.catalog import Target
from edr_tooling.errors import ChecksumMismatch, DownloadFailure
from edr_tooling.helpers import exponential_backoff_sequence

log = logging.getLogger(__name__)

TRANSIENT_HTTP_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_TIMEOUT = 30.0
CHUNK_SIZE = 1 << 16


@dataclass(frozen=True)
class ReleaseAsset:
    target: Target
    version: str
    download_url: str
    expected_checksum: str | None = None
    expected_size: int | None = None


def asset_url(base_url: str, version: str, target: Target) -> str:
    """<base_url>/v<version>/<artifact_file_name>. No server lookup."""
    return f"{base_url.rstrip('/')}/v{version.lstrip('v')}/{target.artifact_file_name}"


def release_asset(
    base_url: str,
    version: str,
    target: Target,
    checksums: dict[str, str] | None = None,
    sizes: dict[str, int] | None = None,
) -> ReleaseAsset:
    """ReleaseAsset for target; checksum/size looked up by artifact file name when given."""
    name = target.artifact_file_name
    checksum = (checksums or {}).get(name)
    return ReleaseAsset(
        target=target,
        version=version.lstrip("v"),
        download_url=asset_url(base_url, version, target),
        expected_checksum=checksum.lower() if checksum else None,
        expected_size=(sizes or {}).get(name),
    )


def _fetch_once(url: str, dest: Path, timeout: float) -> tuple[int, str]:
    """One GET of url into dest (truncated first). Returns (size, sha256)."""
    req = Request(url, headers={"User-Agent": f"edr-tooling/{__version__}"})
    h = hashlib.sha256()
    size = 0
    with urlopen(req, timeout=timeout) as response, dest.open("wb") as out:
        for chunk in iter(lambda: response.read(CHUNK_SIZE), b""):
            out.write(chunk)
            h.update(chunk)
            size += len(chunk)
    return size, h.hexdigest()


def download(
    asset: ReleaseAsset,
    dest: Path,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    timeout: float = DEFAULT_TIMEOUT,
    backoff_base: float = 1.0,
    backoff_max: float = 30.0,
) -> tuple[int, str]:
    """Download asset into dest, retrying transient failures. Returns (size, sha256).

    Network errors, timeouts and HTTP 408/425/429/5xx are retried with
    exponential backoff; other HTTP errors fail at once. Raises DownloadFailure
    after max_attempts attempts.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)
    delays = exponential_backoff_sequence(max_attempts, backoff_base, backoff_max)
    url = asset.download_url
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            log.debug("GET %s (attempt %d/%d)", url, attempt, max_attempts)
            return _fetch_once(url, dest, timeout)
        except HTTPError as e:
            if e.code not in TRANSIENT_HTTP_CODES:
                msg = f"Failed to download {url}: HTTP {e.code} {e.reason}"
                raise DownloadFailure(msg, attempts=attempt) from e
            last_error = e
            reason = f"HTTP {e.code} error"
        except (URLError, TimeoutError, ConnectionError, http.client.HTTPException) as e:
            last_error = e
            reason = f"Network error ({e})"

        if attempt == max_attempts:
            break
        wait = delays[attempt - 1]
        print(
            f"Retry {attempt}/{max_attempts}: {reason}, waiting {wait:g}s...",
            file=sys.stderr,
        )
        time.sleep(wait)

    if isinstance(last_error, HTTPError):
        detail = f"HTTP {last_error.code} {last_error.reason}"
    else:
        detail = str(last_error)
    msg = f"Failed to download {url} after {max_attempts} attempts: {detail}"
    raise DownloadFailure(msg, attempts=max_attempts) from last_error


def verify(asset: ReleaseAsset, size: int, sha256: str) -> None:
    """Raise ChecksumMismatch if size or sha256 differ from what the asset expects."""
    if asset.expected_size is not None and size != asset.expected_size:
        msg = (
            f"{asset.target.artifact_file_name}: expected {asset.expected_size} bytes, "
            f"downloaded {size}"
        )
        raise ChecksumMismatch(msg)
    if asset.expected_checksum is not None and sha256 != asset.expected_checksum:
        msg = (
            f"{asset.target.artifact_file_name}: sha256 mismatch "
            f"(expected {asset.expected_checksum}, got {sha256})"
        )
        raise ChecksumMismatch(msg)
