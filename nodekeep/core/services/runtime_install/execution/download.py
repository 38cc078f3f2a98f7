"""
L4 Execution — Download and checksum verification.

``Downloader.download_file`` streams an https URL to disk in 8 KiB
chunks, verifies the SHA-256 digest once the file is closed, and
retries transient failures with exponential backoff.  It returns a
``DownloadOutcome``; it never raises for network or checksum problems.

A file left at ``destination`` after a failed or cancelled call is a
bug: every failure path deletes what it wrote.
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from nodekeep.core.cancellation import CancelToken, is_cancelled
from nodekeep.core.errors import ErrorKind
from nodekeep.core.models.outcome import DownloadOutcome, DownloadProgress
from nodekeep.core.reliability.retry import RetryPolicy
from nodekeep.core.services.runtime_install.data.constants import USER_AGENT
from nodekeep.core.services.runtime_install.domain.download_helpers import (
    fmt_size,
    parse_checksum_manifest,
    split_checksum,
)

logger = logging.getLogger(__name__)

ProgressSink = Callable[[DownloadProgress], None]

CHUNK_SIZE = 8192
DEFAULT_TIMEOUT = 300.0
MANIFEST_TIMEOUT = 30.0

_RETRYABLE_HTTP = frozenset({408, 429})


class _Transient(Exception):
    """Failure worth another attempt."""


class _Permanent(Exception):
    """Failure no retry can fix."""


class _Cancelled(Exception):
    pass


def compute_checksum(path: Path, algorithm: str = "sha256") -> str:
    """Hex digest of ``path``, lowercase."""
    h = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(path: Path, expected: str) -> bool:
    """Compare ``path`` against ``expected`` (``hex`` or ``algo:hex``).

    The comparison ignores case.
    """
    algo, digest = split_checksum(expected)
    return compute_checksum(path, algo) == digest


def _is_https(url: str) -> bool:
    return urlparse(url).scheme.lower() == "https"


class Downloader:
    """Resilient, checksummed file downloads over https."""

    def __init__(
        self,
        retry: RetryPolicy | None = None,
        *,
        opener: Callable[..., Any] = urllib.request.urlopen,
        chunk_size: int = CHUNK_SIZE,
        default_timeout: float = DEFAULT_TIMEOUT,
    ):
        self.retry = retry or RetryPolicy()
        self._opener = opener
        self.chunk_size = chunk_size
        self.default_timeout = default_timeout

    def download_file(
        self,
        url: str,
        destination: Path,
        expected_checksum: str | None = None,
        progress: ProgressSink | None = None,
        timeout: float | None = None,
        cancel: CancelToken | None = None,
    ) -> DownloadOutcome:
        """Download ``url`` to ``destination``.

        Args:
            url: Source URL; anything but https is refused.
            destination: Target file path (parent is created).
            expected_checksum: SHA-256 hex, optionally ``sha256:``-prefixed.
            progress: Called after each chunk when the size is known.
            timeout: Per-request timeout in seconds.
            cancel: Cooperative cancellation token.

        Returns:
            ``DownloadOutcome`` with ``path`` and ``checksum`` on success;
            DOWNLOAD_FAILED, CHECKSUM_MISMATCH or CANCELLED otherwise.
        """
        if not _is_https(url):
            return DownloadOutcome.failure(
                ErrorKind.DOWNLOAD_FAILED,
                f"Refusing non-https URL: {url}",
            )
        if expected_checksum is not None:
            algo, _ = split_checksum(expected_checksum)
            if algo not in hashlib.algorithms_available:
                return DownloadOutcome.failure(
                    ErrorKind.DOWNLOAD_FAILED,
                    f"Unsupported checksum algorithm: {algo}",
                )

        destination = Path(destination)
        timeout = timeout or self.default_timeout
        algo, wanted = split_checksum(expected_checksum) if expected_checksum else ("sha256", None)
        max_attempts = max(self.retry.max_attempts, 1)
        last_error = ""
        checksum_failed = False

        for attempt in range(1, max_attempts + 1):
            if is_cancelled(cancel):
                return self._cancelled(destination, attempt - 1)

            logger.info("Downloading %s (attempt %d/%d)", url, attempt, max_attempts)
            try:
                written = self._fetch_once(url, destination, progress, timeout, cancel)
                actual = _digest_downloaded(destination, algo)
            except _Cancelled:
                return self._cancelled(destination, attempt)
            except KeyboardInterrupt:
                destination.unlink(missing_ok=True)
                raise
            except _Permanent as e:
                destination.unlink(missing_ok=True)
                return DownloadOutcome.failure(
                    ErrorKind.DOWNLOAD_FAILED, str(e), attempts=attempt,
                )
            except _Transient as e:
                destination.unlink(missing_ok=True)
                last_error = str(e)
                checksum_failed = False
                logger.warning("Download attempt %d/%d failed: %s", attempt, max_attempts, e)
            else:
                if wanted is None or actual == wanted:
                    logger.info("Downloaded %s (%s)", destination.name, fmt_size(written))
                    return DownloadOutcome.success(
                        path=destination,
                        bytes_downloaded=written,
                        checksum=actual,
                        attempts=attempt,
                    )
                destination.unlink(missing_ok=True)
                last_error = (
                    f"Checksum mismatch for {destination.name}: "
                    f"expected {wanted}, got {actual}"
                )
                checksum_failed = True
                logger.warning("%s (attempt %d/%d)", last_error, attempt, max_attempts)

            if attempt < max_attempts and not self.retry.pause(attempt, cancel):
                return self._cancelled(destination, attempt)

        if checksum_failed:
            return DownloadOutcome.failure(
                ErrorKind.CHECKSUM_MISMATCH,
                last_error,
                hint="The artifact may be corrupted upstream or in transit.",
                attempts=max_attempts,
            )
        return DownloadOutcome.failure(
            ErrorKind.DOWNLOAD_FAILED,
            f"Download failed after {max_attempts} attempts: {last_error}",
            attempts=max_attempts,
        )

    def fetch_checksum_manifest(
        self,
        url: str,
        file_name: str,
        timeout: float = MANIFEST_TIMEOUT,
    ) -> str | None:
        """Look up ``file_name`` in the checksum manifest at ``url``.

        Returns:
            The lowercase hex digest, or None when the manifest is
            unreachable or does not list the file.
        """
        if not _is_https(url):
            logger.warning("Refusing non-https manifest URL: %s", url)
            return None

        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with self._opener(req, timeout=timeout) as resp:
                text = resp.read().decode("utf-8", errors="replace")
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as e:
            logger.warning("Cannot fetch checksum manifest %s: %s", url, e)
            return None

        digest = parse_checksum_manifest(text, file_name)
        if digest is None:
            logger.warning("%s not listed in %s", file_name, url)
        return digest

    # ── internals ──

    def _fetch_once(
        self,
        url: str,
        destination: Path,
        progress: ProgressSink | None,
        timeout: float,
        cancel: CancelToken | None,
    ) -> int:
        req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with self._opener(req, timeout=timeout) as resp:
                total = _content_length(resp)
                destination.parent.mkdir(parents=True, exist_ok=True)
                downloaded = 0
                last_logged = -5
                with open(destination, "wb") as f:
                    while True:
                        if is_cancelled(cancel):
                            raise _Cancelled()
                        chunk = resp.read(self.chunk_size)
                        if not chunk:
                            break
                        f.write(chunk)
                        downloaded += len(chunk)

                        if total > 0:
                            pct = downloaded * 100 / total
                            if progress is not None:
                                progress(DownloadProgress(
                                    bytes_downloaded=downloaded,
                                    total_bytes=total,
                                    percent=round(min(pct, 100.0), 1),
                                ))
                            if pct >= last_logged + 5:
                                last_logged = int(pct)
                                logger.debug(
                                    "Download progress: %d%% (%s / %s)",
                                    pct, fmt_size(downloaded), fmt_size(total),
                                )
        except urllib.error.HTTPError as e:
            if e.code >= 500 or e.code in _RETRYABLE_HTTP:
                raise _Transient(f"HTTP {e.code} from {url}") from e
            raise _Permanent(f"HTTP {e.code} from {url}") from e
        except urllib.error.URLError as e:
            raise _Transient(f"Network error: {e.reason}") from e
        except http.client.HTTPException as e:
            raise _Transient(f"Connection dropped: {type(e).__name__}: {e}") from e
        except (TimeoutError, OSError) as e:
            raise _Transient(f"{type(e).__name__}: {e}") from e

        if total > 0 and downloaded < total:
            raise _Transient(
                f"Incomplete download: got {fmt_size(downloaded)} of {fmt_size(total)}"
            )
        return downloaded

    @staticmethod
    def _cancelled(destination: Path, attempts: int) -> DownloadOutcome:
        destination.unlink(missing_ok=True)
        logger.info("Download of %s cancelled", destination.name)
        return DownloadOutcome.failure(
            ErrorKind.CANCELLED, "Download cancelled", attempts=attempts,
        )


def _digest_downloaded(path: Path, algorithm: str) -> str:
    try:
        return compute_checksum(path, algorithm)
    except OSError as e:
        raise _Transient(f"Cannot read back {path.name}: {e}") from e


def _content_length(resp: Any) -> int:
    try:
        return int(resp.headers.get("Content-Length") or 0)
    except (TypeError, ValueError):
        return 0
