"""
L4 Execution — Archive extraction.

Supports ``.zip`` (extracted in-process with ``zipfile``) and
``.tar.gz`` / ``.tar.xz`` (extracted by the system ``tar``).  Every entry
name is checked before anything is written: an entry that would land
outside the destination rejects the whole archive.

On failure the destination may hold partial output; the caller owns
it and is expected to delete it.
"""

from __future__ import annotations

import logging
import os
import shutil
import zipfile
import zlib
from collections.abc import Callable, Iterator
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import Any

from nodekeep.core.cancellation import CancelToken, is_cancelled
from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.models.outcome import ExtractionOutcome
from nodekeep.core.services.runtime_install.execution.subprocess_runner import run_command

logger = logging.getLogger(__name__)

Runner = Callable[..., dict[str, Any]]

TAR_TIMEOUT = 600


class ArchiveFormat(StrEnum):
    ZIP = "zip"
    TAR_GZ = "tar.gz"
    TAR_XZ = "tar.xz"


_SUFFIXES: tuple[tuple[str, ArchiveFormat], ...] = (
    (".zip", ArchiveFormat.ZIP),
    (".tar.gz", ArchiveFormat.TAR_GZ),
    (".tgz", ArchiveFormat.TAR_GZ),
    (".tar.xz", ArchiveFormat.TAR_XZ),
)

# tar flag selecting the decompressor
_TAR_FILTER: dict[ArchiveFormat, str] = {
    ArchiveFormat.TAR_GZ: "z",
    ArchiveFormat.TAR_XZ: "J",
}


def detect_format(path: Path | str) -> ArchiveFormat | None:
    """Archive format from the file name, or None if unsupported."""
    name = Path(path).name.lower()
    for suffix, fmt in _SUFFIXES:
        if name.endswith(suffix):
            return fmt
    return None


def is_unsafe_entry(name: str) -> bool:
    """Whether a tar member name could escape the extraction root."""
    normalized = name.replace("\\", "/")
    if normalized.startswith("/") or (len(normalized) > 1 and normalized[1] == ":"):
        return True
    return ".." in PurePosixPath(normalized).parts


class ArchiveExtractor:
    """Format-aware extraction with path-traversal protection."""

    def __init__(
        self,
        runner: Runner = run_command,
        *,
        tar_binary: str = "tar",
        tar_timeout: float = TAR_TIMEOUT,
    ):
        self._run = runner
        self.tar_binary = tar_binary
        self.tar_timeout = tar_timeout

    def is_valid_archive(self, path: Path | str) -> bool:
        """Whether the extension is a supported archive type."""
        return detect_format(path) is not None

    def list_contents(self, archive: Path) -> Iterator[str]:
        """Yield the entry names of ``archive``.

        Raises:
            NodekeepError: PATH_NOT_FOUND or CORRUPTED_ARCHIVE.
        """
        archive = Path(archive)
        fmt = self._require(archive)

        if fmt is ArchiveFormat.ZIP:
            try:
                with zipfile.ZipFile(archive) as zf:
                    names = zf.namelist()
            except (zipfile.BadZipFile, OSError) as e:
                raise NodekeepError(
                    ErrorKind.CORRUPTED_ARCHIVE, f"Cannot read {archive.name}: {e}",
                ) from e
            yield from names
            return

        result = self._run(
            [self.tar_binary, f"-t{_TAR_FILTER[fmt]}f", str(archive)],
            timeout=self.tar_timeout,
            tail=None,
        )
        if not result["ok"]:
            raise NodekeepError(
                ErrorKind.CORRUPTED_ARCHIVE,
                f"Cannot list {archive.name}: {result.get('stderr') or result.get('error')}",
            )
        for line in result.get("stdout", "").splitlines():
            if line.strip():
                yield line.rstrip("\r")

    def extract(
        self,
        archive: Path,
        destination: Path,
        preserve_permissions: bool = True,
        cancel: CancelToken | None = None,
    ) -> ExtractionOutcome:
        """Extract ``archive`` into ``destination``."""
        archive = Path(archive)
        destination = Path(destination)

        try:
            fmt = self._require(archive)
        except NodekeepError as e:
            return ExtractionOutcome.from_error(e)

        if is_cancelled(cancel):
            return ExtractionOutcome.failure(ErrorKind.CANCELLED, "Extraction cancelled")

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ExtractionOutcome.failure(
                ErrorKind.INSUFFICIENT_PERMISSIONS,
                f"Cannot create {destination}: {e}",
            )

        logger.info("Extracting %s → %s", archive.name, destination)
        try:
            if fmt is ArchiveFormat.ZIP:
                entries = self._extract_zip(archive, destination, preserve_permissions, cancel)
            else:
                entries = self._extract_tar(archive, destination, fmt, preserve_permissions, cancel)
        except NodekeepError as e:
            return ExtractionOutcome.from_error(e, destination=destination)

        logger.debug("Extracted %d entries from %s", entries, archive.name)
        return ExtractionOutcome.success(destination=destination, entries=entries)

    # ── internals ──

    @staticmethod
    def _require(archive: Path) -> ArchiveFormat:
        if not archive.is_file():
            raise NodekeepError(ErrorKind.PATH_NOT_FOUND, f"Archive not found: {archive}")
        fmt = detect_format(archive)
        if fmt is None:
            raise NodekeepError(
                ErrorKind.CORRUPTED_ARCHIVE,
                f"Unsupported archive format: {archive.name}",
                hint="Supported: .zip, .tar.gz, .tar.xz",
            )
        return fmt

    def _extract_zip(
        self,
        archive: Path,
        destination: Path,
        preserve_permissions: bool,
        cancel: CancelToken | None,
    ) -> int:
        root = destination.resolve()
        try:
            with zipfile.ZipFile(archive) as zf:
                plan: list[tuple[zipfile.ZipInfo, Path]] = []
                for info in zf.infolist():
                    target = (root / info.filename).resolve()
                    if not target.is_relative_to(root):
                        raise NodekeepError(
                            ErrorKind.PATH_TRAVERSAL_DETECTED,
                            f"Entry '{info.filename}' escapes the extraction directory",
                        )
                    plan.append((info, target))

                for info, target in plan:
                    if is_cancelled(cancel):
                        raise NodekeepError(ErrorKind.CANCELLED, "Extraction cancelled")
                    if info.is_dir():
                        target.mkdir(parents=True, exist_ok=True)
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with zf.open(info) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst)
                    if preserve_permissions:
                        mode = (info.external_attr >> 16) & 0o777
                        if mode:
                            os.chmod(target, mode)
                return len(plan)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise NodekeepError(
                ErrorKind.CORRUPTED_ARCHIVE, f"Corrupted zip archive {archive.name}: {e}",
            ) from e
        except OSError as e:
            raise NodekeepError(
                ErrorKind.INSTALLATION_FAILED, f"Cannot write extracted files: {e}",
            ) from e

    def _extract_tar(
        self,
        archive: Path,
        destination: Path,
        fmt: ArchiveFormat,
        preserve_permissions: bool,
        cancel: CancelToken | None,
    ) -> int:
        names = list(self.list_contents(archive))
        for name in names:
            if is_unsafe_entry(name):
                raise NodekeepError(
                    ErrorKind.PATH_TRAVERSAL_DETECTED,
                    f"Entry '{name}' escapes the extraction directory",
                )
        if is_cancelled(cancel):
            raise NodekeepError(ErrorKind.CANCELLED, "Extraction cancelled")

        cmd = [
            self.tar_binary,
            f"-x{_TAR_FILTER[fmt]}f",
            str(archive),
            "-C",
            str(destination),
            "-p" if preserve_permissions else "--no-same-permissions",
        ]
        result = self._run(cmd, timeout=self.tar_timeout)
        if not result["ok"]:
            detail = (result.get("stderr") or result.get("error") or "").strip()
            raise NodekeepError(
                ErrorKind.CORRUPTED_ARCHIVE,
                f"tar failed for {archive.name}: {detail}",
            )
        return len(names)
