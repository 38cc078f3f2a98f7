"""
L4 Execution — Download cache maintenance.

Artifacts land in ``<home>/cache`` and are reused by later installs
once their checksum verifies again.  Nothing prunes that directory on
its own: ``clear`` empties it and ``clean`` drops what has not been
touched for a number of days.  Leftover ``extract_*`` directories from
interrupted installs are removed along the way.
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from nodekeep.core.models.cache import CacheEntry
from nodekeep.core.services.runtime_install.data.constants import (
    DEFAULT_CACHE_MAX_AGE_DAYS,
    EXTRACT_DIR_PREFIX,
)
from nodekeep.core.services.runtime_install.domain.download_helpers import fmt_size

logger = logging.getLogger(__name__)

_DAY = 86400


class ArtifactCache:
    """Files in the download cache directory."""

    def __init__(self, cache_dir: Path, *, clock: Callable[[], float] = time.time):
        self.cache_dir = Path(cache_dir)
        self._clock = clock

    def entries(self) -> list[CacheEntry]:
        """Cached files, most recently modified first."""
        if not self.cache_dir.is_dir():
            return []
        found: list[CacheEntry] = []
        for path in self.cache_dir.iterdir():
            try:
                if not path.is_file():
                    continue
                st = path.stat()
            except OSError as e:
                logger.debug("Skipping %s: %s", path, e)
                continue
            found.append(CacheEntry(
                file_name=path.name,
                path=path,
                size_bytes=st.st_size,
                modified_at=datetime.fromtimestamp(st.st_mtime).astimezone(),
            ))
        found.sort(key=lambda e: e.modified_at, reverse=True)
        return found

    def size_bytes(self) -> int:
        return sum(e.size_bytes for e in self.entries())

    def path_for(self, file_name: str) -> Path:
        """Location of ``file_name`` inside the cache.

        Raises:
            ValueError: If ``file_name`` is empty or has path components.
        """
        if not file_name.strip() or Path(file_name).name != file_name or file_name in (".", ".."):
            raise ValueError(f"Invalid cache file name: {file_name!r}")
        return self.cache_dir / file_name

    def contains(self, file_name: str) -> bool:
        return self.path_for(file_name).is_file()

    def clear(self) -> list[CacheEntry]:
        """Delete every cached file.

        Returns:
            The entries actually removed; files that cannot be deleted
            (in use, permissions) are logged and kept.
        """
        removed = [e for e in self.entries() if self._remove(e)]
        self._remove_extract_dirs(cutoff=None)
        self._log_removed("Cleared", removed)
        return removed

    def clean(self, older_than_days: float = DEFAULT_CACHE_MAX_AGE_DAYS) -> list[CacheEntry]:
        """Delete cached files last modified more than ``older_than_days`` ago.

        Raises:
            ValueError: If ``older_than_days`` is negative.
        """
        if older_than_days < 0:
            raise ValueError(f"older_than_days must be >= 0, got {older_than_days}")
        cutoff = self._clock() - older_than_days * _DAY
        removed = [
            e for e in self.entries()
            if e.modified_at.timestamp() < cutoff and self._remove(e)
        ]
        self._remove_extract_dirs(cutoff=cutoff)
        self._log_removed("Cleaned", removed)
        return removed

    # ── internals ──

    @staticmethod
    def _remove(entry: CacheEntry) -> bool:
        try:
            entry.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove cached %s: %s", entry.file_name, e)
            return False
        return True

    def _remove_extract_dirs(self, cutoff: float | None) -> None:
        if not self.cache_dir.is_dir():
            return
        for path in self.cache_dir.glob(f"{EXTRACT_DIR_PREFIX}*"):
            try:
                if not path.is_dir():
                    continue
                if cutoff is not None and path.stat().st_mtime >= cutoff:
                    continue
                shutil.rmtree(path)
                logger.debug("Removed leftover %s", path.name)
            except OSError as e:
                logger.warning("Could not remove %s: %s", path, e)

    @staticmethod
    def _log_removed(action: str, removed: list[CacheEntry]) -> None:
        if removed:
            freed = sum(e.size_bytes for e in removed)
            logger.info("%s %d cached file(s), %s freed", action, len(removed), fmt_size(freed))
