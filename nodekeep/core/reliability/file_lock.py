"""
Named cross-process locks backed by advisory OS file locks.

Each lock name maps to a marker file ``<locks_dir>/<name>.lock``.  The
claim is an exclusive advisory lock on the open descriptor:

- POSIX: ``fcntl.flock(LOCK_EX | LOCK_NB)``
- Windows: ``msvcrt.locking(LK_NBLCK)`` on the first byte

The OS drops the claim when the holding process dies, so a crashed
holder never wedges later runs.  The marker's content (timestamp and
PID) is diagnostic only.

Usage::

    manager = LockManager(config.locks_dir)
    with manager.acquire("state", timeout=30):
        ...  # critical section
"""

from __future__ import annotations

import logging
import os
import sys
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from nodekeep.core.errors import LockTimeout

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"
DEFAULT_RETRY_INTERVAL = 0.1
DEFAULT_STALE_AGE = 24 * 60 * 60

_INVALID_NAME_CHARS = set('<>:"/\\|?*')
_IS_WINDOWS = sys.platform == "win32"


# ── OS primitives ───────────────────────────────────────────────


def _os_lock(fd: int) -> bool:
    """Try to take an exclusive lock on ``fd`` without blocking."""
    if _IS_WINDOWS:
        import msvcrt

        os.lseek(fd, 0, os.SEEK_SET)
        try:
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError as e:
            # 13 (EACCES) and 36 (EDEADLOCK) mean another holder
            if e.errno in (13, 36):
                return False
            raise
        return True

    import fcntl

    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


def _os_unlock(fd: int) -> None:
    if _IS_WINDOWS:
        import msvcrt

        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
        return

    import fcntl

    fcntl.flock(fd, fcntl.LOCK_UN)


def _same_file(fd: int, path: Path) -> bool:
    """Whether ``fd`` still refers to the file currently at ``path``."""
    try:
        on_disk = os.stat(path)
    except FileNotFoundError:
        return False
    held = os.fstat(fd)
    return (held.st_dev, held.st_ino) == (on_disk.st_dev, on_disk.st_ino)


def _discard(fd: int, path: Path) -> None:
    """Unlock, close and delete a marker we hold.

    POSIX deletes before unlocking so no other process can lock the
    doomed inode; Windows cannot delete an open file, so it goes last.
    """
    if not _IS_WINDOWS:
        path.unlink(missing_ok=True)
    try:
        _os_unlock(fd)
    finally:
        os.close(fd)
    if _IS_WINDOWS:
        try:
            path.unlink(missing_ok=True)
        except PermissionError:
            logger.debug("Lock marker %s still open elsewhere, left in place", path)


def validate_lock_name(name: str) -> None:
    """Raise ``ValueError`` unless ``name`` is usable as a marker file name."""
    if not name or not name.strip():
        raise ValueError("Lock name must not be empty")
    if name in (".", ".."):
        raise ValueError(f"Invalid lock name: {name!r}")
    bad = [c for c in name if c in _INVALID_NAME_CHARS or ord(c) < 32]
    if bad:
        raise ValueError(f"Invalid characters in lock name {name!r}: {''.join(bad)!r}")


# ── Handle ──────────────────────────────────────────────────────


class LockHandle:
    """A held lock.  ``release()`` is idempotent."""

    def __init__(self, manager: LockManager, name: str, path: Path, fd: int):
        self._manager = manager
        self.name = name
        self.path = path
        self._fd: int | None = fd

    @property
    def released(self) -> bool:
        return self._fd is None

    def release(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        self._manager._forget(self)
        try:
            _discard(fd, self.path)
        except OSError as e:
            logger.warning("Error releasing lock '%s': %s", self.name, e)
        else:
            logger.debug("Released lock '%s'", self.name)

    def __enter__(self) -> LockHandle:
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "held"
        return f"LockHandle({self.name!r}, {state})"


# ── Manager ─────────────────────────────────────────────────────


class LockManager:
    """Acquires and inspects named locks under one directory."""

    def __init__(
        self,
        locks_dir: Path,
        *,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.locks_dir = Path(locks_dir)
        self.retry_interval = retry_interval
        self._clock = clock
        self._sleep = sleep
        self._held: dict[str, LockHandle] = {}

    def path_for(self, name: str) -> Path:
        return self.locks_dir / f"{name}{LOCK_SUFFIX}"

    def acquire(self, name: str, timeout: float = 30.0) -> LockHandle:
        """Acquire ``name``, retrying every ``retry_interval`` seconds.

        ``timeout=0`` makes exactly one attempt.

        Raises:
            ValueError: Negative timeout or invalid name.
            LockTimeout: The lock is still held when the timeout elapses.
        """
        if timeout < 0:
            raise ValueError(f"Lock timeout must be >= 0, got {timeout}")
        validate_lock_name(name)

        deadline = self._clock() + timeout
        attempts = 0
        while True:
            attempts += 1
            handle = self._attempt(name)
            if handle is not None:
                logger.debug("Acquired lock '%s' after %d attempt(s)", name, attempts)
                return handle
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.info("Timed out waiting %ss for lock '%s'", timeout, name)
                raise LockTimeout(name, timeout)
            self._sleep(min(self.retry_interval, remaining))

    def try_acquire(self, name: str) -> LockHandle | None:
        """Single non-blocking attempt; None when another holder exists."""
        validate_lock_name(name)
        return self._attempt(name)

    def is_held(self, name: str) -> bool:
        """Whether any process (this one included) currently holds ``name``."""
        validate_lock_name(name)
        if name in self._held:
            return True

        path = self.path_for(name)
        try:
            fd = os.open(path, os.O_RDWR)
        except FileNotFoundError:
            return False
        try:
            if not _os_lock(fd):
                return True
            _os_unlock(fd)
            return False
        finally:
            os.close(fd)

    def release_stale(self, max_age: float = DEFAULT_STALE_AGE) -> list[str]:
        """Delete markers older than ``max_age`` seconds that nobody holds.

        Returns:
            Names of the markers removed.
        """
        if not self.locks_dir.is_dir():
            return []

        cutoff = time.time() - max_age
        removed: list[str] = []
        for path in sorted(self.locks_dir.glob(f"*{LOCK_SUFFIX}")):
            name = path.name[: -len(LOCK_SUFFIX)]
            try:
                if path.stat().st_mtime >= cutoff:
                    continue
                fd = os.open(path, os.O_RDWR)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.debug("Skipping lock marker %s: %s", path, e)
                continue

            try:
                locked = _os_lock(fd)
            except OSError:
                locked = False
            if not locked:
                os.close(fd)
                logger.debug("Lock '%s' is old but still held, keeping it", name)
                continue

            _discard(fd, path)
            removed.append(name)
            logger.info("Removed stale lock '%s'", name)
        return removed

    # ── internals ──

    def _attempt(self, name: str) -> LockHandle | None:
        path = self.path_for(name)
        self.locks_dir.mkdir(parents=True, exist_ok=True)

        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            if not _os_lock(fd):
                os.close(fd)
                return None
        except OSError:
            os.close(fd)
            raise

        # A releaser may have unlinked the marker between our open and lock.
        if not _same_file(fd, path):
            _os_unlock(fd)
            os.close(fd)
            return None

        try:
            self._write_metadata(fd)
        except OSError as e:
            logger.debug("Could not write lock metadata for '%s': %s", name, e)

        handle = LockHandle(self, name, path, fd)
        self._held[name] = handle
        return handle

    def _forget(self, handle: LockHandle) -> None:
        if self._held.get(handle.name) is handle:
            del self._held[handle.name]

    @staticmethod
    def _write_metadata(fd: int) -> None:
        text = (
            f"Locked at: {datetime.now(UTC).isoformat()}\n"
            f"Process ID: {os.getpid()}\n"
        )
        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        os.write(fd, text.encode("utf-8"))
