"""
Error kinds — the typed failure vocabulary shared by every component.

Leaf components raise ``NodekeepError``; the orchestrator and use cases
convert it into outcome models so that callers only ever see a kind,
a detail message and an optional hint.  Each kind maps to a stable
process exit code.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Every failure the install pipeline can report."""

    UNSUPPORTED_PLATFORM = "unsupported_platform"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"
    INSUFFICIENT_DISK_SPACE = "insufficient_disk_space"
    PATH_NOT_FOUND = "path_not_found"
    REMOTE_API_FAILED = "remote_api_failed"
    ARTIFACT_NOT_AVAILABLE = "artifact_not_available"
    DOWNLOAD_FAILED = "download_failed"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    CORRUPTED_ARCHIVE = "corrupted_archive"
    PATH_TRAVERSAL_DETECTED = "path_traversal_detected"
    INSTALLATION_NOT_FOUND = "installation_not_found"
    INVALID_ALIAS = "invalid_alias"
    ALREADY_INSTALLED = "already_installed"
    INSTALLATION_FAILED = "installation_failed"
    LOCK_TIMEOUT = "lock_timeout"
    INVALID_VERSION_FORMAT = "invalid_version_format"
    ARTIFACT_SERIES_NOT_FOUND = "artifact_series_not_found"
    VERSION_FILE_NOT_FOUND = "version_file_not_found"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


# Grouped by area: 1x platform, 2x filesystem, 3x network/artifacts,
# 4x installations, 6x locking, 7x input, 9x internal.
EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.UNSUPPORTED_PLATFORM: 10,
    ErrorKind.INSUFFICIENT_PERMISSIONS: 21,
    ErrorKind.INSUFFICIENT_DISK_SPACE: 22,
    ErrorKind.PATH_NOT_FOUND: 24,
    ErrorKind.REMOTE_API_FAILED: 30,
    ErrorKind.ARTIFACT_NOT_AVAILABLE: 31,
    ErrorKind.DOWNLOAD_FAILED: 32,
    ErrorKind.CHECKSUM_MISMATCH: 33,
    ErrorKind.CORRUPTED_ARCHIVE: 34,
    ErrorKind.PATH_TRAVERSAL_DETECTED: 35,
    ErrorKind.INSTALLATION_NOT_FOUND: 40,
    ErrorKind.INVALID_ALIAS: 41,
    ErrorKind.ALREADY_INSTALLED: 42,
    ErrorKind.INSTALLATION_FAILED: 43,
    ErrorKind.LOCK_TIMEOUT: 60,
    ErrorKind.INVALID_VERSION_FORMAT: 71,
    ErrorKind.ARTIFACT_SERIES_NOT_FOUND: 72,
    ErrorKind.VERSION_FILE_NOT_FOUND: 73,
    ErrorKind.UNEXPECTED: 99,
    ErrorKind.CANCELLED: 130,
}

_AREA_PREFIX: dict[int, str] = {
    1: "PLT",
    2: "FS",
    3: "NET",
    4: "INS",
    6: "LCK",
    7: "ARG",
    9: "INT",
    13: "SIG",
}


def exit_code_for(kind: ErrorKind) -> int:
    """Process exit code for a failure kind."""
    return EXIT_CODES.get(kind, EXIT_CODES[ErrorKind.UNEXPECTED])


def code_string_for(kind: ErrorKind) -> str:
    """Human-facing identifier like ``NK-NET-033``."""
    code = exit_code_for(kind)
    area = _AREA_PREFIX.get(code // 10, "INT")
    return f"NK-{area}-{code:03d}"


class NodekeepError(Exception):
    """A typed, expected failure.

    Attributes:
        kind: The failure category.
        message: Human-readable detail.
        hint: Optional suggestion for the user.
    """

    def __init__(self, kind: ErrorKind, message: str, hint: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.hint = hint

    @property
    def exit_code(self) -> int:
        return exit_code_for(self.kind)

    def __str__(self) -> str:
        return f"[{code_string_for(self.kind)}] {self.message}"


class LockTimeout(NodekeepError):
    """Raised when a named lock could not be acquired in time."""

    def __init__(self, name: str, timeout: float):
        super().__init__(
            ErrorKind.LOCK_TIMEOUT,
            f"Could not acquire lock '{name}' within {timeout:g}s",
            hint="Another nodekeep process is probably running. "
            "Wait for it to finish or run 'nodekeep locks cleanup'.",
        )
        self.name = name
        self.timeout = timeout
