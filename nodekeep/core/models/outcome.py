"""
Outcome models — the result contract of the install pipeline.

Pipeline stages return outcomes instead of raising.  An outcome is
either a success carrying its payload, or a failure carrying an
``ErrorKind`` plus a human-readable detail.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from nodekeep.core.errors import ErrorKind, NodekeepError, exit_code_for
from nodekeep.core.models.installation import Installation
from nodekeep.core.models.release import RemoteRelease


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class DownloadProgress(BaseModel):
    """Progress snapshot handed to progress sinks."""

    bytes_downloaded: int
    total_bytes: int
    percent: float


class Outcome(BaseModel):
    """Common shape of every pipeline outcome."""

    status: Literal["ok", "failed"] = "ok"
    error_kind: ErrorKind | None = None
    error: str | None = None
    hint: str | None = None
    finished_at: str = Field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        """Whether the stage succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the stage failed."""
        return self.status == "failed"

    @property
    def exit_code(self) -> int:
        if self.ok or self.error_kind is None:
            return 0
        return exit_code_for(self.error_kind)

    @classmethod
    def success(cls, **kwargs: Any):
        """Create a success outcome."""
        return cls(status="ok", **kwargs)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        error: str,
        hint: str | None = None,
        **kwargs: Any,
    ):
        """Create a failure outcome."""
        return cls(status="failed", error_kind=kind, error=error, hint=hint, **kwargs)

    @classmethod
    def from_error(cls, exc: NodekeepError, **kwargs: Any):
        """Create a failure outcome from a raised ``NodekeepError``."""
        return cls.failure(exc.kind, exc.message, hint=exc.hint, **kwargs)


class DownloadOutcome(Outcome):
    """Result of ``Downloader.download_file``."""

    path: Path | None = None
    bytes_downloaded: int = 0
    checksum: str | None = None
    attempts: int = 0


class ExtractionOutcome(Outcome):
    """Result of ``ArchiveExtractor.extract``."""

    destination: Path | None = None
    entries: int = 0


class InstallOutcome(Outcome):
    """Result of ``InstallOrchestrator.install``."""

    version: str | None = None
    alias: str | None = None
    path: Path | None = None
    duration_ms: int = 0


class ResolveOutcome(Outcome):
    """Result of resolving a version expression."""

    expression: str = ""
    version: str | None = None


class RuntimeOutcome(Outcome):
    """Result of an operation on an existing installation (use, remove)."""

    installation: Installation | None = None


class CacheOutcome(Outcome):
    """Result of clearing or cleaning the artifact cache."""

    removed: list[str] = Field(default_factory=list)
    freed_bytes: int = 0


class RemoteListOutcome(Outcome):
    """Result of listing published releases."""

    releases: list[RemoteRelease] = Field(default_factory=list)
