"""
Domain models — Pydantic types for nodekeep.

All models are re-exported here for convenient access:

    from nodekeep.core.models import Installation, RemoteRelease, InstallOutcome
"""

from nodekeep.core.models.cache import CacheEntry
from nodekeep.core.models.installation import Installation
from nodekeep.core.models.outcome import (
    CacheOutcome,
    DownloadOutcome,
    DownloadProgress,
    ExtractionOutcome,
    InstallOutcome,
    Outcome,
    RemoteListOutcome,
    ResolveOutcome,
    RuntimeOutcome,
)
from nodekeep.core.models.release import RemoteRelease

__all__ = [
    "CacheEntry",
    "CacheOutcome",
    "DownloadOutcome",
    "DownloadProgress",
    "ExtractionOutcome",
    "InstallOutcome",
    "Installation",
    "Outcome",
    "RemoteListOutcome",
    "RemoteRelease",
    "ResolveOutcome",
    "RuntimeOutcome",
]
