"""
Cache use cases — inspect and prune downloaded artifacts.

Clearing and cleaning hold the ``"state"`` lock so they never delete
an artifact an install in another process is about to extract.
"""

from __future__ import annotations

from nodekeep.core.errors import NodekeepError
from nodekeep.core.models.cache import CacheEntry
from nodekeep.core.models.outcome import CacheOutcome
from nodekeep.core.services.runtime_install.data.constants import (
    DEFAULT_CACHE_MAX_AGE_DAYS,
    STATE_LOCK,
)
from nodekeep.core.use_cases.runtimes import Services


def list_cache(services: Services) -> list[CacheEntry]:
    return services.cache.entries()


def clear_cache(services: Services) -> CacheOutcome:
    """Delete every cached artifact."""
    try:
        with services.locks.acquire(STATE_LOCK, services.config.settings.lock_timeout):
            removed = services.cache.clear()
    except NodekeepError as e:
        return CacheOutcome.from_error(e)
    return _outcome(removed)


def clean_cache(
    services: Services,
    older_than_days: float = DEFAULT_CACHE_MAX_AGE_DAYS,
) -> CacheOutcome:
    """Delete artifacts not modified for ``older_than_days`` days."""
    try:
        with services.locks.acquire(STATE_LOCK, services.config.settings.lock_timeout):
            removed = services.cache.clean(older_than_days)
    except NodekeepError as e:
        return CacheOutcome.from_error(e)
    return _outcome(removed)


def _outcome(removed: list[CacheEntry]) -> CacheOutcome:
    return CacheOutcome.success(
        removed=[e.file_name for e in removed],
        freed_bytes=sum(e.size_bytes for e in removed),
    )
