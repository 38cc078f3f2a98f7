"""
L2 Resolver — Remote release catalog.

Fetches the upstream ``index.json`` and caches it twice: in memory for
the life of the process, and on disk (``versions-index.json``) across
processes.  Both caches expire after ``catalog_ttl_minutes``.

Releases are always returned newest-first by semantic version, whatever
order the upstream document uses.
"""

from __future__ import annotations

import http.client
import json
import logging
import os
import tempfile
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from pathlib import Path
from typing import Any

from nodekeep.core.config.settings import NodekeepConfig
from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.models.release import RemoteRelease
from nodekeep.core.services.runtime_install.data.constants import USER_AGENT
from nodekeep.core.services.runtime_install.domain.versions import (
    EXACT_VERSION_RE,
    normalize_version_input,
    version_sort_key,
)

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0


class RemoteCatalog:
    """Read access to the published release list."""

    def __init__(
        self,
        config: NodekeepConfig,
        *,
        opener: Callable[..., Any] = urllib.request.urlopen,
        clock: Callable[[], float] = time.time,
    ):
        self.url = config.settings.catalog_url
        self.cache_file = config.catalog_file
        self.ttl_seconds = config.settings.catalog_ttl_minutes * 60
        self._opener = opener
        self._clock = clock
        self._memory: list[RemoteRelease] | None = None
        self._memory_at = 0.0

    def releases(
        self,
        *,
        force_refresh: bool = False,
        timeout: float | None = None,
    ) -> list[RemoteRelease]:
        """All published releases, newest first.

        Raises:
            NodekeepError: REMOTE_API_FAILED when the catalog cannot be
                fetched or parsed.
        """
        now = self._clock()
        if not force_refresh:
            if self._memory is not None and now - self._memory_at < self.ttl_seconds:
                return self._memory
            cached = self._read_disk_cache(now)
            if cached is not None:
                self._remember(cached, now)
                return cached

        entries = self._fetch(timeout or DEFAULT_FETCH_TIMEOUT)
        releases = self._parse(entries)
        self._remember(releases, now)
        self._write_disk_cache(entries, now)
        logger.info("Fetched %d releases from %s", len(releases), self.url)
        return releases

    def find(self, version: str, **kwargs: Any) -> RemoteRelease | None:
        """The descriptor for an exact version, if published."""
        wanted = normalize_version_input(version)
        for release in self.releases(**kwargs):
            if release.version == wanted:
                return release
        return None

    def clear_cache(self) -> None:
        self._memory = None
        self._memory_at = 0.0
        self.cache_file.unlink(missing_ok=True)

    # ── internals ──

    def _remember(self, releases: list[RemoteRelease], at: float) -> None:
        self._memory = releases
        self._memory_at = at

    def _fetch(self, timeout: float) -> list[dict[str, Any]]:
        req = urllib.request.Request(
            self.url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        try:
            with self._opener(req, timeout=timeout) as resp:
                data = json.loads(resp.read())
        except urllib.error.HTTPError as e:
            raise NodekeepError(
                ErrorKind.REMOTE_API_FAILED,
                f"Release catalog returned HTTP {e.code}: {self.url}",
            ) from e
        except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as e:
            raise NodekeepError(
                ErrorKind.REMOTE_API_FAILED,
                f"Cannot reach release catalog {self.url}: {e}",
                hint="Check your network connection or proxy settings.",
            ) from e
        except ValueError as e:
            raise NodekeepError(
                ErrorKind.REMOTE_API_FAILED,
                f"Release catalog is not valid JSON: {e}",
            ) from e

        if not isinstance(data, list):
            raise NodekeepError(
                ErrorKind.REMOTE_API_FAILED,
                f"Unexpected catalog format: expected a list, got {type(data).__name__}",
            )
        return data

    @staticmethod
    def _parse(entries: list[dict[str, Any]]) -> list[RemoteRelease]:
        releases: list[RemoteRelease] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            release = RemoteRelease.from_index_entry(entry)
            if EXACT_VERSION_RE.match(release.version):
                releases.append(release)
            else:
                logger.debug("Skipping catalog entry with version %r", entry.get("version"))
        releases.sort(key=lambda r: version_sort_key(r.version), reverse=True)
        return releases

    def _read_disk_cache(self, now: float) -> list[RemoteRelease] | None:
        if not self.cache_file.is_file():
            return None
        try:
            doc = json.loads(self.cache_file.read_text(encoding="utf-8"))
            fetched_at = float(doc["fetched_at"])
            entries = doc["releases"]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable catalog cache %s: %s", self.cache_file, e)
            return None

        if now - fetched_at >= self.ttl_seconds:
            logger.debug("Catalog cache %s is stale", self.cache_file)
            return None
        return self._parse(entries)

    def _write_disk_cache(self, entries: list[dict[str, Any]], now: float) -> None:
        content = json.dumps({"fetched_at": now, "url": self.url, "releases": entries})
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.cache_file.parent, prefix=".index_", suffix=".tmp",
            )
            tmp = Path(tmp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                os.replace(tmp, self.cache_file)
            except OSError:
                tmp.unlink(missing_ok=True)
                raise
        except OSError as e:
            # The cache is an optimisation; a read-only home still works.
            logger.warning("Could not write catalog cache %s: %s", self.cache_file, e)
