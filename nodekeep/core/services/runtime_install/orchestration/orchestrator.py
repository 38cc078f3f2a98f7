"""
L5 Orchestration — Runtime install pipeline.

``InstallOrchestrator.install`` runs a fixed, linear list of stages:

    resolve → alias → already-installed → availability → preflight
    → checksum → download → extract → relocate → verify → register

A stage either returns normally or raises ``NodekeepError``.  The first
failure stops the pipeline; ``_cleanup`` is the single place that
decides what to undo, based on what the run recorded as created.
The public methods return ``InstallOutcome`` and never raise.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nodekeep.core.cancellation import CancelToken, is_cancelled
from nodekeep.core.config.settings import NodekeepConfig
from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.models.installation import Installation
from nodekeep.core.models.outcome import InstallOutcome
from nodekeep.core.models.release import RemoteRelease
from nodekeep.core.persistence.registry import InstallationRegistry
from nodekeep.core.services.runtime_install.data.constants import EXTRACT_DIR_PREFIX
from nodekeep.core.services.runtime_install.detection.host import (
    can_write,
    check_url_reachable,
    free_disk_bytes,
)
from nodekeep.core.services.runtime_install.domain.aliases import validate_alias
from nodekeep.core.services.runtime_install.domain.download_helpers import fmt_size
from nodekeep.core.services.runtime_install.domain.platform import HostOs, HostPlatform
from nodekeep.core.services.runtime_install.execution.archive import ArchiveExtractor
from nodekeep.core.services.runtime_install.execution.download import (
    Downloader,
    ProgressSink,
    verify_checksum,
)
from nodekeep.core.services.runtime_install.resolver.artifacts import (
    ArtifactLocator,
    ArtifactTarget,
)
from nodekeep.core.services.runtime_install.resolver.catalog import RemoteCatalog
from nodekeep.core.services.runtime_install.resolver.version_resolver import VersionResolver

logger = logging.getLogger(__name__)

_CORRUPT_ARTIFACT_KINDS = frozenset({
    ErrorKind.CORRUPTED_ARCHIVE,
    ErrorKind.PATH_TRAVERSAL_DETECTED,
})


@dataclass
class _InstallRun:
    """Mutable state of one ``install`` call."""

    expression: str
    requested_alias: str | None
    force: bool
    progress: ProgressSink | None
    cancel: CancelToken | None

    version: str | None = None
    alias: str | None = None
    release: RemoteRelease | None = None
    target: ArtifactTarget | None = None
    checksum: str | None = None
    artifact: Path | None = None
    temp_dir: Path | None = None
    final_dir: Path | None = None

    # what cleanup must undo
    final_dir_touched: bool = False
    replaced_existing: bool = False
    artifact_corrupt: bool = False


class InstallOrchestrator:
    """Installs runtimes into ``<home>/versions/<alias>``."""

    def __init__(
        self,
        config: NodekeepConfig,
        *,
        resolver: VersionResolver,
        catalog: RemoteCatalog,
        locator: ArtifactLocator,
        downloader: Downloader,
        extractor: ArchiveExtractor,
        registry: InstallationRegistry,
        host: HostPlatform,
        reachability: Callable[..., dict[str, Any]] = check_url_reachable,
        disk_free: Callable[[Path], int | None] = free_disk_bytes,
        writable: Callable[[Path], bool] = can_write,
    ):
        self.config = config
        self.resolver = resolver
        self.catalog = catalog
        self.locator = locator
        self.downloader = downloader
        self.extractor = extractor
        self.registry = registry
        self.host = host
        self._reachability = reachability
        self._disk_free = disk_free
        self._writable = writable

    # ── public API ──────────────────────────────────────────────

    def install(
        self,
        version_expression: str,
        alias: str | None = None,
        force_reinstall: bool = False,
        progress: ProgressSink | None = None,
        cancel: CancelToken | None = None,
    ) -> InstallOutcome:
        """Install the runtime that ``version_expression`` resolves to.

        Args:
            version_expression: ``"20.11.0"``, ``"20"``, ``"lts"``, ``"iron"`` …
            alias: Name of the installation; defaults to the version.
            force_reinstall: Replace an existing installation of ``alias``.
            progress: Download progress sink.
            cancel: Cooperative cancellation token.

        Returns:
            ``InstallOutcome``; ``ok`` only when the runtime is on disk,
            verified and registered.
        """
        start = time.monotonic()
        run = _InstallRun(
            expression=version_expression,
            requested_alias=alias,
            force=force_reinstall,
            progress=progress,
            cancel=cancel,
        )

        outcome: InstallOutcome | None = None
        try:
            for stage in self._stages():
                if is_cancelled(cancel):
                    raise NodekeepError(ErrorKind.CANCELLED, "Installation cancelled")
                stage(run)
            outcome = InstallOutcome.success(
                version=run.version, alias=run.alias, path=run.final_dir,
            )
            logger.info("Installed %s as '%s' in %s", run.version, run.alias, run.final_dir)
        except NodekeepError as e:
            logger.warning("Install of %r failed: %s", version_expression, e)
            outcome = InstallOutcome.from_error(e, version=run.version, alias=run.alias)
        except Exception as e:
            logger.exception("Unexpected error installing %r", version_expression)
            outcome = InstallOutcome.failure(
                ErrorKind.UNEXPECTED,
                f"Unexpected error: {e}",
                version=run.version,
                alias=run.alias,
            )
        finally:
            self._cleanup(run, succeeded=outcome is not None and outcome.ok)

        outcome.duration_ms = int((time.monotonic() - start) * 1000)
        return outcome

    def rollback_installation(self, alias: str) -> bool:
        """Remove the directory and registry entry of ``alias``.

        Returns:
            True if anything was removed.
        """
        removed = False
        path = self.installation_path(alias)
        if path.exists():
            shutil.rmtree(path, ignore_errors=True)
            removed = not path.exists()
            if not removed:
                logger.warning("Could not fully remove %s", path)
        if self.registry.remove(alias):
            removed = True
        logger.info("Rolled back installation '%s'", alias)
        return removed

    def is_installed(self, alias: str) -> bool:
        return (
            self.registry.get_by_alias(alias) is not None
            or self.installation_path(alias).exists()
        )

    def installation_path(self, alias: str) -> Path:
        return self.config.versions_dir / alias

    def verify_installation(self, alias: str) -> bool:
        """Whether ``alias`` has a non-empty, executable runtime binary."""
        return self._verify_dir(self.installation_path(alias))

    # ── stages ──────────────────────────────────────────────────

    def _stages(self) -> list[Callable[[_InstallRun], None]]:
        return [
            self._resolve,
            self._choose_alias,
            self._check_not_installed,
            self._check_availability,
            self._preflight,
            self._fetch_checksum,
            self._download,
            self._extract,
            self._relocate,
            self._verify,
            self._register,
        ]

    def _resolve(self, run: _InstallRun) -> None:
        try:
            run.version = self.resolver.resolve(run.expression, run.cancel)
        except NodekeepError as e:
            if e.kind is ErrorKind.CANCELLED:
                raise
            raise NodekeepError(
                ErrorKind.ARTIFACT_NOT_AVAILABLE,
                f"Cannot resolve version '{run.expression}': {e.message}",
                hint=e.hint,
            ) from e
        logger.info("Resolved %r → %s", run.expression, run.version)

    def _choose_alias(self, run: _InstallRun) -> None:
        assert run.version is not None
        if run.requested_alias is not None:
            run.alias = validate_alias(run.requested_alias)
        else:
            run.alias = run.version
        run.final_dir = self.installation_path(run.alias)

    def _check_not_installed(self, run: _InstallRun) -> None:
        assert run.alias is not None
        if run.force or not self.is_installed(run.alias):
            return
        raise NodekeepError(
            ErrorKind.ALREADY_INSTALLED,
            f"'{run.alias}' is already installed",
            hint="Use --force to reinstall, or choose another alias with --alias.",
        )

    def _check_availability(self, run: _InstallRun) -> None:
        assert run.version is not None
        release = self.catalog.find(run.version)
        if release is None:
            raise NodekeepError(
                ErrorKind.ARTIFACT_NOT_AVAILABLE,
                f"Version {run.version} is not published",
            )
        if not self.locator.is_available(release):
            raise NodekeepError(
                ErrorKind.ARTIFACT_NOT_AVAILABLE,
                f"Version {run.version} has no build for {self.host}",
            )
        run.release = release
        run.target = self.locator.locate(run.version)

    def _preflight(self, run: _InstallRun) -> None:
        settings = self.config.settings
        if not self.host.supported:
            raise NodekeepError(
                ErrorKind.UNSUPPORTED_PLATFORM,
                f"Platform {self.host} is not supported",
            )

        if not self._writable(self.config.home):
            raise NodekeepError(
                ErrorKind.INSUFFICIENT_PERMISSIONS,
                f"Cannot write to {self.config.home}",
                hint="Set NODEKEEP_HOME to a writable directory.",
            )

        needed = settings.estimated_artifact_bytes * settings.disk_space_multiplier
        free = self._disk_free(self.config.home)
        if free is not None and free < needed:
            raise NodekeepError(
                ErrorKind.INSUFFICIENT_DISK_SPACE,
                f"Not enough disk space. Need {fmt_size(needed)}, have {fmt_size(free)}",
            )

        check = self._reachability(settings.catalog_url, timeout=settings.preflight_timeout)
        if not check.get("reachable"):
            raise NodekeepError(
                ErrorKind.REMOTE_API_FAILED,
                f"Cannot reach {settings.catalog_url}: {check.get('error', 'unknown error')}",
            )

        self.config.ensure_directories()

    def _fetch_checksum(self, run: _InstallRun) -> None:
        assert run.target is not None
        run.checksum = self.downloader.fetch_checksum_manifest(
            run.target.manifest_url, run.target.file_name,
        )
        if run.checksum is None:
            raise NodekeepError(
                ErrorKind.DOWNLOAD_FAILED,
                f"No published checksum for {run.target.file_name}",
            )

    def _download(self, run: _InstallRun) -> None:
        assert run.target is not None and run.checksum is not None
        artifact = self.config.cache_dir / run.target.file_name
        run.artifact = artifact

        if artifact.is_file():
            if verify_checksum(artifact, run.checksum):
                logger.info("Using cached %s", artifact.name)
                return
            logger.info("Cached %s failed verification, downloading again", artifact.name)
            artifact.unlink(missing_ok=True)

        result = self.downloader.download_file(
            run.target.url,
            artifact,
            expected_checksum=run.checksum,
            progress=run.progress,
            timeout=self.config.settings.download_timeout,
            cancel=run.cancel,
        )
        if not result.ok:
            assert result.error_kind is not None
            raise NodekeepError(result.error_kind, result.error or "Download failed", result.hint)

    def _extract(self, run: _InstallRun) -> None:
        assert run.artifact is not None
        run.temp_dir = self.config.cache_dir / f"{EXTRACT_DIR_PREFIX}{uuid.uuid4().hex}"
        result = self.extractor.extract(
            run.artifact, run.temp_dir, preserve_permissions=True, cancel=run.cancel,
        )
        if not result.ok:
            assert result.error_kind is not None
            if result.error_kind in _CORRUPT_ARTIFACT_KINDS:
                run.artifact_corrupt = True
            raise NodekeepError(result.error_kind, result.error or "Extraction failed", result.hint)

    def _relocate(self, run: _InstallRun) -> None:
        assert run.temp_dir is not None and run.final_dir is not None
        entries = list(run.temp_dir.iterdir())
        if len(entries) != 1 or not entries[0].is_dir():
            run.artifact_corrupt = True
            raise NodekeepError(
                ErrorKind.CORRUPTED_ARCHIVE,
                f"Expected one top-level directory in the archive, found {len(entries)} entries",
            )
        source = entries[0]

        if run.force and self.is_installed(run.alias or ""):
            run.replaced_existing = True

        try:
            if run.final_dir.exists():
                logger.info("Replacing existing installation at %s", run.final_dir)
                run.final_dir_touched = True
                shutil.rmtree(run.final_dir)
            run.final_dir.parent.mkdir(parents=True, exist_ok=True)
            run.final_dir_touched = True
            shutil.move(str(source), str(run.final_dir))
        except OSError as e:
            raise NodekeepError(
                ErrorKind.INSTALLATION_FAILED,
                f"Cannot move runtime into {run.final_dir}: {e}",
            ) from e

    def _verify(self, run: _InstallRun) -> None:
        assert run.final_dir is not None
        if not self._verify_dir(run.final_dir):
            raise NodekeepError(
                ErrorKind.INSTALLATION_FAILED,
                f"Runtime binary missing or not executable in {run.final_dir}",
            )

    def _register(self, run: _InstallRun) -> None:
        if not (run.alias and run.version and run.final_dir):
            raise NodekeepError(
                ErrorKind.INSTALLATION_FAILED,
                "Refusing to register an installation with no alias, version or path",
            )
        self.registry.add(Installation(
            alias=run.alias, version=run.version, path=run.final_dir, active=False,
        ))

    # ── cleanup ─────────────────────────────────────────────────

    def _cleanup(self, run: _InstallRun, *, succeeded: bool) -> None:
        """Undo what ``run`` created.  Never raises."""
        if run.temp_dir is not None and run.temp_dir.exists():
            shutil.rmtree(run.temp_dir, ignore_errors=True)
            logger.debug("Removed temporary directory %s", run.temp_dir)

        if succeeded:
            return

        if run.final_dir_touched and run.final_dir is not None and run.final_dir.exists():
            shutil.rmtree(run.final_dir, ignore_errors=True)
            logger.info("Rolled back partial installation at %s", run.final_dir)

        if run.replaced_existing and run.alias is not None:
            try:
                self.registry.remove(run.alias)
            except OSError as e:
                logger.warning("Could not deregister '%s' during rollback: %s", run.alias, e)

        if run.artifact_corrupt and run.artifact is not None:
            try:
                run.artifact.unlink(missing_ok=True)
                logger.info("Evicted corrupt artifact %s from cache", run.artifact.name)
            except OSError as e:
                logger.warning("Could not evict %s: %s", run.artifact, e)

    def _verify_dir(self, root: Path) -> bool:
        binary = root / self.host.executable_relpath
        try:
            if not binary.is_file() or binary.stat().st_size == 0:
                return False
        except OSError:
            return False
        return self.host.os is HostOs.WINDOWS or os.access(binary, os.X_OK)
