"""
Runtime use cases — lock-scoped entry points for the CLI.

Every mutating use case takes the ``"state"`` lock exactly once, for
the whole operation.  A lock timeout comes back as a failure outcome,
like any other error.
"""

from __future__ import annotations

import logging
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nodekeep.core.cancellation import CancelToken
from nodekeep.core.config.settings import NodekeepConfig
from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.models.installation import Installation
from nodekeep.core.models.outcome import (
    InstallOutcome,
    RemoteListOutcome,
    ResolveOutcome,
    RuntimeOutcome,
)
from nodekeep.core.persistence.registry import InstallationRegistry
from nodekeep.core.reliability.file_lock import LockManager
from nodekeep.core.reliability.retry import RetryPolicy
from nodekeep.core.services.runtime_install.data.constants import STATE_LOCK
from nodekeep.core.services.runtime_install.detection.host import detect_host
from nodekeep.core.services.runtime_install.detection.version_file import (
    VersionFileMatch,
    detect_version_file,
)
from nodekeep.core.services.runtime_install.domain.platform import HostPlatform
from nodekeep.core.services.runtime_install.execution.archive import ArchiveExtractor
from nodekeep.core.services.runtime_install.execution.cache import ArtifactCache
from nodekeep.core.services.runtime_install.execution.download import Downloader, ProgressSink
from nodekeep.core.services.runtime_install.execution.subprocess_runner import run_command
from nodekeep.core.services.runtime_install.orchestration.orchestrator import InstallOrchestrator
from nodekeep.core.services.runtime_install.resolver.artifacts import ArtifactLocator
from nodekeep.core.services.runtime_install.resolver.catalog import RemoteCatalog
from nodekeep.core.services.runtime_install.resolver.version_resolver import VersionResolver

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """The wired component graph for one configuration."""

    config: NodekeepConfig
    host: HostPlatform
    locks: LockManager
    registry: InstallationRegistry
    catalog: RemoteCatalog
    resolver: VersionResolver
    downloader: Downloader
    extractor: ArchiveExtractor
    cache: ArtifactCache
    orchestrator: InstallOrchestrator


def build_services(
    config: NodekeepConfig,
    *,
    host: HostPlatform | None = None,
    opener: Callable[..., Any] = urllib.request.urlopen,
    runner: Callable[..., dict[str, Any]] = run_command,
    sleep: Callable[[float], None] | None = None,
    **host_checks: Any,
) -> Services:
    """Construct every component from ``config``.

    ``opener``, ``runner``, ``sleep`` and the orchestrator host checks
    (``reachability``, ``disk_free``, ``writable``) exist for tests.
    """
    settings = config.settings
    host = host or detect_host()

    locks = LockManager(config.locks_dir)
    registry = InstallationRegistry(config.registry_file)
    catalog = RemoteCatalog(config, opener=opener)
    resolver = VersionResolver(catalog, registry, timeout=settings.preflight_timeout * 3)
    downloader = Downloader(
        RetryPolicy(
            max_attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay,
            sleep=sleep,
        ),
        opener=opener,
    )
    extractor = ArchiveExtractor(runner)
    orchestrator = InstallOrchestrator(
        config,
        resolver=resolver,
        catalog=catalog,
        locator=ArtifactLocator(config, host),
        downloader=downloader,
        extractor=extractor,
        registry=registry,
        host=host,
        **host_checks,
    )
    return Services(
        config=config,
        host=host,
        locks=locks,
        registry=registry,
        catalog=catalog,
        resolver=resolver,
        downloader=downloader,
        extractor=extractor,
        cache=ArtifactCache(config.cache_dir),
        orchestrator=orchestrator,
    )


def install_runtime(
    services: Services,
    version_expression: str,
    *,
    alias: str | None = None,
    force: bool = False,
    progress: ProgressSink | None = None,
    cancel: CancelToken | None = None,
) -> InstallOutcome:
    """Install a runtime while holding the state lock."""
    try:
        with services.locks.acquire(STATE_LOCK, services.config.settings.lock_timeout):
            return services.orchestrator.install(
                version_expression,
                alias=alias,
                force_reinstall=force,
                progress=progress,
                cancel=cancel,
            )
    except NodekeepError as e:
        return InstallOutcome.from_error(e)


def use_runtime(services: Services, alias: str) -> RuntimeOutcome:
    """Mark ``alias`` as the active installation."""
    try:
        with services.locks.acquire(STATE_LOCK, services.config.settings.lock_timeout):
            existing = services.registry.get_by_alias(alias)
            if existing is None:
                raise NodekeepError(
                    ErrorKind.INSTALLATION_NOT_FOUND,
                    f"No installation with alias '{alias}'",
                )
            if not services.orchestrator.verify_installation(existing.alias):
                raise NodekeepError(
                    ErrorKind.INSTALLATION_FAILED,
                    f"Installation '{alias}' is damaged: runtime binary missing",
                    hint=f"Run 'nodekeep install <version> --alias {alias} --force'.",
                )
            installation = services.registry.set_active(alias)
    except NodekeepError as e:
        return RuntimeOutcome.from_error(e)

    logger.info("Now using '%s' (%s)", installation.alias, installation.version)
    return RuntimeOutcome.success(installation=installation)


def remove_runtime(services: Services, alias: str) -> RuntimeOutcome:
    """Delete an installation and its registry entry."""
    try:
        with services.locks.acquire(STATE_LOCK, services.config.settings.lock_timeout):
            installation = services.registry.get_by_alias(alias)
            target = installation.alias if installation else alias
            if not services.orchestrator.rollback_installation(target):
                raise NodekeepError(
                    ErrorKind.INSTALLATION_NOT_FOUND,
                    f"No installation with alias '{alias}'",
                )
    except NodekeepError as e:
        return RuntimeOutcome.from_error(e)
    return RuntimeOutcome.success(installation=installation)


def resolve_version(
    services: Services,
    expression: str,
    cancel: CancelToken | None = None,
) -> ResolveOutcome:
    """Resolve an expression without installing anything."""
    try:
        version = services.resolver.resolve(expression, cancel)
    except NodekeepError as e:
        return ResolveOutcome.from_error(e, expression=expression)
    return ResolveOutcome.success(expression=expression, version=version)


def list_runtimes(services: Services) -> list[Installation]:
    return sorted(services.registry.all(), key=lambda i: i.alias.casefold())


def cleanup_locks(services: Services, max_age_hours: float = 24) -> list[str]:
    """Remove lock markers older than ``max_age_hours`` that nobody holds."""
    return services.locks.release_stale(max_age_hours * 3600)


def list_remote(
    services: Services,
    *,
    lts_only: bool = False,
    force_refresh: bool = False,
) -> RemoteListOutcome:
    """Published releases, newest first."""
    try:
        releases = services.catalog.releases(force_refresh=force_refresh)
    except NodekeepError as e:
        return RemoteListOutcome.from_error(e)
    if lts_only:
        releases = [r for r in releases if r.is_lts]
    return RemoteListOutcome.success(releases=releases)


def detect_project_version(directory: Path) -> VersionFileMatch:
    """The version file governing ``directory``.

    Raises:
        NodekeepError: VERSION_FILE_NOT_FOUND when there is none,
            INVALID_VERSION_FORMAT when it is malformed.
    """
    found = detect_version_file(directory)
    if found is None:
        raise NodekeepError(
            ErrorKind.VERSION_FILE_NOT_FOUND,
            f"No .nvmrc, .node-version or package.json engines.node in {directory}",
            hint="Pass a version explicitly, e.g. 'nodekeep install 20'.",
        )
    return found


def install_from_version_file(
    services: Services,
    directory: Path,
    **install_kwargs: Any,
) -> InstallOutcome:
    """Install whatever the project in ``directory`` asks for."""
    try:
        found = detect_project_version(directory)
    except NodekeepError as e:
        return InstallOutcome.from_error(e)
    logger.info("Installing %r from %s", found.expression, found.path.name)
    return install_runtime(services, found.expression, **install_kwargs)
