"""
L2 Resolver — Version expression → concrete version.
"""

from __future__ import annotations

import logging

from nodekeep.core.cancellation import CancelToken
from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.persistence.registry import InstallationRegistry
from nodekeep.core.services.runtime_install.data.constants import ACCEPTED_VERSION_FORMS
from nodekeep.core.services.runtime_install.domain import versions
from nodekeep.core.services.runtime_install.resolver.catalog import RemoteCatalog
from nodekeep.core.services.runtime_install.resolver.strategies import (
    STRATEGIES,
    ResolutionContext,
    Strategy,
)

logger = logging.getLogger(__name__)


class VersionResolver:
    """Turns ``"20"``, ``"lts/iron"``, ``"latest"`` … into ``"20.11.0"``."""

    def __init__(
        self,
        catalog: RemoteCatalog,
        registry: InstallationRegistry | None = None,
        *,
        timeout: float | None = None,
        strategies: tuple[Strategy, ...] = STRATEGIES,
    ):
        self.catalog = catalog
        self.registry = registry
        self.timeout = timeout
        self.strategies = strategies

    def resolve(self, text: str, cancel: CancelToken | None = None) -> str:
        """Resolve a version expression.

        Raises:
            NodekeepError: INVALID_VERSION_FORMAT when no strategy accepts
                the input, ARTIFACT_SERIES_NOT_FOUND when the series or
                codename does not exist, REMOTE_API_FAILED when the catalog
                is unreachable, CANCELLED on cancellation.
        """
        normalized = versions.normalize_version_input(text or "")
        if not normalized:
            raise self._invalid(text)

        ctx = ResolutionContext(self.catalog, self.registry, cancel, self.timeout)
        for strategy in self.strategies:
            if strategy.can_handle(normalized, ctx):
                version = strategy.resolve(normalized, ctx)
                logger.debug("Resolved %r via %s strategy → %s", text, strategy.name, version)
                return version
        raise self._invalid(text)

    @staticmethod
    def is_exact_version(text: str) -> bool:
        return versions.is_exact_version(text)

    @staticmethod
    def _invalid(text: str | None) -> NodekeepError:
        return NodekeepError(
            ErrorKind.INVALID_VERSION_FORMAT,
            f"Invalid version format: {text!r}",
            hint="Accepted formats: " + ", ".join(ACCEPTED_VERSION_FORMS),
        )
