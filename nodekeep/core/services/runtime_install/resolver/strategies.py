"""
L2 Resolver — Version resolution strategies.

Each strategy is a ``(name, can_handle, resolve)`` tuple.  The resolver
walks ``STRATEGIES`` in order and runs ``resolve`` for the first
strategy whose ``can_handle`` accepts the (normalised) input.

Strategies that need the catalog go through ``ResolutionContext``,
which fetches it at most once per resolution.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import NamedTuple

from nodekeep.core.cancellation import CancelToken
from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.models.release import RemoteRelease
from nodekeep.core.persistence.registry import InstallationRegistry
from nodekeep.core.services.runtime_install.domain.versions import (
    CODENAME_RE,
    EXACT_VERSION_RE,
    LATEST_KEYWORDS,
    LTS_KEYWORD,
    MAJOR_ONLY_RE,
)
from nodekeep.core.services.runtime_install.resolver.catalog import RemoteCatalog

logger = logging.getLogger(__name__)


class ResolutionContext:
    """Per-resolution access to the catalog and the local registry."""

    def __init__(
        self,
        catalog: RemoteCatalog,
        registry: InstallationRegistry | None = None,
        cancel: CancelToken | None = None,
        timeout: float | None = None,
    ):
        self.catalog = catalog
        self.registry = registry
        self.cancel = cancel
        self.timeout = timeout
        self._releases: list[RemoteRelease] | None = None

    def releases(self) -> list[RemoteRelease]:
        if self._releases is None:
            if self.cancel is not None:
                self.cancel.raise_if_cancelled("Version resolution")
            self._releases = self.catalog.releases(timeout=self.timeout)
        return self._releases


class Strategy(NamedTuple):
    name: str
    can_handle: Callable[[str, ResolutionContext], bool]
    resolve: Callable[[str, ResolutionContext], str]


def _not_found(message: str) -> NodekeepError:
    return NodekeepError(
        ErrorKind.ARTIFACT_SERIES_NOT_FOUND,
        message,
        hint="Run 'nodekeep resolve latest' to check the catalog is reachable.",
    )


# ── 1. exact ──


def _exact_can_handle(text: str, ctx: ResolutionContext) -> bool:
    return bool(EXACT_VERSION_RE.match(text))


def _exact_resolve(text: str, ctx: ResolutionContext) -> str:
    return text


# ── 2. installed alias ──


def _alias_can_handle(text: str, ctx: ResolutionContext) -> bool:
    return ctx.registry is not None and ctx.registry.get_by_alias(text) is not None


def _alias_resolve(text: str, ctx: ResolutionContext) -> str:
    assert ctx.registry is not None
    installation = ctx.registry.get_by_alias(text)
    if installation is None:
        raise NodekeepError(ErrorKind.INSTALLATION_NOT_FOUND, f"Alias '{text}' vanished")
    return installation.version


# ── 3. major only ──


def _major_can_handle(text: str, ctx: ResolutionContext) -> bool:
    return bool(MAJOR_ONLY_RE.match(text))


def _major_resolve(text: str, ctx: ResolutionContext) -> str:
    major = int(text)
    for release in ctx.releases():
        if release.major == major:
            return release.version
    raise _not_found(f"No releases found for major version {major}")


# ── 4. lts and lts/<codename> ──


def _lts_can_handle(text: str, ctx: ResolutionContext) -> bool:
    lowered = text.casefold()
    return lowered == LTS_KEYWORD or lowered.startswith(LTS_KEYWORD + "/")


def _lts_resolve(text: str, ctx: ResolutionContext) -> str:
    _, _, codename = text.partition("/")
    if "/" in text and not codename.strip():
        raise NodekeepError(
            ErrorKind.INVALID_VERSION_FORMAT,
            f"Missing LTS codename in '{text}'",
            hint="Use 'lts' or 'lts/<codename>', e.g. 'lts/iron'.",
        )
    if not codename:
        for release in ctx.releases():
            if release.is_lts:
                return release.version
        raise _not_found("No LTS releases found")
    return _newest_with_codename(codename.strip(), ctx)


# ── 5. latest / current ──


def _keyword_can_handle(text: str, ctx: ResolutionContext) -> bool:
    return text.casefold() in LATEST_KEYWORDS


def _keyword_resolve(text: str, ctx: ResolutionContext) -> str:
    releases = ctx.releases()
    if not releases:
        raise _not_found("The release catalog is empty")
    return releases[0].version


# ── 6. bare codename ──


def _codename_can_handle(text: str, ctx: ResolutionContext) -> bool:
    return bool(CODENAME_RE.match(text))


def _codename_resolve(text: str, ctx: ResolutionContext) -> str:
    return _newest_with_codename(text, ctx)


def _newest_with_codename(codename: str, ctx: ResolutionContext) -> str:
    wanted = codename.casefold()
    for release in ctx.releases():
        if release.lts_codename and release.lts_codename.casefold() == wanted:
            return release.version
    raise _not_found(f"Unknown LTS codename '{codename}'")


STRATEGIES: tuple[Strategy, ...] = (
    Strategy("exact", _exact_can_handle, _exact_resolve),
    Strategy("alias", _alias_can_handle, _alias_resolve),
    Strategy("major", _major_can_handle, _major_resolve),
    Strategy("lts", _lts_can_handle, _lts_resolve),
    Strategy("keyword", _keyword_can_handle, _keyword_resolve),
    Strategy("codename", _codename_can_handle, _codename_resolve),
)
