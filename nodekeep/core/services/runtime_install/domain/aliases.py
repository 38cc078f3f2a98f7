"""
L1 Domain — Alias validation (pure).
"""

from __future__ import annotations

import re

from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.services.runtime_install.data.constants import RESERVED_ALIASES
from nodekeep.core.services.runtime_install.domain.versions import EXACT_VERSION_RE

ALIAS_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_alias(alias: str) -> str:
    """Return ``alias`` stripped, or raise INVALID_ALIAS.

    Exact version strings such as ``20.11.0`` are accepted even though
    they contain dots, since they are the default alias of an install.
    """
    alias = alias.strip()
    if not alias:
        raise NodekeepError(ErrorKind.INVALID_ALIAS, "Alias must not be empty")

    if not (ALIAS_RE.match(alias) or EXACT_VERSION_RE.match(alias)):
        raise NodekeepError(
            ErrorKind.INVALID_ALIAS,
            f"Invalid alias '{alias}'",
            hint="Use letters, digits, '-' and '_' only.",
        )
    if alias.casefold() in RESERVED_ALIASES:
        raise NodekeepError(
            ErrorKind.INVALID_ALIAS,
            f"Alias '{alias}' is reserved",
            hint=f"Reserved names: {', '.join(sorted(RESERVED_ALIASES))}",
        )
    return alias
