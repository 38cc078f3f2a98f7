"""
L1 Domain — Project version files (pure).

Turns the content of ``.nvmrc``, ``.node-version`` and the ``engines.node``
field of ``package.json`` into an expression the version resolver
accepts.  No I/O.
"""

from __future__ import annotations

import re

from nodekeep.core.services.runtime_install.data.constants import VERSION_FILE_KEYWORDS
from nodekeep.core.services.runtime_install.domain.versions import normalize_version_input

# ``^20.11.0``, ``~20.11``, ``>=18``, ``20.x`` …: a leading comparator and
# a version whose missing or wildcard parts collapse to the major.
_RANGE_RE = re.compile(
    r"^(?:\^|~|>=|=)?\s*v?(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+|[xX*]))?"
    r"(?:\.(?P<patch>\d+|[xX*]))?$"
)


def parse_version_file(text: str) -> str | None:
    """Expression named by an ``.nvmrc`` / ``.node-version`` body.

    The first non-blank line that is not a ``#`` comment wins.

    >>> parse_version_file("v20.11.0\\n")
    '20.11.0'
    >>> parse_version_file("lts/*")
    'lts'
    """
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        keyword = VERSION_FILE_KEYWORDS.get(line.lower())
        if keyword is not None:
            return keyword
        return normalize_version_input(line) or None
    return None


def engines_to_expression(spec: str) -> str | None:
    """Expression for a ``package.json`` ``engines.node`` value.

    Only single-comparator specs are understood.  A pin stays exact
    (``20.11.0``, ``=20.11.0``); anything looser means "newest of that
    major" (``^20.11.0``, ``>=18``, ``20.x``).  Compound ranges
    (``>=18 <21``, ``18 || 20``) return None.
    """
    spec = spec.strip()
    m = _RANGE_RE.match(spec)
    if m is None:
        return parse_version_file(spec) if re.fullmatch(r"[A-Za-z/*]+", spec) else None

    major, minor, patch = m.group("major"), m.group("minor"), m.group("patch")
    exact = minor is not None and minor.isdigit() and patch is not None and patch.isdigit()
    if exact and spec[0] not in "^~>":
        return f"{major}.{minor}.{patch}"
    return major
