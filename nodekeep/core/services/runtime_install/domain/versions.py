"""
L1 Domain — Version expression parsing (pure).

No I/O.  Used by the resolver strategies and the catalog sort.
"""

from __future__ import annotations

import re

EXACT_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")
MAJOR_ONLY_RE = re.compile(r"^\d+$")
CODENAME_RE = re.compile(r"^[A-Za-z]+$")

LTS_KEYWORD = "lts"
LATEST_KEYWORDS = frozenset({"latest", "current"})


def normalize_version_input(text: str) -> str:
    """Trim whitespace and drop a leading ``v``/``V`` before a digit.

    >>> normalize_version_input("  v20.11.0 ")
    '20.11.0'
    >>> normalize_version_input("vanilla")
    'vanilla'
    """
    text = text.strip()
    if len(text) > 1 and text[0] in "vV" and text[1].isdigit():
        return text[1:]
    return text


def is_exact_version(text: str) -> bool:
    """Whether ``text`` names one concrete ``MAJOR.MINOR.PATCH`` release."""
    return bool(EXACT_VERSION_RE.match(normalize_version_input(text)))


def parse_semver(version: str) -> tuple[int, int, int]:
    """``"20.11.0"`` → ``(20, 11, 0)``.

    Raises:
        ValueError: If ``version`` is not exact.
    """
    normalized = normalize_version_input(version)
    if not EXACT_VERSION_RE.match(normalized):
        raise ValueError(f"Not an exact version: {version!r}")
    major, minor, patch = normalized.split(".")
    return int(major), int(minor), int(patch)


def version_sort_key(version: str) -> tuple[int, int, int]:
    """Sort key for version strings; unparseable ones sort last."""
    try:
        return parse_semver(version)
    except ValueError:
        return (-1, -1, -1)


def version_tag(version: str) -> str:
    """``"20.11.0"`` → ``"v20.11.0"`` (the upstream directory name)."""
    return f"v{normalize_version_input(version)}"
