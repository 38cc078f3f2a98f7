"""
L3 Detection — Project version file lookup.

Looks in one directory for ``.nvmrc``, then ``.node-version``, then the
``engines.node`` field of ``package.json``.  The first file that exists
decides, even if it names nothing usable; a ``package.json`` without
an ``engines.node`` field does not count.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import NamedTuple

from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.services.runtime_install.data.constants import VERSION_FILE_NAMES
from nodekeep.core.services.runtime_install.domain.version_files import (
    engines_to_expression,
    parse_version_file,
)

logger = logging.getLogger(__name__)


class VersionFileMatch(NamedTuple):
    path: Path
    expression: str


def detect_version_file(directory: Path) -> VersionFileMatch | None:
    """The version requested by the project in ``directory``.

    Returns:
        The file and expression, or None when no version file exists.

    Raises:
        NodekeepError: INVALID_VERSION_FORMAT when the first file found
            is unreadable, malformed or names no usable version.
    """
    for name in VERSION_FILE_NAMES:
        path = Path(directory) / name
        if not path.is_file():
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise NodekeepError(
                ErrorKind.INVALID_VERSION_FORMAT, f"Cannot read {path}: {e}",
            ) from e

        if name == "package.json":
            spec = _engines_node(path, text)
            if spec is None:
                logger.debug("%s has no engines.node field", path)
                continue
            expression = engines_to_expression(spec)
        else:
            expression = parse_version_file(text)
        if not expression:
            raise NodekeepError(
                ErrorKind.INVALID_VERSION_FORMAT,
                f"{path} does not name a usable Node.js version",
                hint="Use an exact version (20.11.0), a major (20), or lts.",
            )
        logger.info("Found version %r in %s", expression, path)
        return VersionFileMatch(path, expression)
    return None


def _engines_node(path: Path, text: str) -> str | None:
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise NodekeepError(
            ErrorKind.INVALID_VERSION_FORMAT, f"{path} is not valid JSON: {e}",
        ) from e
    engines = doc.get("engines") if isinstance(doc, dict) else None
    spec = engines.get("node") if isinstance(engines, dict) else None
    return spec if isinstance(spec, str) else None
