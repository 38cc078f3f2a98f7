"""
Installation model — one alias-named runtime copy on disk.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class Installation(BaseModel):
    """A registered runtime installation.

    Aliases are unique case-insensitively.  At most one installation
    in a registry is ``active``.
    """

    alias: str
    version: str
    path: Path
    active: bool = False

    def matches_alias(self, alias: str) -> bool:
        return self.alias.casefold() == alias.casefold()
