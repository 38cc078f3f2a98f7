"""
Remote release descriptor — one entry of the upstream ``index.json``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RemoteRelease(BaseModel):
    """An immutable published release.

    ``lts_codename`` is None for non-LTS releases.  ``platforms`` holds
    the raw platform tags from the catalog (``linux-x64``,
    ``osx-arm64-tar``, ``win-x64-zip`` …).
    """

    model_config = ConfigDict(frozen=True)

    version: str
    lts_codename: str | None = None
    release_date: str = ""
    platforms: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def is_lts(self) -> bool:
        return self.lts_codename is not None

    @property
    def major(self) -> int:
        return int(self.version.split(".", 1)[0])

    @classmethod
    def from_index_entry(cls, entry: dict[str, Any]) -> RemoteRelease:
        """Build from a raw catalog entry.

        The catalog encodes ``lts`` as ``false`` or a codename string and
        prefixes versions with ``v``.
        """
        lts = entry.get("lts")
        codename = lts if isinstance(lts, str) and lts else None
        return cls(
            version=str(entry.get("version", "")).lstrip("vV"),
            lts_codename=codename,
            release_date=str(entry.get("date", "")),
            platforms=tuple(entry.get("files") or ()),
        )

    def to_index_entry(self) -> dict[str, Any]:
        """Inverse of ``from_index_entry`` (used for the disk cache)."""
        return {
            "version": f"v{self.version}",
            "lts": self.lts_codename or False,
            "date": self.release_date,
            "files": list(self.platforms),
        }
