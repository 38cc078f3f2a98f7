"""
Installation registry — the persisted list of installed runtimes.

Stored as JSON in ``<home>/installations.json``.  Writes are atomic
(temp file in the same directory, then rename) so a crash mid-write
never leaves a truncated registry.  A missing or corrupt file reads as
an empty registry.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.models.installation import Installation

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class RegistryDocument(BaseModel):
    """On-disk shape of the registry file."""

    schema_version: int = SCHEMA_VERSION
    updated_at: str = ""
    installations: list[Installation] = Field(default_factory=list)


class InstallationRegistry:
    """Read/write access to the installation registry file.

    Every call re-reads the file; callers that mutate it are expected
    to hold the ``"state"`` lock.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    # ── reads ──

    def all(self) -> list[Installation]:
        return list(self._load().installations)

    def get_by_alias(self, alias: str) -> Installation | None:
        for inst in self._load().installations:
            if inst.matches_alias(alias):
                return inst
        return None

    def get_by_version(self, version: str) -> list[Installation]:
        return [i for i in self._load().installations if i.version == version]

    def active(self) -> Installation | None:
        for inst in self._load().installations:
            if inst.active:
                return inst
        return None

    # ── writes ──

    def add(self, installation: Installation) -> None:
        """Insert ``installation``, replacing any entry with the same alias."""
        doc = self._load()
        kept = [i for i in doc.installations if not i.matches_alias(installation.alias)]
        if installation.active:
            kept = [i.model_copy(update={"active": False}) for i in kept]
        kept.append(installation)
        doc.installations = kept
        self._save(doc)
        logger.debug("Registered '%s' (%s)", installation.alias, installation.version)

    def remove(self, alias: str) -> bool:
        """Remove the entry for ``alias``; False when there was none."""
        doc = self._load()
        kept = [i for i in doc.installations if not i.matches_alias(alias)]
        if len(kept) == len(doc.installations):
            return False
        doc.installations = kept
        self._save(doc)
        logger.debug("Deregistered '%s'", alias)
        return True

    def set_active(self, alias: str) -> Installation:
        """Mark ``alias`` active and every other entry inactive.

        Raises:
            NodekeepError: INSTALLATION_NOT_FOUND if ``alias`` is unknown.
        """
        doc = self._load()
        target: Installation | None = None
        updated: list[Installation] = []
        for inst in doc.installations:
            is_target = inst.matches_alias(alias)
            inst = inst.model_copy(update={"active": is_target})
            if is_target:
                target = inst
            updated.append(inst)

        if target is None:
            raise NodekeepError(
                ErrorKind.INSTALLATION_NOT_FOUND,
                f"No installation with alias '{alias}'",
                hint="Run 'nodekeep install <version>' first.",
            )
        doc.installations = updated
        self._save(doc)
        return target

    # ── file I/O ──

    def _load(self) -> RegistryDocument:
        if not self.path.is_file():
            return RegistryDocument()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return RegistryDocument.model_validate(data)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt registry %s: %s — treating as empty", self.path, e)
        except (OSError, ValueError) as e:
            logger.warning("Cannot read registry %s: %s — treating as empty", self.path, e)
        return RegistryDocument()

    def _save(self, doc: RegistryDocument) -> None:
        doc.updated_at = datetime.now(UTC).isoformat()
        content = json.dumps(doc.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=".installations_",
            suffix=".tmp",
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp, self.path)
        except Exception:
            tmp.unlink(missing_ok=True)
            logger.error("Failed to save registry to %s", self.path)
            raise
