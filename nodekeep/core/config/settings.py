"""
Configuration — home directory layout and tunables.

Every component receives a ``NodekeepConfig`` explicitly; nothing reads
process-wide state after startup.  The home directory is resolved in
precedence order:

    explicit argument  >  NODEKEEP_HOME env var  >  platform default

Tunables can be overridden by an optional ``<home>/config.yml``.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "NODEKEEP_HOME"
CONFIG_FILE = "config.yml"

VERSIONS_DIR = "versions"
CACHE_DIR = "cache"
LOCKS_DIR = "locks"
REGISTRY_FILE = "installations.json"
CATALOG_CACHE_FILE = "versions-index.json"


class ConfigError(Exception):
    """Raised when nodekeep configuration is invalid."""


class Settings(BaseModel):
    """Tunables read from ``config.yml``."""

    catalog_url: str = "https://nodejs.org/dist/index.json"
    dist_base_url: str = "https://nodejs.org/dist"
    catalog_ttl_minutes: int = Field(default=60, ge=0)

    download_timeout: float = Field(default=600.0, gt=0)
    preflight_timeout: float = Field(default=10.0, gt=0)
    lock_timeout: float = Field(default=30.0, ge=0)

    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=0.5, ge=0)

    estimated_artifact_bytes: int = Field(default=50_000_000, gt=0)
    disk_space_multiplier: int = Field(default=3, ge=1)


class NodekeepConfig(BaseModel):
    """Resolved configuration: home directory plus tunables."""

    home: Path
    settings: Settings = Field(default_factory=Settings)

    @property
    def versions_dir(self) -> Path:
        return self.home / VERSIONS_DIR

    @property
    def cache_dir(self) -> Path:
        return self.home / CACHE_DIR

    @property
    def locks_dir(self) -> Path:
        return self.home / LOCKS_DIR

    @property
    def registry_file(self) -> Path:
        return self.home / REGISTRY_FILE

    @property
    def catalog_file(self) -> Path:
        return self.home / CATALOG_CACHE_FILE

    def ensure_directories(self) -> None:
        """Create the home directory tree if it is missing."""
        for path in (self.home, self.versions_dir, self.cache_dir, self.locks_dir):
            path.mkdir(parents=True, exist_ok=True)


def default_home() -> Path:
    """Home directory from the environment or the platform default."""
    env = os.environ.get(HOME_ENV_VAR)
    if env:
        return Path(env).expanduser()
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "nodekeep"
    return Path.home() / ".nodekeep"


def load_config(home: Path | None = None) -> NodekeepConfig:
    """Build the configuration for ``home`` (or the default home).

    Raises:
        ConfigError: If ``config.yml`` exists but is not valid.
    """
    home = (home or default_home()).expanduser()
    path = home / CONFIG_FILE

    if not path.is_file():
        logger.debug("No %s in %s, using defaults", CONFIG_FILE, home)
        return NodekeepConfig(home=home)

    logger.debug("Loading settings from %s", path)
    try:
        raw: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a mapping in {path}, got {type(raw).__name__}")

    try:
        settings = Settings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}:\n{e}") from e

    return NodekeepConfig(home=home, settings=settings)
