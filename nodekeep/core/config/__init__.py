"""Configuration loading and home directory layout."""

from nodekeep.core.config.settings import (  # noqa: F401
    ConfigError,
    NodekeepConfig,
    Settings,
    default_home,
    load_config,
)
