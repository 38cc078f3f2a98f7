"""
L0 Data — Constants for runtime installs.

Pure data, no logic.
"""

from __future__ import annotations

# platform.machine() value → Node.js arch name.
MACHINE_ARCH_MAP: dict[str, str] = {
    "x86_64": "x64",
    "amd64": "x64",        # Windows reports AMD64
    "aarch64": "arm64",
    "arm64": "arm64",      # macOS (Darwin reports arm64)
    "armv7l": "armv7l",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}

# Name used in artifact file names, per host OS.
ARTIFACT_OS_NAMES: dict[str, str] = {
    "windows": "win",
    "linux": "linux",
    "darwin": "darwin",
}

# Name used in the catalog's ``files`` tags, per host OS.
CATALOG_OS_NAMES: dict[str, str] = {
    "windows": "win",
    "linux": "linux",
    "darwin": "osx",
}

ARCHIVE_EXTENSIONS: dict[str, str] = {
    "windows": ".zip",
    "linux": ".tar.xz",
    "darwin": ".tar.gz",
}

SUPPORTED_PLATFORMS: frozenset[tuple[str, str]] = frozenset({
    ("windows", "x64"),
    ("windows", "x86"),
    ("windows", "arm64"),
    ("linux", "x64"),
    ("linux", "arm64"),
    ("linux", "armv7l"),
    ("darwin", "x64"),
    ("darwin", "arm64"),
})

CHECKSUM_MANIFEST = "SHASUMS256.txt"

# Names an alias may not take (they collide with shims on PATH).
RESERVED_ALIASES: frozenset[str] = frozenset({
    "node",
    "npm",
    "npx",
    "nodejs",
    "corepack",
    "nodekeep",
})

# Shown when an expression matches no resolution strategy.
ACCEPTED_VERSION_FORMS: tuple[str, ...] = (
    "18.2.0",
    "20",
    "lts",
    "lts/iron",
    "hydrogen",
    "latest",
    "current",
    "<installed alias>",
)

# Project files naming the wanted version, highest precedence first.
VERSION_FILE_NAMES: tuple[str, ...] = (".nvmrc", ".node-version", "package.json")

# nvm spellings that mean a resolver keyword.
VERSION_FILE_KEYWORDS: dict[str, str] = {
    "lts/*": "lts",
    "node": "latest",
    "stable": "latest",
}

EXTRACT_DIR_PREFIX = "extract_"
DEFAULT_CACHE_MAX_AGE_DAYS = 30

STATE_LOCK = "state"
USER_AGENT = "nodekeep/0.1"
