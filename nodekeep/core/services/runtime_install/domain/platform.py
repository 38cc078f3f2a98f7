"""
L1 Domain — Host platform vocabulary (pure).

Maps an (os, arch) pair onto the names upstream uses in artifact file
names and catalog platform tags.  Detection of the *current* host lives
in ``detection/host.py``.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import PurePosixPath, PureWindowsPath
from typing import NamedTuple

from nodekeep.core.services.runtime_install.data.constants import (
    ARCHIVE_EXTENSIONS,
    ARTIFACT_OS_NAMES,
    CATALOG_OS_NAMES,
    MACHINE_ARCH_MAP,
    SUPPORTED_PLATFORMS,
)


class HostOs(StrEnum):
    WINDOWS = "windows"
    LINUX = "linux"
    DARWIN = "darwin"
    UNKNOWN = "unknown"


class HostArch(StrEnum):
    X64 = "x64"
    X86 = "x86"
    ARM64 = "arm64"
    ARMV7L = "armv7l"
    UNKNOWN = "unknown"


class HostPlatform(NamedTuple):
    os: HostOs
    arch: HostArch

    @property
    def supported(self) -> bool:
        return (self.os.value, self.arch.value) in SUPPORTED_PLATFORMS

    @property
    def artifact_os(self) -> str:
        return ARTIFACT_OS_NAMES.get(self.os.value, self.os.value)

    @property
    def catalog_os(self) -> str:
        return CATALOG_OS_NAMES.get(self.os.value, self.os.value)

    @property
    def archive_extension(self) -> str:
        return ARCHIVE_EXTENSIONS.get(self.os.value, ".tar.gz")

    @property
    def catalog_tag(self) -> str:
        """Prefix of matching ``files`` tags, e.g. ``osx-arm64``."""
        return f"{self.catalog_os}-{self.arch.value}"

    @property
    def executable_relpath(self) -> PurePosixPath | PureWindowsPath:
        """Runtime binary location relative to an installation root."""
        if self.os is HostOs.WINDOWS:
            return PureWindowsPath("node.exe")
        return PurePosixPath("bin", "node")

    def __str__(self) -> str:
        return f"{self.os.value}-{self.arch.value}"


def os_from_system(system: str) -> HostOs:
    """Map ``platform.system()`` output onto ``HostOs``."""
    name = system.strip().lower()
    if name.startswith(("win", "cygwin", "msys")):
        return HostOs.WINDOWS
    if name == "linux":
        return HostOs.LINUX
    if name in ("darwin", "macos"):
        return HostOs.DARWIN
    return HostOs.UNKNOWN


def arch_from_machine(machine: str) -> HostArch:
    """Map ``platform.machine()`` output onto ``HostArch``."""
    mapped = MACHINE_ARCH_MAP.get(machine.strip().lower())
    if mapped is None:
        return HostArch.UNKNOWN
    return HostArch(mapped)


def platform_supports_tag(host: HostPlatform, tag: str) -> bool:
    """Whether a catalog ``files`` tag covers ``host``.

    Tags are either exactly ``<os>-<arch>`` (``linux-x64``) or carry a
    packaging suffix (``osx-arm64-tar``, ``win-x64-zip``).
    """
    prefix = host.catalog_tag
    return tag == prefix or tag.startswith(prefix + "-")
