"""
L2 Resolver — Artifact location.

``node-v<ver>-<os>-<arch><ext>`` under ``<dist>/v<ver>/``, next to the
``SHASUMS256.txt`` manifest.
"""

from __future__ import annotations

from typing import NamedTuple

from nodekeep.core.config.settings import NodekeepConfig
from nodekeep.core.models.release import RemoteRelease
from nodekeep.core.services.runtime_install.data.constants import CHECKSUM_MANIFEST
from nodekeep.core.services.runtime_install.domain.platform import (
    HostPlatform,
    platform_supports_tag,
)
from nodekeep.core.services.runtime_install.domain.versions import (
    normalize_version_input,
    version_tag,
)


class ArtifactTarget(NamedTuple):
    file_name: str
    url: str
    manifest_url: str


class ArtifactLocator:
    def __init__(self, config: NodekeepConfig, host: HostPlatform):
        self.base_url = config.settings.dist_base_url.rstrip("/")
        self.host = host

    def file_name(self, version: str) -> str:
        tag = version_tag(version)
        return f"node-{tag}-{self.host.artifact_os}-{self.host.arch.value}{self.host.archive_extension}"

    def locate(self, version: str) -> ArtifactTarget:
        version = normalize_version_input(version)
        directory = f"{self.base_url}/{version_tag(version)}"
        name = self.file_name(version)
        return ArtifactTarget(
            file_name=name,
            url=f"{directory}/{name}",
            manifest_url=f"{directory}/{CHECKSUM_MANIFEST}",
        )

    def is_available(self, release: RemoteRelease) -> bool:
        """Whether ``release`` publishes an artifact for this host."""
        return any(platform_supports_tag(self.host, tag) for tag in release.platforms)
