"""
Tests for the pure domain layer — versions, aliases, platforms, helpers.
"""

import pytest

from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.services.runtime_install.domain.aliases import validate_alias
from nodekeep.core.services.runtime_install.domain.download_helpers import (
    fmt_size,
    parse_checksum_manifest,
    split_checksum,
)
from nodekeep.core.services.runtime_install.domain.platform import (
    HostArch,
    HostOs,
    HostPlatform,
    arch_from_machine,
    os_from_system,
    platform_supports_tag,
)
from nodekeep.core.services.runtime_install.domain.versions import (
    is_exact_version,
    normalize_version_input,
    parse_semver,
    version_sort_key,
    version_tag,
)


class TestVersions:
    @pytest.mark.parametrize("raw,expected", [
        ("20.11.0", "20.11.0"),
        ("v20.11.0", "20.11.0"),
        ("  V18  ", "18"),
        ("vanilla", "vanilla"),
        ("v", "v"),
    ])
    def test_normalize(self, raw: str, expected: str):
        assert normalize_version_input(raw) == expected

    def test_is_exact_version(self):
        assert is_exact_version("18.2.0")
        assert is_exact_version("v18.2.0")
        assert not is_exact_version("18.2")
        assert not is_exact_version("lts")
        assert not is_exact_version("18.2.0-rc.1")

    def test_parse_and_sort(self):
        assert parse_semver("v20.11.0") == (20, 11, 0)
        with pytest.raises(ValueError):
            parse_semver("20")
        versions = ["9.0.0", "20.10.0", "20.9.1", "bogus"]
        assert sorted(versions, key=version_sort_key, reverse=True) == [
            "20.10.0", "20.9.1", "9.0.0", "bogus",
        ]

    def test_version_tag(self):
        assert version_tag("20.11.0") == "v20.11.0"
        assert version_tag("v20.11.0") == "v20.11.0"


class TestAliases:
    @pytest.mark.parametrize("alias", ["work", "my_app-2", "20.11.0", "Iron"])
    def test_valid(self, alias: str):
        assert validate_alias(alias) == alias

    @pytest.mark.parametrize("alias", ["", "has space", "a/b", "dots.not.ok", "node", "NPM", "nodekeep"])
    def test_invalid(self, alias: str):
        with pytest.raises(NodekeepError) as exc_info:
            validate_alias(alias)
        assert exc_info.value.kind is ErrorKind.INVALID_ALIAS


class TestPlatform:
    @pytest.mark.parametrize("system,expected", [
        ("Windows", HostOs.WINDOWS),
        ("Linux", HostOs.LINUX),
        ("Darwin", HostOs.DARWIN),
        ("SunOS", HostOs.UNKNOWN),
    ])
    def test_os_from_system(self, system: str, expected: HostOs):
        assert os_from_system(system) is expected

    @pytest.mark.parametrize("machine,expected", [
        ("x86_64", HostArch.X64),
        ("AMD64", HostArch.X64),
        ("aarch64", HostArch.ARM64),
        ("arm64", HostArch.ARM64),
        ("i686", HostArch.X86),
        ("riscv64", HostArch.UNKNOWN),
    ])
    def test_arch_from_machine(self, machine: str, expected: HostArch):
        assert arch_from_machine(machine) is expected

    def test_supported(self):
        assert HostPlatform(HostOs.LINUX, HostArch.X64).supported
        assert not HostPlatform(HostOs.DARWIN, HostArch.X86).supported
        assert not HostPlatform(HostOs.UNKNOWN, HostArch.X64).supported

    def test_names_per_os(self):
        mac = HostPlatform(HostOs.DARWIN, HostArch.ARM64)
        assert mac.artifact_os == "darwin"
        assert mac.catalog_tag == "osx-arm64"
        assert mac.archive_extension == ".tar.gz"
        assert str(mac.executable_relpath) == "bin/node"

        win = HostPlatform(HostOs.WINDOWS, HostArch.X64)
        assert win.archive_extension == ".zip"
        assert str(win.executable_relpath) == "node.exe"

        assert HostPlatform(HostOs.LINUX, HostArch.X64).archive_extension == ".tar.xz"

    def test_catalog_tag_matching(self):
        mac = HostPlatform(HostOs.DARWIN, HostArch.ARM64)
        assert platform_supports_tag(mac, "osx-arm64-tar")
        assert not platform_supports_tag(mac, "osx-x64-tar")
        linux = HostPlatform(HostOs.LINUX, HostArch.X64)
        assert platform_supports_tag(linux, "linux-x64")
        assert not platform_supports_tag(linux, "linux-x64a")


class TestDownloadHelpers:
    def test_fmt_size(self):
        assert fmt_size(512) == "512.0 B"
        assert fmt_size(50_000_000) == "47.7 MB"

    def test_parse_manifest(self):
        text = (
            "AAAA  node-v20.11.0-linux-x64.tar.xz\n"
            "BBBB\tnode-v20.11.0-win-x64.zip\n"
            "garbage\n"
        )
        assert parse_checksum_manifest(text, "NODE-v20.11.0-WIN-x64.zip") == "bbbb"
        assert parse_checksum_manifest(text, "node-v20.11.0-linux-x64.tar.xz") == "aaaa"
        assert parse_checksum_manifest(text, "missing.zip") is None

    def test_split_checksum(self):
        assert split_checksum("ABC") == ("sha256", "abc")
        assert split_checksum("SHA256:ABC") == ("sha256", "abc")
        assert split_checksum("md5:ff") == ("md5", "ff")
