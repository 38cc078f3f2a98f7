"""
Tests for the remote release catalog and its caches.
"""

import http.client
import json
import urllib.error

import pytest
from conftest import CATALOG_URL, FakeOpener

from nodekeep.core.errors import ErrorKind, NodekeepError
from nodekeep.core.models.release import RemoteRelease
from nodekeep.core.services.runtime_install.resolver.catalog import RemoteCatalog


class _Clock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestReleaseParsing:
    def test_from_index_entry(self):
        rel = RemoteRelease.from_index_entry(
            {"version": "v20.11.0", "lts": "Iron", "date": "2024-01-09", "files": ["linux-x64"]}
        )
        assert rel.version == "20.11.0"
        assert rel.lts_codename == "Iron"
        assert rel.is_lts
        assert rel.major == 20
        assert rel.platforms == ("linux-x64",)

    def test_lts_false(self):
        rel = RemoteRelease.from_index_entry({"version": "v21.6.0", "lts": False})
        assert rel.lts_codename is None
        assert not rel.is_lts


class TestRemoteCatalog:
    def test_sorted_newest_first(self, config, opener: FakeOpener):
        catalog = RemoteCatalog(config, opener=opener)
        versions = [r.version for r in catalog.releases()]
        assert versions == ["21.6.0", "20.11.0", "20.10.0", "18.19.0"]

    def test_memory_cache(self, config, opener: FakeOpener):
        catalog = RemoteCatalog(config, opener=opener)
        catalog.releases()
        catalog.releases()
        assert opener.count(CATALOG_URL) == 1

    def test_disk_cache_shared_across_instances(self, config, opener: FakeOpener):
        clock = _Clock()
        RemoteCatalog(config, opener=opener, clock=clock).releases()
        assert config.catalog_file.is_file()

        second = RemoteCatalog(config, opener=opener, clock=clock)
        assert len(second.releases()) == 4
        assert opener.count(CATALOG_URL) == 1

    def test_cache_expires(self, config, opener: FakeOpener):
        clock = _Clock()
        catalog = RemoteCatalog(config, opener=opener, clock=clock)
        catalog.releases()
        clock.now += 61 * 60
        catalog.releases()
        assert opener.count(CATALOG_URL) == 2

    def test_force_refresh(self, config, opener: FakeOpener):
        catalog = RemoteCatalog(config, opener=opener)
        catalog.releases()
        catalog.releases(force_refresh=True)
        assert opener.count(CATALOG_URL) == 2

    def test_corrupt_disk_cache_ignored(self, config, opener: FakeOpener):
        config.catalog_file.parent.mkdir(parents=True)
        config.catalog_file.write_text("{broken")
        assert len(RemoteCatalog(config, opener=opener).releases()) == 4

    def test_clear_cache(self, config, opener: FakeOpener):
        catalog = RemoteCatalog(config, opener=opener)
        catalog.releases()
        catalog.clear_cache()
        assert not config.catalog_file.exists()
        catalog.releases()
        assert opener.count(CATALOG_URL) == 2

    def test_find(self, config, opener: FakeOpener):
        catalog = RemoteCatalog(config, opener=opener)
        assert catalog.find("v20.10.0").lts_codename == "Iron"
        assert catalog.find("99.0.0") is None

    def test_skips_malformed_entries(self, config):
        body = json.dumps([{"version": "v20.0.0"}, {"version": "nightly"}, "junk"]).encode()
        catalog = RemoteCatalog(config, opener=FakeOpener({CATALOG_URL: body}))
        assert [r.version for r in catalog.releases()] == ["20.0.0"]

    @pytest.mark.parametrize("route", [
        urllib.error.URLError("dns failure"),
        urllib.error.HTTPError(CATALOG_URL, 503, "busy", {}, None),
        TimeoutError("slow"),
        http.client.RemoteDisconnected("closed without response"),
        b"not json",
        b'{"not": "a list"}',
    ])
    def test_failures_are_remote_api_failed(self, config, route):
        catalog = RemoteCatalog(config, opener=FakeOpener({CATALOG_URL: route}))
        with pytest.raises(NodekeepError) as exc_info:
            catalog.releases()
        assert exc_info.value.kind is ErrorKind.REMOTE_API_FAILED
