"""
Tests for CLI commands and global options.
"""

import json
import os
import signal
import time
from pathlib import Path

import pytest
from click.testing import CliRunner
from conftest import DIST, WINDOWS_X64, FakeOpener, FakeResponse

import nodekeep.ui.cli._common as cli_common
from nodekeep.core.use_cases.runtimes import build_services
from nodekeep.main import cli


@pytest.fixture
def fake_services(monkeypatch, opener: FakeOpener):
    """Route the CLI through fakes instead of the network."""

    def build(config):
        return build_services(
            config,
            host=WINDOWS_X64,
            opener=opener,
            sleep=lambda s: None,
            reachability=lambda url, timeout=None: {"reachable": True},
            disk_free=lambda path: 10 * 1024**3,
        )

    monkeypatch.setattr(cli_common, "build_services", build)


def _invoke(home: Path, *args: str):
    return CliRunner().invoke(cli, ["--home", str(home), *args])


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Node.js" in result.output
        for command in ("install", "resolve", "use", "remove", "list", "locks"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestRuntimeCommands:
    def test_install_use_list_remove(self, tmp_path: Path, fake_services):
        home = tmp_path / "home"

        result = _invoke(home, "-q", "install", "lts", "--alias", "work")
        assert result.exit_code == 0, result.output
        assert "20.11.0" in result.output

        assert _invoke(home, "use", "work").exit_code == 0

        listed = _invoke(home, "list", "--json")
        data = json.loads(listed.output)
        assert data[0]["alias"] == "work"
        assert data[0]["active"] is True

        assert _invoke(home, "remove", "work", "--yes").exit_code == 0
        assert "No runtimes installed" in _invoke(home, "list").output

    def test_install_twice_exit_code(self, tmp_path: Path, fake_services):
        home = tmp_path / "home"
        assert _invoke(home, "-q", "install", "20.11.0").exit_code == 0
        result = _invoke(home, "-q", "install", "20.11.0")
        assert result.exit_code == 42
        assert "--force" in result.output

    def test_resolve(self, tmp_path: Path, fake_services):
        result = _invoke(tmp_path, "resolve", "iron")
        assert result.exit_code == 0
        assert result.output.strip() == "20.11.0"

    def test_resolve_invalid_exit_code(self, tmp_path: Path, fake_services):
        result = _invoke(tmp_path, "resolve", "1.2")
        assert result.exit_code == 71
        assert "NK-ARG-071" in result.output

    def test_use_unknown_exit_code(self, tmp_path: Path, fake_services):
        assert _invoke(tmp_path, "use", "ghost").exit_code == 40

    def test_bad_config(self, tmp_path: Path):
        (tmp_path / "config.yml").write_text("lock_timeout: [\n")
        result = _invoke(tmp_path, "list")
        assert result.exit_code == 2
        assert "Invalid YAML" in result.output


class TestLockCommands:
    def test_status_and_cleanup(self, tmp_path: Path, fake_services):
        assert "state: free" in _invoke(tmp_path, "locks", "status").output
        result = _invoke(tmp_path, "locks", "cleanup")
        assert result.exit_code == 0
        assert "No stale locks" in result.output

    def test_status_invalid_name(self, tmp_path: Path, fake_services):
        result = _invoke(tmp_path, "locks", "status", "a/b")
        assert result.exit_code == 2


class TestInstallInterrupt:
    def test_ctrl_c_cancels_and_cleans_cache(self, tmp_path: Path, fake_services, opener: FakeOpener):
        class CtrlCAfterFirstChunk(FakeResponse):
            def read(self, n: int = -1) -> bytes:
                if self._buf.tell():
                    signal.raise_signal(signal.SIGINT)
                return super().read(n)

        url = f"{DIST}/v20.11.0/node-v20.11.0-win-x64.zip"
        opener.routes[url] = CtrlCAfterFirstChunk(b"\0" * 40_000)
        home = tmp_path / "home"
        before = signal.getsignal(signal.SIGINT)

        result = _invoke(home, "-q", "install", "20.11.0")

        assert result.exit_code == 130
        assert "interrupted" in result.output
        assert list((home / "cache").iterdir()) == []
        assert not (home / "versions" / "20.11.0").exists()
        assert signal.getsignal(signal.SIGINT) is before


class TestInstallFromVersionFile:
    def test_reads_nvmrc(self, tmp_path: Path, fake_services):
        project = tmp_path / "project"
        project.mkdir()
        (project / ".nvmrc").write_text("v20.11.0\n")
        result = _invoke(tmp_path / "home", "-q", "install", "--project-dir", str(project))
        assert result.exit_code == 0, result.output
        assert "20.11.0" in result.output

    def test_no_version_file(self, tmp_path: Path, fake_services):
        result = _invoke(tmp_path / "home", "install", "--project-dir", str(tmp_path))
        assert result.exit_code == 73
        assert "NK-ARG-073" in result.output


class TestListRemote:
    def test_lists_newest_first(self, tmp_path: Path, fake_services):
        result = _invoke(tmp_path, "list-remote")
        assert result.exit_code == 0
        versions = [line.split()[0] for line in result.output.splitlines() if line.strip()]
        assert versions == ["v21.6.0", "v20.11.0", "v20.10.0", "v18.19.0"]

    def test_lts_json(self, tmp_path: Path, fake_services):
        result = _invoke(tmp_path, "list-remote", "--lts", "--json")
        data = json.loads(result.output)
        assert [r["version"] for r in data] == ["20.11.0", "20.10.0", "18.19.0"]

    def test_limit(self, tmp_path: Path, fake_services):
        result = _invoke(tmp_path, "list-remote", "--limit", "1")
        assert "v21.6.0" in result.output
        assert "v20.11.0" not in result.output
        assert "3 more" in result.output

    def test_all_and_limit_conflict(self, tmp_path: Path, fake_services):
        assert _invoke(tmp_path, "list-remote", "--all", "--limit", "2").exit_code == 2

    def test_catalog_unreachable(self, tmp_path: Path, fake_services, opener: FakeOpener):
        del opener.routes["https://nodejs.org/dist/index.json"]
        assert _invoke(tmp_path, "list-remote").exit_code == 30


class TestCacheCommands:
    def _seed(self, home: Path) -> Path:
        cache = home / "cache"
        cache.mkdir(parents=True)
        old = cache / "node-v18.19.0-win-x64.zip"
        old.write_bytes(b"o" * 100)
        stamp = time.time() - 40 * 86400
        os.utime(old, (stamp, stamp))
        (cache / "node-v20.11.0-win-x64.zip").write_bytes(b"n" * 200)
        return cache

    def test_list(self, tmp_path: Path, fake_services):
        self._seed(tmp_path)
        result = _invoke(tmp_path, "cache", "list")
        assert result.exit_code == 0
        lines = [line for line in result.output.splitlines() if "node-v" in line]
        assert "20.11.0" in lines[0]
        assert "2 file(s)" in result.output

    def test_list_empty(self, tmp_path: Path, fake_services):
        assert "Cache is empty" in _invoke(tmp_path, "cache", "list").output

    def test_clean_removes_only_old(self, tmp_path: Path, fake_services):
        cache = self._seed(tmp_path)
        result = _invoke(tmp_path, "cache", "clean")
        assert result.exit_code == 0
        assert "Removed 1" in result.output
        assert sorted(p.name for p in cache.iterdir()) == ["node-v20.11.0-win-x64.zip"]

    def test_clear_needs_confirmation(self, tmp_path: Path, fake_services):
        cache = self._seed(tmp_path)
        result = CliRunner().invoke(cli, ["--home", str(tmp_path), "cache", "clear"], input="n\n")
        assert result.exit_code == 1
        assert len(list(cache.iterdir())) == 2

        result = _invoke(tmp_path, "cache", "clear", "--yes")
        assert result.exit_code == 0
        assert list(cache.iterdir()) == []
