"""
Tests for download cache maintenance.
"""

import os
import time
from pathlib import Path

import pytest

from nodekeep.core.services.runtime_install.execution.cache import ArtifactCache

DAY = 86400


def _file(cache: Path, name: str, size: int, age_days: float = 0) -> Path:
    cache.mkdir(parents=True, exist_ok=True)
    path = cache / name
    path.write_bytes(b"x" * size)
    stamp = time.time() - age_days * DAY
    os.utime(path, (stamp, stamp))
    return path


class TestEntries:
    def test_missing_directory(self, tmp_path: Path):
        cache = ArtifactCache(tmp_path / "cache")
        assert cache.entries() == []
        assert cache.size_bytes() == 0

    def test_newest_first_files_only(self, tmp_path: Path):
        root = tmp_path / "cache"
        _file(root, "old.zip", 10, age_days=5)
        _file(root, "new.zip", 20)
        (root / "extract_abc").mkdir()

        cache = ArtifactCache(root)
        assert [e.file_name for e in cache.entries()] == ["new.zip", "old.zip"]
        assert cache.size_bytes() == 30

    @pytest.mark.parametrize("name", ["", "../x.zip", "sub/x.zip", ".."])
    def test_path_for_rejects_paths(self, tmp_path: Path, name: str):
        with pytest.raises(ValueError):
            ArtifactCache(tmp_path).path_for(name)

    def test_contains(self, tmp_path: Path):
        _file(tmp_path, "a.zip", 1)
        cache = ArtifactCache(tmp_path)
        assert cache.contains("a.zip")
        assert not cache.contains("b.zip")


class TestPruning:
    def test_clear_removes_files_and_leftover_extract_dirs(self, tmp_path: Path):
        root = tmp_path / "cache"
        _file(root, "a.zip", 5)
        _file(root, "b.tar.xz", 7)
        (root / "extract_1" / "node").mkdir(parents=True)

        removed = ArtifactCache(root).clear()

        assert sorted(e.file_name for e in removed) == ["a.zip", "b.tar.xz"]
        assert list(root.iterdir()) == []

    def test_clean_keeps_recent(self, tmp_path: Path):
        root = tmp_path / "cache"
        _file(root, "old.zip", 5, age_days=31)
        _file(root, "recent.zip", 5, age_days=2)

        removed = ArtifactCache(root).clean(older_than_days=30)

        assert [e.file_name for e in removed] == ["old.zip"]
        assert [p.name for p in root.iterdir()] == ["recent.zip"]

    def test_clean_zero_days_removes_everything(self, tmp_path: Path):
        root = tmp_path / "cache"
        _file(root, "a.zip", 1, age_days=0.01)
        assert len(ArtifactCache(root).clean(older_than_days=0)) == 1

    def test_clean_negative_age(self, tmp_path: Path):
        with pytest.raises(ValueError):
            ArtifactCache(tmp_path).clean(older_than_days=-1)
