"""Unit tests for pacgrade.cache."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from pacgrade.cache import IndexCache
from pacgrade.errors import ErrorCode, PacgradeError

if TYPE_CHECKING:
    from pathlib import Path


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


class TestEnsureLayout:
    def test_creates_sync_dir_and_local_symlink(self, cache: IndexCache, tmp_path: Path) -> None:
        system_local = tmp_path / "var" / "lib" / "pacman" / "local"
        system_local.mkdir(parents=True)

        cache.ensure_layout(system_local)

        assert cache.sync_dir.is_dir()
        assert cache.local_path.is_symlink()
        assert cache.local_path.resolve() == system_local.resolve()

    def test_existing_local_link_is_not_recreated(
        self, cache: IndexCache, tmp_path: Path
    ) -> None:
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()

        cache.ensure_layout(first)
        cache.ensure_layout(second)

        assert cache.local_path.resolve() == first.resolve()

    def test_dangling_link_is_left_alone(self, cache: IndexCache, tmp_path: Path) -> None:
        cache.ensure_layout(tmp_path / "does-not-exist")
        cache.ensure_layout(tmp_path / "does-not-exist")
        assert cache.local_path.is_symlink()

    @pytest.mark.skipif(
        os.name == "nt" or (hasattr(os, "getuid") and os.getuid() == 0),
        reason="Permission checks don't apply on Windows or when running as root.",
    )
    def test_unwritable_cache_dir_is_configuration_error(self, tmp_path: Path) -> None:
        readonly = tmp_path / "readonly"
        readonly.mkdir()
        readonly.chmod(0o555)
        try:
            with pytest.raises(PacgradeError) as exc_info:
                IndexCache(readonly / "db").ensure_layout(tmp_path)
            assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR
            assert exc_info.value.recoverable is False
        finally:
            readonly.chmod(0o755)


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


class TestIndexEntries:
    def test_path_is_repo_name_dot_db(self, cache: IndexCache) -> None:
        assert cache.path_for("core").name == "core.db"
        assert cache.path_for("core").parent == cache.sync_dir

    def test_missing_entry(self, cache: IndexCache) -> None:
        assert cache.has("core") is False
        assert cache.local_timestamp("core") is None
        entry = cache.entry("core")
        assert entry.repository_name == "core"
        assert entry.exists is False

    def test_write_then_read_back(self, cache: IndexCache) -> None:
        cache.write("core", b"index bytes")

        assert cache.has("core") is True
        assert cache.path_for("core").read_bytes() == b"index bytes"
        entry = cache.entry("core")
        assert entry.exists is True
        assert entry.local_timestamp is not None
        assert entry.local_timestamp.tzinfo is UTC

    def test_write_overwrites_in_place(self, cache: IndexCache) -> None:
        cache.write("extra", b"old")
        cache.write("extra", b"new")
        assert cache.path_for("extra").read_bytes() == b"new"
        # no temporary files left behind
        assert [p.name for p in cache.sync_dir.iterdir()] == ["extra.db"]

    def test_local_timestamp_is_file_mtime_in_whole_seconds(self, cache: IndexCache) -> None:
        cache.write("core", b"x")
        mtime = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC).timestamp() + 0.75
        os.utime(cache.path_for("core"), (mtime, mtime))

        assert cache.local_timestamp("core") == datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

    def test_write_failure_raises_storage_error(self, cache: IndexCache) -> None:
        # a regular file where the sync directory should be
        cache.db_dir.mkdir(parents=True)
        cache.sync_dir.write_text("not a directory")

        with pytest.raises(PacgradeError) as exc_info:
            cache.write("core", b"data")
        assert exc_info.value.code == ErrorCode.STORAGE_ERROR
        assert exc_info.value.recoverable is True
