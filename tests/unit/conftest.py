"""Unit-specific fixtures (no I/O beyond tmp_path)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pacgrade.cache import IndexCache

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def cache(tmp_path: Path) -> IndexCache:
    """Index cache rooted in a fresh temporary db directory."""
    return IndexCache(tmp_path / "db")
