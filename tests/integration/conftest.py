"""Integration test fixtures.

Provides Settings pointing every path at tmp_path, with two configured
repositories served by respx and a local database built from the shared
``local_packages`` fixture.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pacgrade.config import Settings

if TYPE_CHECKING:
    from pathlib import Path

CORE_MIRROR = "https://mirror.example.org/core/os/x86_64"
EXTRA_MIRROR = "https://mirror.example.org/extra/os/x86_64"
AUR = "https://aur.example.org"


@pytest.fixture()
def settings(tmp_path: Path, local_db: Path) -> Settings:
    return Settings(
        cache={"dir": str(tmp_path / "cache")},
        local_db={"path": str(local_db)},
        mirrors={
            "repositories": [
                {"name": "core", "servers": [CORE_MIRROR]},
                {"name": "extra", "servers": [EXTRA_MIRROR]},
            ]
        },
        fetcher={"timeout_seconds": 5},
        registry={"url": AUR},
        notify={"enabled": False},
    )
