"""Shared fixtures: on-disk pacman databases built from plain tuples."""

from __future__ import annotations

import io
import tarfile
from typing import TYPE_CHECKING

import pytest
import structlog

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

# (name, version, builddate)
Pkg = tuple[str, str, int | None]


def _desc_text(name: str, version: str, builddate: int | None) -> str:
    parts = [f"%NAME%\n{name}\n", f"%VERSION%\n{version}\n", "%DESC%\nsample package\n"]
    if builddate is not None:
        parts.append(f"%BUILDDATE%\n{builddate}\n")
    return "\n".join(parts)


def _sync_db_bytes(packages: list[Pkg]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, version, builddate in packages:
            data = _desc_text(name, version, builddate).encode()
            info = tarfile.TarInfo(f"{name}-{version}/desc")
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def _write_local_db(root: Path, packages: list[Pkg]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "ALPM_DB_VERSION").write_text("9\n")
    for name, version, builddate in packages:
        entry = root / f"{name}-{version}"
        entry.mkdir()
        (entry / "desc").write_text(_desc_text(name, version, builddate))
    return root


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture()
def desc_text() -> Callable[[str, str, int | None], str]:
    return _desc_text


@pytest.fixture()
def sync_db_bytes() -> Callable[[list[Pkg]], bytes]:
    """Build a gzip'd tar laid out like a pacman sync database."""
    return _sync_db_bytes


@pytest.fixture()
def write_local_db() -> Callable[[Path, list[Pkg]], Path]:
    """Write a pacman local database directory."""
    return _write_local_db


@pytest.fixture()
def local_packages() -> list[Pkg]:
    return [
        ("zed", "1.0-1", 100),
        ("bash", "5.2-1", 100),
        ("aurpkg", "1.0-1", 100),
    ]


@pytest.fixture()
def local_db(tmp_path: Path, local_packages: list[Pkg]) -> Path:
    return _write_local_db(tmp_path / "pacman" / "local", local_packages)
