"""Readers for pacman's on-disk package databases.

Both the local store (``/var/lib/pacman/local``, one directory per installed
package) and a sync index (a tar archive with one directory per package)
describe each package in a ``desc`` file::

    %NAME%
    zed

    %VERSION%
    1.0-1

    %BUILDDATE%
    1700000000

The readers are single-pass generators yielding ``PackageRecord``; nothing
else in pacgrade looks at the on-disk formats.
"""

from __future__ import annotations

import tarfile
from typing import TYPE_CHECKING

import structlog

from pacgrade.errors import ErrorCode, PacgradeError
from pacgrade.models.package import PackageRecord

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

log = structlog.get_logger()


def parse_desc(text: str) -> dict[str, list[str]]:
    """Split a ``desc`` file into ``{FIELD: [value, ...]}``."""
    fields: dict[str, list[str]] = {}
    current: list[str] | None = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            current = None
            continue
        if current is None and line.startswith("%") and line.endswith("%") and len(line) > 2:
            current = fields.setdefault(line[1:-1], [])
            continue
        if current is not None:
            current.append(line)
    return fields


def record_from_desc(text: str, repository: str | None = None) -> PackageRecord | None:
    fields = parse_desc(text)
    name = fields.get("NAME")
    version = fields.get("VERSION")
    if not name or not version:
        return None
    builddate = fields.get("BUILDDATE")
    try:
        built_at = int(builddate[0]) if builddate else 0
    except ValueError:
        built_at = 0
    return PackageRecord(name=name[0], version=version[0], built_at=built_at, repository=repository)


def iter_local_packages(local_dir: Path) -> Iterator[PackageRecord]:
    """Yield every installed package found under ``local_dir``.

    Raises ``PacgradeError(LOCAL_DB_UNAVAILABLE)`` if the store cannot be
    listed. Individual unreadable entries are skipped with a warning.
    """
    try:
        entries = sorted(local_dir.iterdir())
    except OSError as exc:
        raise PacgradeError(
            ErrorCode.LOCAL_DB_UNAVAILABLE,
            f"Cannot open local package database {local_dir}: {exc}",
            recoverable=False,
        ) from exc

    for entry in entries:
        desc = entry / "desc"
        if not desc.is_file():
            continue
        try:
            text = desc.read_text(encoding="utf-8", errors="replace")
        except OSError:
            log.warning("local_desc_unreadable", path=str(desc), exc_info=True)
            continue
        record = record_from_desc(text)
        if record is None:
            log.warning("local_desc_invalid", path=str(desc))
            continue
        yield record


def iter_sync_packages(db_path: Path, repository: str | None = None) -> Iterator[PackageRecord]:
    """Yield every package in a downloaded sync index (any tar compression)."""
    try:
        archive = tarfile.open(db_path, mode="r:*")
    except (OSError, tarfile.TarError) as exc:
        raise PacgradeError(
            ErrorCode.PARSE_ERROR, f"Cannot open sync index {db_path}: {exc}"
        ) from exc

    with archive:
        try:
            for member in archive:
                if not member.isfile() or not member.name.endswith("/desc"):
                    continue
                fh = archive.extractfile(member)
                if fh is None:
                    continue
                record = record_from_desc(fh.read().decode("utf-8", "replace"), repository)
                if record is not None:
                    yield record
        except (OSError, tarfile.TarError, EOFError) as exc:
            raise PacgradeError(
                ErrorCode.PARSE_ERROR, f"Corrupt sync index {db_path}: {exc}"
            ) from exc


def load_local_packages(local_dir: Path) -> dict[str, PackageRecord]:
    return {record.name: record for record in iter_local_packages(local_dir)}


def load_sync_index(db_path: Path, repository: str | None = None) -> dict[str, PackageRecord]:
    """Return ``name -> record`` for one sync index. First entry for a name wins."""
    index: dict[str, PackageRecord] = {}
    for record in iter_sync_packages(db_path, repository):
        index.setdefault(record.name, record)
    return index
