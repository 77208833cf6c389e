"""On-disk cache of downloaded repository index files.

Layout under the cache directory::

    db/
      local -> /var/lib/pacman/local   (symlink, created once)
      sync/<repo>.db                   (one file per repository)

The store is dumb storage: it never decides freshness, that belongs to
``IndexFetcher``. Writes go through a temporary file and ``os.replace`` so a
failed write never leaves a truncated index behind.
"""

from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

import structlog

from pacgrade.errors import ErrorCode, PacgradeError
from pacgrade.models.cache import CacheEntry

log = structlog.get_logger()


class IndexCache:
    """Filesystem-backed index cache keyed by repository name."""

    def __init__(self, db_dir: Path) -> None:
        self.db_dir = db_dir
        self.sync_dir = db_dir / "sync"
        self.local_path = db_dir / "local"

    def ensure_layout(self, local_source: Path) -> None:
        """Create ``db/``, ``db/sync/`` and the ``db/local`` symlink if absent.

        An existing ``local`` entry is never recreated. Failure here means the
        cache directory is unusable, which is a configuration problem.
        """
        try:
            self.sync_dir.mkdir(parents=True, exist_ok=True)
            if not self.local_path.exists() and not self.local_path.is_symlink():
                log.info("local_db_symlink_created", target=str(local_source))
                self.local_path.symlink_to(local_source, target_is_directory=True)
        except OSError as exc:
            raise PacgradeError(
                ErrorCode.CONFIGURATION_ERROR,
                f"Cannot prepare cache directory {self.db_dir}: {exc}",
                recoverable=False,
            ) from exc

    def path_for(self, repository_name: str) -> Path:
        return self.sync_dir / f"{repository_name}.db"

    def has(self, repository_name: str) -> bool:
        return self.path_for(repository_name).is_file()

    def local_timestamp(self, repository_name: str) -> datetime | None:
        """Return the cached file's mtime as an aware UTC datetime, or None."""
        try:
            mtime = self.path_for(repository_name).stat().st_mtime
        except OSError:
            return None
        return datetime.fromtimestamp(int(mtime), tz=UTC)

    def entry(self, repository_name: str) -> CacheEntry:
        return CacheEntry(
            repository_name=repository_name,
            path=self.path_for(repository_name),
            local_timestamp=self.local_timestamp(repository_name),
        )

    def write(self, repository_name: str, content: bytes) -> None:
        """Replace the cached index. Raises ``PacgradeError(STORAGE_ERROR)``."""
        target = self.path_for(repository_name)
        tmp_name: str | None = None
        try:
            self.sync_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{repository_name}.", suffix=".part", dir=self.sync_dir
            )
            with os.fdopen(fd, "wb") as fh:
                fh.write(content)
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as exc:
            raise PacgradeError(
                ErrorCode.STORAGE_ERROR,
                f"Cannot write index for repository {repository_name}: {exc}",
            ) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
