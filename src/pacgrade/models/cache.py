from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """On-disk state of one repository's cached index file."""

    repository_name: str
    path: Path
    local_timestamp: datetime | None = None  # file mtime (UTC), None if missing

    @property
    def exists(self) -> bool:
        return self.local_timestamp is not None
