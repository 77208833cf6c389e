from __future__ import annotations

from pydantic import BaseModel, computed_field


class OutdatedPackage(BaseModel):
    name: str
    local_version: str
    remote_version: str
    source: str  # repository name the newer record came from, or "aur"


class ReconciliationResult(BaseModel):
    """Verdicts of one run. Built fresh every time, never persisted."""

    details: list[OutdatedPackage] = []
    up_to_date: int = 0
    # Local packages found in no sync index and not returned by the registry
    unresolved: list[str] = []
    registry_failed: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def outdated_count(self) -> int:
        return len(self.details)
