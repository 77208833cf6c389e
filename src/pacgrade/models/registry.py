from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pacgrade.models.package import PackageRecord


class RegistryResult(BaseModel):
    """Single entry of an AUR ``info`` response. Unused fields are ignored."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name")
    version: str = Field(alias="Version")
    last_modified: int = Field(alias="LastModified")

    def to_record(self) -> PackageRecord:
        return PackageRecord(
            name=self.name,
            version=self.version,
            built_at=self.last_modified,
            repository="aur",
        )


class RegistryResponse(BaseModel):
    type: str = "multiinfo"
    error: str | None = None
    resultcount: int = 0
    results: list[RegistryResult] = []
