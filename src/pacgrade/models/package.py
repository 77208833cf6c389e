from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PackageRecord(BaseModel):
    """One package as reported by the local store, a sync index or the AUR.

    ``name`` is the only field comparable across sources. Versions are opaque
    strings and ``built_at`` is only ordered within the same package name.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    built_at: int  # Unix seconds
    repository: str | None = None  # sync repo name, "aur", or None for local


class RepositoryDescriptor(BaseModel):
    """A remote repository and its mirrors. Only ``servers[0]`` is ever used."""

    model_config = ConfigDict(frozen=True)

    name: str
    servers: tuple[str, ...] = ()

    @property
    def primary_server(self) -> str | None:
        return self.servers[0] if self.servers else None
