"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (PACGRADE__REGISTRY__URL=https://aur.example.org)
  2. pacgrade.yaml          (searched in cwd, then the platform config dir)
  3. Hardcoded defaults

The config file is optional — all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from pacgrade.errors import ErrorCode, PacgradeError

_DEFAULT_CACHE_DIR = platformdirs.user_cache_dir("pacgrade")
_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("pacgrade")


def _find_config_file() -> str | None:
    """Return the path of the first pacgrade.yaml found, or None."""
    candidates = [
        Path("pacgrade.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "pacgrade.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dir: str = _DEFAULT_CACHE_DIR


class LocalDbSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str = "/var/lib/pacman/local"


class RepositorySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    servers: list[str] = []


class MirrorSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pacman_conf: str = "/etc/pacman.conf"
    architecture: str = "auto"
    # When set, replaces the repositories read from pacman_conf
    repositories: list[RepositorySettings] | None = None


class FetcherSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_seconds: float = 30.0


class RegistrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    url: str = "https://aur.archlinux.org"


class NotifySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: PACGRADE__FETCHER__TIMEOUT_SECONDS=10
        env_prefix="PACGRADE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    cache: CacheSettings = CacheSettings()
    local_db: LocalDbSettings = LocalDbSettings()
    mirrors: MirrorSettings = MirrorSettings()
    fetcher: FetcherSettings = FetcherSettings()
    registry: RegistrySettings = RegistrySettings()
    notify: NotifySettings = NotifySettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )


def resolve_cache_dir(settings: Settings) -> Path:
    """Return the absolute cache directory, expanding ``~``.

    Raises ``PacgradeError(CONFIGURATION_ERROR)`` when the user home cannot be
    resolved, before any network activity happens.
    """
    raw = settings.cache.dir
    try:
        path = Path(raw).expanduser()
    except RuntimeError as exc:
        raise PacgradeError(
            ErrorCode.CONFIGURATION_ERROR,
            f"Cannot resolve the user home directory for cache dir {raw!r}",
            recoverable=False,
        ) from exc
    if not path.is_absolute():
        raise PacgradeError(
            ErrorCode.CONFIGURATION_ERROR,
            f"Cache directory must be absolute, got {raw!r}",
            recoverable=False,
        )
    return path
