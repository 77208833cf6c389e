"""Repository discovery from pacman.conf.

Every section other than ``[options]`` is a repository, kept in file order.
``Server`` lines and the ``Server`` lines of ``Include``d mirrorlists
contribute mirrors in the order they appear; ``$repo`` and ``$arch`` are
substituted. Repository order matters: when two repositories ship the same
package name, the one listed first wins.
"""

from __future__ import annotations

import glob
import platform
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from pacgrade.errors import ErrorCode, PacgradeError
from pacgrade.models.package import RepositoryDescriptor

if TYPE_CHECKING:
    from pacgrade.config import MirrorSettings

log = structlog.get_logger()


def _read_lines(path: Path) -> list[tuple[str, str | None]]:
    """Return ``(key, value)`` pairs, with ``[section]`` headers as ``(name, None)``."""
    items: list[tuple[str, str | None]] = []
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        if line.startswith("[") and line.endswith("]"):
            items.append((f"[{line[1:-1].strip()}]", None))
            continue
        key, sep, value = line.partition("=")
        items.append((key.strip(), value.strip() if sep else ""))
    return items


def _include_servers(pattern: str) -> list[str]:
    servers: list[str] = []
    for included in sorted(glob.glob(pattern)) or [pattern]:
        try:
            items = _read_lines(Path(included))
        except OSError:
            log.warning("mirrorlist_unreadable", path=included, exc_info=True)
            continue
        servers.extend(value for key, value in items if key == "Server" and value)
    return servers


def _resolve_arch(configured: str) -> str:
    if configured in ("", "auto"):
        return platform.machine()
    return configured


def parse_pacman_conf(path: Path, architecture: str = "auto") -> list[RepositoryDescriptor]:
    try:
        items = _read_lines(path)
    except OSError as exc:
        raise PacgradeError(
            ErrorCode.CONFIGURATION_ERROR,
            f"Cannot read pacman configuration {path}: {exc}",
            recoverable=False,
        ) from exc

    arch = architecture
    repos: dict[str, list[str]] = {}
    section: str | None = None
    for key, value in items:
        if value is None:
            section = key[1:-1]
            if section != "options":
                repos.setdefault(section, [])
            continue
        if section == "options":
            # pacman allows several architectures here; the first one is the native one
            if key == "Architecture" and architecture == "auto" and value:
                arch = value.split()[0]
            continue
        if section is None:
            continue
        if key == "Server" and value:
            repos[section].append(value)
        elif key == "Include" and value:
            repos[section].extend(_include_servers(value))

    arch = _resolve_arch(arch)
    return [
        RepositoryDescriptor(
            name=name,
            servers=tuple(s.replace("$repo", name).replace("$arch", arch) for s in servers),
        )
        for name, servers in repos.items()
    ]


def load_repositories(settings: MirrorSettings) -> list[RepositoryDescriptor]:
    if settings.repositories is not None:
        return [
            RepositoryDescriptor(name=repo.name, servers=tuple(repo.servers))
            for repo in settings.repositories
        ]
    repos = parse_pacman_conf(Path(settings.pacman_conf), settings.architecture)
    log.debug("repositories_loaded", repositories=[repo.name for repo in repos])
    return repos
