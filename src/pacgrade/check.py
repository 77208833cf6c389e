"""One full freshness check, from cache preparation to the reconciled result.

Fatal problems (configuration, unreadable local store) raise
``PacgradeError`` with ``recoverable=False``. Everything else is logged and
the run continues with whatever data is available.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from pacgrade.cache import IndexCache
from pacgrade.config import resolve_cache_dir
from pacgrade.errors import PacgradeError
from pacgrade.fetcher import FetchOutcome, IndexFetcher, build_http_client
from pacgrade.mirrors import load_repositories
from pacgrade.pkgdb import load_local_packages, load_sync_index
from pacgrade.reconcile import Comparator, merge_sync_indexes
from pacgrade.registry import RegistryClient

if TYPE_CHECKING:
    from collections.abc import Mapping

    import httpx

    from pacgrade.config import Settings
    from pacgrade.models.package import PackageRecord, RepositoryDescriptor
    from pacgrade.models.result import ReconciliationResult

log = structlog.get_logger()


def load_sync_indexes(
    cache: IndexCache,
    repositories: list[RepositoryDescriptor],
    outcomes: Mapping[str, FetchOutcome] | None = None,
) -> list[dict[str, PackageRecord]]:
    """Load every cached sync index, in repository order, skipping broken ones.

    A repository whose fresh index could not be stored is skipped as well: its
    cached copy is older than what the mirror serves.
    """
    outcomes = outcomes or {}
    indexes: list[dict[str, PackageRecord]] = []
    for repo in repositories:
        if outcomes.get(repo.name) == FetchOutcome.STORAGE_FAILED:
            log.warning("sync_index_stale", repository=repo.name)
            continue
        if not cache.has(repo.name):
            log.warning("sync_index_missing", repository=repo.name)
            continue
        try:
            index = load_sync_index(cache.path_for(repo.name), repo.name)
        except PacgradeError as exc:
            log.warning("sync_index_unusable", repository=repo.name, reason=exc.message)
            continue
        log.debug("sync_index_loaded", repository=repo.name, packages=len(index))
        indexes.append(index)
    return indexes


async def run_check(
    settings: Settings, client: httpx.AsyncClient | None = None
) -> ReconciliationResult:
    cache = IndexCache(resolve_cache_dir(settings) / "db")
    cache.ensure_layout(Path(settings.local_db.path))
    repositories = load_repositories(settings.mirrors)

    if client is None:
        async with build_http_client(settings.fetcher) as owned:
            return await _run(settings, cache, repositories, owned)
    return await _run(settings, cache, repositories, client)


async def _run(
    settings: Settings,
    cache: IndexCache,
    repositories: list[RepositoryDescriptor],
    client: httpx.AsyncClient,
) -> ReconciliationResult:
    fetcher = IndexFetcher(client, cache, settings.fetcher.timeout_seconds)
    outcomes = await fetcher.refresh_all(repositories)
    log.debug("index_refresh_complete", outcomes={k: str(v) for k, v in outcomes.items()})

    local = load_local_packages(cache.local_path)
    log.info("local_packages_loaded", packages=len(local))
    sync = merge_sync_indexes(load_sync_indexes(cache, repositories, outcomes))

    registry = (
        RegistryClient(client, settings.registry.url) if settings.registry.enabled else None
    )
    return await Comparator(registry).reconcile(local, sync)
