"""Reconciliation of local packages against sync indexes and the AUR.

A package is out of date when the remote record is *both* built later and
carries a different version string. Either condition alone is noise: a
metadata-only rebuild changes ``built_at`` without a new version, and some
sources report build timestamps that do not order across sources.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

from pacgrade.errors import PacgradeError
from pacgrade.models.result import OutdatedPackage, ReconciliationResult

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping

    from pacgrade.models.package import PackageRecord

log = structlog.get_logger()


class PackageRegistry(Protocol):
    async def info(self, names: Collection[str]) -> dict[str, PackageRecord]: ...


def is_outdated(local: PackageRecord, remote: PackageRecord) -> bool:
    return remote.built_at > local.built_at and remote.version != local.version


def merge_sync_indexes(indexes: Iterable[Mapping[str, PackageRecord]]) -> dict[str, PackageRecord]:
    """Merge per-repository indexes, earlier repositories winning on name clashes."""
    merged: dict[str, PackageRecord] = {}
    for index in indexes:
        for name, record in index.items():
            merged.setdefault(name, record)
    return merged


class Comparator:
    def __init__(self, registry: PackageRegistry | None = None) -> None:
        self._registry = registry

    async def reconcile(
        self,
        local: Mapping[str, PackageRecord],
        sync: Mapping[str, PackageRecord],
    ) -> ReconciliationResult:
        result = ReconciliationResult()
        pending: dict[str, PackageRecord] = {}

        for name, local_rec in local.items():
            remote = sync.get(name)
            if remote is None:
                pending[name] = local_rec
                continue
            self._judge(result, local_rec, remote, remote.repository or "sync")

        if pending:
            await self._resolve_pending(result, pending)

        log.info(
            "reconciliation_complete",
            outdated=result.outdated_count,
            up_to_date=result.up_to_date,
            unresolved=len(result.unresolved),
        )
        return result

    async def _resolve_pending(
        self, result: ReconciliationResult, pending: dict[str, PackageRecord]
    ) -> None:
        if self._registry is None:
            result.unresolved = list(pending)
            return

        try:
            remote = await self._registry.info(list(pending))
        except PacgradeError as exc:
            log.warning(
                "registry_resolution_failed",
                code=exc.code,
                reason=exc.message,
                pending=len(pending),
            )
            result.registry_failed = True
            result.unresolved = list(pending)
            return

        for name, local_rec in pending.items():
            remote_rec = remote.get(name)
            if remote_rec is None:
                log.debug("package_unresolved", name=name)
                result.unresolved.append(name)
                continue
            self._judge(result, local_rec, remote_rec, "aur")

    @staticmethod
    def _judge(
        result: ReconciliationResult,
        local: PackageRecord,
        remote: PackageRecord,
        source: str,
    ) -> None:
        if is_outdated(local, remote):
            log.info(
                "package_outdated",
                name=local.name,
                local_version=local.version,
                remote_version=remote.version,
                source=source,
            )
            result.details.append(
                OutdatedPackage(
                    name=local.name,
                    local_version=local.version,
                    remote_version=remote.version,
                    source=source,
                )
            )
        else:
            result.up_to_date += 1
