from __future__ import annotations

from pacgrade.models.cache import CacheEntry
from pacgrade.models.package import PackageRecord, RepositoryDescriptor
from pacgrade.models.registry import RegistryResponse, RegistryResult
from pacgrade.models.result import OutdatedPackage, ReconciliationResult

__all__ = [
    # packages
    "PackageRecord",
    "RepositoryDescriptor",
    # cache
    "CacheEntry",
    # registry
    "RegistryResult",
    "RegistryResponse",
    # results
    "OutdatedPackage",
    "ReconciliationResult",
]
