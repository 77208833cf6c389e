"""Error codes and the single exception type raised inside pacgrade.

Only ``CONFIGURATION_ERROR`` and ``LOCAL_DB_UNAVAILABLE`` are fatal. Every
other code is raised with ``recoverable=True`` and is caught at the smallest
affected unit (one repository, one registry batch) by the caller.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    LOCAL_DB_UNAVAILABLE = "LOCAL_DB_UNAVAILABLE"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    REGISTRY_ERROR = "REGISTRY_ERROR"


class PacgradeError(Exception):
    def __init__(self, code: ErrorCode, message: str, recoverable: bool = True) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def __str__(self) -> str:
        return self.message
