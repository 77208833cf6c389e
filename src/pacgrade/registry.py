"""AUR RPC client.

All names are sent in a single ``/rpc/v5/info`` request as repeated
``arg[]`` parameters. No pagination is applied: the request shape is one call
per run however many names are pending.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlencode

import httpx
import structlog
from pydantic import ValidationError

from pacgrade.errors import ErrorCode, PacgradeError
from pacgrade.models.registry import RegistryResponse

if TYPE_CHECKING:
    from collections.abc import Collection

    from pacgrade.models.package import PackageRecord

log = structlog.get_logger()

INFO_PATH = "/rpc/v5/info"


def build_info_url(base: str, names: Collection[str]) -> str:
    query = urlencode([("arg[]", name) for name in names])
    return f"{base.rstrip('/')}{INFO_PATH}?{query}"


class RegistryClient:
    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url

    async def info(self, names: Collection[str]) -> dict[str, PackageRecord]:
        """Query the registry for ``names``.

        Returns records keyed by name, restricted to names that were asked
        for. Results for names nobody asked for are logged and dropped.

        Raises ``PacgradeError`` with ``TRANSPORT_ERROR``, ``PARSE_ERROR`` or
        ``REGISTRY_ERROR``.
        """
        url = build_info_url(self._base_url, names)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise PacgradeError(
                ErrorCode.TRANSPORT_ERROR, f"Registry request failed: {exc}"
            ) from exc
        if response.status_code != 200:
            raise PacgradeError(
                ErrorCode.TRANSPORT_ERROR,
                f"Registry returned HTTP {response.status_code}",
            )

        try:
            payload = RegistryResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise PacgradeError(
                ErrorCode.PARSE_ERROR, f"Malformed registry response: {exc}"
            ) from exc
        if payload.type == "error":
            raise PacgradeError(
                ErrorCode.REGISTRY_ERROR, f"Registry rejected the query: {payload.error}"
            )

        pending = set(names)
        records: dict[str, PackageRecord] = {}
        for result in payload.results:
            if result.name not in pending:
                log.info("registry_result_unmatched", name=result.name)
                continue
            records[result.name] = result.to_record()

        log.debug(
            "registry_info_complete",
            requested=len(pending),
            resultcount=payload.resultcount,
            matched=len(records),
        )
        return records
