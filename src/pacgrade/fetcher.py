"""Conditional download of repository index files.

For every repository the fetcher issues a HEAD probe against the primary
mirror, compares the remote ``Last-Modified`` with the cached file's mtime and
only downloads the body when the remote copy is newer. A missing or
unparsable ``Last-Modified`` always forces a download.

Every failure is contained to its repository. A transport failure is reported
as ``FetchOutcome.FAILED`` and whatever is already cached stays usable. A
failed cache write is reported as ``FetchOutcome.STORAGE_FAILED``: the cached
copy is then known to be stale and must not be read this run.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from enum import StrEnum
from typing import TYPE_CHECKING

import httpx
import structlog

from pacgrade.errors import ErrorCode, PacgradeError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pacgrade.cache import IndexCache
    from pacgrade.config import FetcherSettings
    from pacgrade.models.package import RepositoryDescriptor

log = structlog.get_logger()


class FetchOutcome(StrEnum):
    NO_SERVERS = "no_servers"
    UP_TO_DATE = "up_to_date"
    DOWNLOADED = "downloaded"
    FAILED = "failed"
    STORAGE_FAILED = "storage_failed"


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    timeout = settings.timeout_seconds if settings is not None else 30.0
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": "pacgrade"},
    )


def index_url(server: str, repository_name: str) -> str:
    if not server.endswith("/"):
        server += "/"
    return f"{server}{repository_name}.db"


def parse_last_modified(value: str | None) -> datetime | None:
    """Parse an HTTP ``Last-Modified`` value as UTC. Returns None if unusable."""
    if not value or not value.strip().endswith(" GMT"):
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return parsed.astimezone(UTC)


class IndexFetcher:
    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: IndexCache,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._client = client
        self._cache = cache
        self._timeout = timeout_seconds

    async def refresh_all(
        self, repositories: Iterable[RepositoryDescriptor]
    ) -> dict[str, FetchOutcome]:
        """Refresh every repository concurrently.

        Returns only once every repository has finished, failed or timed out.
        Keys follow the input order.
        """
        repos = list(repositories)
        outcomes = await asyncio.gather(*(self._refresh_bounded(repo) for repo in repos))
        return {repo.name: outcome for repo, outcome in zip(repos, outcomes, strict=True)}

    async def _refresh_bounded(self, repo: RepositoryDescriptor) -> FetchOutcome:
        try:
            async with asyncio.timeout(self._timeout):
                return await self.refresh(repo)
        except TimeoutError:
            log.warning("index_fetch_timeout", repository=repo.name, timeout=self._timeout)
            return FetchOutcome.FAILED

    async def refresh(self, repo: RepositoryDescriptor) -> FetchOutcome:
        server = repo.primary_server
        if server is None:
            log.warning("repository_has_no_servers", repository=repo.name)
            return FetchOutcome.NO_SERVERS

        url = index_url(server, repo.name)
        try:
            remote = await self._probe(url)
            local = self._cache.entry(repo.name).local_timestamp
            if remote is not None and local is not None and remote <= local:
                log.info("index_up_to_date", repository=repo.name, remote=remote.isoformat())
                return FetchOutcome.UP_TO_DATE

            content = await self._download(url)
            self._cache.write(repo.name, content)
        except PacgradeError as exc:
            log.warning(
                "index_fetch_failed",
                repository=repo.name,
                url=url,
                code=exc.code,
                reason=exc.message,
                cached=self._cache.has(repo.name),
            )
            if exc.code == ErrorCode.STORAGE_ERROR:
                return FetchOutcome.STORAGE_FAILED
            return FetchOutcome.FAILED

        log.info("index_downloaded", repository=repo.name, size=len(content))
        return FetchOutcome.DOWNLOADED

    async def _probe(self, url: str) -> datetime | None:
        """HEAD the index. Returns None when Last-Modified is missing or unparsable."""
        response = await self._request("HEAD", url)
        header = response.headers.get("last-modified")
        remote = parse_last_modified(header)
        if remote is None:
            log.debug("last_modified_unusable", url=url, header=header)
        return remote

    async def _download(self, url: str) -> bytes:
        response = await self._request("GET", url)
        return response.content

    async def _request(self, method: str, url: str) -> httpx.Response:
        try:
            response = await self._client.request(method, url)
        except httpx.HTTPError as exc:
            raise PacgradeError(
                ErrorCode.TRANSPORT_ERROR, f"{method} {url} failed: {exc}"
            ) from exc
        if response.status_code != 200:
            raise PacgradeError(
                ErrorCode.TRANSPORT_ERROR,
                f"{method} {url} returned HTTP {response.status_code}",
            )
        return response
