"""GitHub contents API fetcher.

Fetches metadata files through the contents API, which returns the file as
base64 text inside a JSON envelope. Every URL is isolated: bad statuses and
transport errors become ``FetchFailure`` values and the batch moves on.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import httpx
from tenacity import AsyncRetrying, stop_after_attempt

from nexus.core.logging import ContextualLogger
from nexus.core.logging import logger as default_logger
from nexus.platform.decoding import decode_contents_file
from nexus.platform.resolvers.paths import ResolverMode
from nexus.platform.sources.retry_helpers import (
    retry_if_rate_limit_or_timeout,
    wait_rate_limit_with_backoff,
)
from nexus.platform.utils.filename_utils import iso_timestamp
from nexus.schemas.fetch import ContentsFile, FetchBatch, FetchFailure, FetchOutcome, ParseError


class GitHubContentsSource:
    """Reads metadata files from the GitHub contents API.

    The wrapped ``httpx.AsyncClient`` is owned by the caller when passed in;
    otherwise one is created on ``__aenter__`` with the configured headers
    and timeout.
    """

    def __init__(
        self,
        headers: Dict[str, str],
        timeout_seconds: float = 5.0,
        retry_attempts: int = 1,
        max_concurrency: int = 1,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the source.

        Args:
            headers: Request headers including the Authorization token
            timeout_seconds: Per-request timeout
            retry_attempts: Attempts per URL (1 = no retries)
            max_concurrency: Maximum number of fetches in flight
            client: Optional pre-built HTTP client
            logger: Optional contextual logger
        """
        self.headers = headers
        self.timeout_seconds = timeout_seconds
        self.retry_attempts = retry_attempts
        self.max_concurrency = max_concurrency
        self._client = client
        self._owns_client = client is None
        self.logger = logger or default_logger.with_context(component="github_contents")

    async def __aenter__(self) -> "GitHubContentsSource":
        """Create the HTTP client if none was supplied."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout_seconds),
                follow_redirects=True,
            )
            self._owns_client = True
        return self

    async def __aexit__(self, *args) -> None:
        """Close the HTTP client if this source created it."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if owned."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """The active HTTP client."""
        if self._client is None:
            raise RuntimeError("GitHubContentsSource must be used as an async context manager")
        return self._client

    async def _get(self, url: str) -> httpx.Response:
        """GET with the configured retry policy; raises for non-2xx statuses."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            retry=retry_if_rate_limit_or_timeout,
            wait=wait_rate_limit_with_backoff,
            reraise=True,
        ):
            with attempt:
                response = await self.client.get(
                    url, headers=self.headers, timeout=self.timeout_seconds, follow_redirects=True
                )
                response.raise_for_status()
        return response

    async def get_contents(self, url: str) -> FetchOutcome:
        """Fetch one contents API file descriptor.

        Args:
            url: Contents API URL

        Returns:
            ContentsFile on success, FetchFailure on a bad status or any request error
        """
        log = self.logger.with_context(url=url)
        try:
            response = await self._get(url)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            log.warning(f"HTTP error! status: {status_code}")
            return FetchFailure(
                source_url=url,
                error=f"HTTP error! status: {status_code}",
                status_code=status_code,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            message = str(e) or e.__class__.__name__
            log.warning(f"Request error: {message}")
            return FetchFailure(source_url=url, error=message)

        try:
            data = response.json()
        except ValueError as e:
            log.warning(f"Response body is not JSON: {e}")
            return FetchFailure(
                source_url=url,
                error=f"Invalid JSON response: {e}",
                status_code=response.status_code,
            )
        if not isinstance(data, dict):
            return FetchFailure(
                source_url=url,
                error="Unexpected response shape: expected a file descriptor object",
                status_code=response.status_code,
            )
        return ContentsFile.from_response(url, data)

    async def fetch_batch(self, urls: Sequence[str], mode: ResolverMode) -> FetchBatch:
        """Fetch, decode and tag a list of metadata files.

        Results keep the order of ``urls`` regardless of completion order.

        Args:
            urls: Contents API URLs
            mode: Topic or per-activity metadata

        Returns:
            FetchBatch with payloads, parse errors, failures and skipped URLs
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(url: str) -> FetchOutcome:
            async with semaphore:
                return await self.get_contents(url)

        outcomes: List[FetchOutcome] = await asyncio.gather(*(_bounded(url) for url in urls))

        batch = FetchBatch(timestamp=iso_timestamp(datetime.now(timezone.utc)))
        for url, outcome in zip(urls, outcomes):
            if isinstance(outcome, FetchFailure):
                batch.failures[url] = outcome
                continue

            result = decode_contents_file(outcome, mode)
            if result is None:
                self.logger.with_context(url=url, encoding=outcome.encoding).warning(
                    "Unsupported content encoding, skipping"
                )
                batch.skipped.append(url)
                continue
            if isinstance(result, ParseError):
                self.logger.with_context(url=url).warning(result.error)
            batch.results.append(result)
        return batch
