"""Tests for the GitHub contents fetcher."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from nexus.platform.resolvers.paths import ResolverMode
from nexus.platform.sources.github_contents import GitHubContentsSource
from nexus.platform.sources.retry_helpers import (
    should_retry_on_rate_limit,
    should_retry_on_rate_limit_or_timeout,
    should_retry_on_timeout,
    wait_rate_limit_with_backoff,
)
from nexus.schemas.fetch import ContentsFile, FetchFailure, ParseError

HEADERS = {"Authorization": "token ghp_test", "Accept": "application/vnd.github.v3+json"}


def _status_error(status_code: int, headers=None) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.github.com/x")
    response = httpx.Response(status_code, headers=headers or {}, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


@pytest.mark.asyncio
async def test_get_contents_sends_auth_headers(contents_api, topic_url):
    """Test that the token and accept headers are sent."""
    url = topic_url("cabinet-app", "dbp-cabinet")
    contents_api.add_json_file(url, {"activities": []})

    async with contents_api.client() as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        outcome = await source.get_contents(url)

    assert isinstance(outcome, ContentsFile)
    assert outcome.name == "dbp-cabinet.topic.metadata.json.ejs"
    assert contents_api.headers[0]["Authorization"] == "token ghp_test"
    assert contents_api.headers[0]["Accept"] == "application/vnd.github.v3+json"


@pytest.mark.asyncio
async def test_get_contents_bad_status_is_failure(contents_api, topic_url):
    """Test that a 404 becomes a structured failure."""
    url = topic_url("missing-app", "dbp-missing")
    contents_api.add_status(url, 404)

    async with contents_api.client() as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        outcome = await source.get_contents(url)

    assert outcome == FetchFailure(
        source_url=url, error="HTTP error! status: 404", status_code=404
    )


@pytest.mark.asyncio
async def test_get_contents_transport_error_is_failure():
    """Test that connection errors become structured failures."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        outcome = await source.get_contents("https://api.github.com/repos/x/y/contents/a")

    assert isinstance(outcome, FetchFailure)
    assert outcome.error == "connection refused"
    assert outcome.status_code is None


@pytest.mark.asyncio
async def test_get_contents_non_json_body_is_failure():
    """Test that a non-JSON success body is a failure, not an exception."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        outcome = await source.get_contents("https://api.github.com/repos/x/y/contents/a")

    assert isinstance(outcome, FetchFailure)
    assert outcome.status_code == 200


@pytest.mark.asyncio
async def test_fetch_batch_continues_after_failed_source(contents_api, topic_url, repo_base):
    """Test that source #2 failing leaves sources #1 and #3 intact."""
    first = topic_url("cabinet-app", "dbp-cabinet")
    second = topic_url("missing-app", "dbp-missing")
    third = topic_url("formalize-app", "dbp-formalize")
    contents_api.add_json_file(first, {"routing_name": "cabinet", "activities": []})
    contents_api.add_status(second, 404)
    contents_api.add_json_file(third, {"routing_name": "formalize", "activities": []})

    async with contents_api.client() as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        batch = await source.fetch_batch([first, second, third], ResolverMode.TOPIC)

    assert batch.success is True
    assert [payload["routing_name"] for payload in batch.payloads] == ["cabinet", "formalize"]
    assert batch.payloads[0]["appName"] == "dbp-cabinet"
    assert batch.payloads[0]["appGitUrl"] == repo_base("cabinet-app")
    assert batch.payloads[1]["appName"] == "dbp-formalize"
    assert list(batch.failures) == [second]
    assert batch.failures[second].status_code == 404
    assert contents_api.requests == [first, second, third]


@pytest.mark.asyncio
async def test_fetch_batch_isolates_undecodable_response(contents_api, topic_url):
    """Test that a body decoding error on one URL does not abort the batch."""
    bad = topic_url("broken-app", "dbp-broken")
    good = topic_url("cabinet-app", "dbp-cabinet")
    contents_api.add_json_file(good, {"routing_name": "cabinet", "activities": []})

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == bad:
            raise httpx.DecodingError("corrupt gzip", request=request)
        return contents_api.handler(request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        batch = await source.fetch_batch([bad, good], ResolverMode.TOPIC)

    assert list(batch.failures) == [bad]
    assert batch.failures[bad].error == "corrupt gzip"
    assert batch.failures[bad].status_code is None
    assert [payload["routing_name"] for payload in batch.payloads] == ["cabinet"]


@pytest.mark.asyncio
async def test_get_contents_follows_repository_redirect(contents_api, topic_url, repo_base):
    """Test that a renamed repository's 301 is followed to the new location."""
    old = topic_url("old-app", "dbp-renamed")
    new = topic_url("new-app", "dbp-renamed")
    contents_api.add_redirect(old, new)
    contents_api.add_json_file(new, {"routing_name": "renamed", "activities": []})

    async with contents_api.client() as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        batch = await source.fetch_batch([old], ResolverMode.TOPIC)

    assert batch.failures == {}
    assert batch.payloads[0]["routing_name"] == "renamed"
    assert batch.payloads[0]["appGitUrl"] == repo_base("new-app")
    assert contents_api.requests == [old, new]


@pytest.mark.asyncio
async def test_fetch_batch_keeps_parse_errors_in_order(contents_api, topic_url):
    """Test that unparseable payloads are recorded in place."""
    good = topic_url("cabinet-app", "dbp-cabinet")
    bad = topic_url("check-app", "dbp-check")
    contents_api.add_json_file(good, {"activities": []})
    contents_api.add_file(bad, "{ this is not json")

    async with contents_api.client() as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        batch = await source.fetch_batch([bad, good], ResolverMode.TOPIC)

    assert isinstance(batch.results[0], ParseError)
    assert batch.results[0].source_url == bad
    assert isinstance(batch.results[1], dict)
    assert batch.failures == {}


@pytest.mark.asyncio
async def test_fetch_batch_skips_unsupported_encoding(contents_api, topic_url):
    """Test that a non-base64 encoding is skipped without failing the batch."""
    url = topic_url("cabinet-app", "dbp-cabinet")
    contents_api.add_file(url, json.dumps({"activities": []}), encoding="none")

    async with contents_api.client() as client:
        source = GitHubContentsSource(headers=HEADERS, client=client)
        batch = await source.fetch_batch([url], ResolverMode.TOPIC)

    assert batch.results == []
    assert batch.skipped == [url]
    assert batch.success is True


@pytest.mark.asyncio
async def test_fetch_batch_bounded_concurrency_keeps_order(contents_api, topic_url):
    """Test that parallel fetching still yields results in input order."""
    urls = [topic_url(f"app-{index}", f"dbp-app-{index}") for index in range(5)]
    for index, url in enumerate(urls):
        contents_api.add_json_file(url, {"routing_name": str(index), "activities": []})

    async with contents_api.client() as client:
        source = GitHubContentsSource(headers=HEADERS, client=client, max_concurrency=3)
        batch = await source.fetch_batch(urls, ResolverMode.TOPIC)

    assert [payload["routing_name"] for payload in batch.payloads] == ["0", "1", "2", "3", "4"]


@pytest.mark.asyncio
async def test_source_creates_and_closes_own_client():
    """Test the async context manager lifecycle."""
    source = GitHubContentsSource(headers=HEADERS, timeout_seconds=5.0)

    async with source:
        client = source.client
        assert client.timeout.read == 5.0
        assert client.headers["Authorization"] == "token ghp_test"

    assert client.is_closed
    with pytest.raises(RuntimeError):
        source.client


def test_rate_limit_predicates():
    """Test which errors are treated as rate limits."""
    assert should_retry_on_rate_limit(_status_error(429))
    assert should_retry_on_rate_limit(_status_error(403, {"X-RateLimit-Remaining": "0"}))
    assert not should_retry_on_rate_limit(_status_error(403))
    assert not should_retry_on_rate_limit(_status_error(404))
    assert not should_retry_on_rate_limit(ValueError("boom"))


def test_timeout_predicates():
    """Test which errors are treated as timeouts."""
    request = httpx.Request("GET", "https://api.github.com/x")

    assert should_retry_on_timeout(httpx.ReadTimeout("slow", request=request))
    assert should_retry_on_rate_limit_or_timeout(httpx.ConnectTimeout("slow", request=request))
    assert not should_retry_on_timeout(httpx.ConnectError("refused", request=request))


@pytest.mark.parametrize(
    "retry_after, expected",
    [("30", 30.0), ("0.2", 1.0), ("600", 120.0)],
)
def test_wait_respects_retry_after(retry_after, expected):
    """Test Retry-After handling with floor and cap."""
    retry_state = MagicMock()
    retry_state.outcome.exception.return_value = _status_error(429, {"Retry-After": retry_after})

    assert wait_rate_limit_with_backoff(retry_state) == expected
