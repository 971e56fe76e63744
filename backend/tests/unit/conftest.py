"""Unit test conftest for setting up test environment."""

import base64
import json
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

# Keep the developer's real environment out of Settings during collection
os.environ.pop("GITHUB_TOKEN", None)
os.environ.setdefault("NEXUS_LOG_LEVEL", "WARNING")

API_BASE = "https://api.github.com/repos/digital-blueprint"


def encode_contents(text: str) -> str:
    """Base64-encode like the contents API does (wrapped lines)."""
    return base64.encodebytes(text.encode("utf-8")).decode("ascii")


class FakeContentsApi:
    """In-memory stand-in for the GitHub contents API.

    Routes are keyed by full URL. Every request URL is recorded in order.
    """

    def __init__(self):
        """Initialize with no routes."""
        self.routes: Dict[str, Tuple[int, Any]] = {}
        self.requests: List[str] = []
        self.headers: List[httpx.Headers] = []
        self.redirects: Dict[str, str] = {}

    def add_file(
        self,
        url: str,
        text: str,
        name: Optional[str] = None,
        encoding: str = "base64",
    ) -> None:
        """Serve ``text`` as a contents API file descriptor at ``url``."""
        self.routes[url] = (
            200,
            {
                "name": name or url.rsplit("/", 1)[-1],
                "url": f"{url}?ref=main",
                "content": encode_contents(text) if encoding == "base64" else text,
                "encoding": encoding,
            },
        )

    def add_json_file(self, url: str, payload: Dict[str, Any], name: Optional[str] = None) -> None:
        """Serve a JSON document at ``url``."""
        self.add_file(url, json.dumps(payload), name=name)

    def add_status(self, url: str, status_code: int) -> None:
        """Answer ``url`` with an error status."""
        self.routes[url] = (status_code, {"message": "Not Found"})

    def add_redirect(self, url: str, location: str) -> None:
        """Answer ``url`` with a permanent redirect to ``location``."""
        self.redirects[url] = location

    def handler(self, request: httpx.Request) -> httpx.Response:
        """MockTransport handler."""
        url = str(request.url)
        self.requests.append(url)
        self.headers.append(request.headers)
        if url in self.redirects:
            return httpx.Response(301, headers={"Location": self.redirects[url]})
        status_code, body = self.routes.get(url, (404, {"message": "Not Found"}))
        return httpx.Response(status_code, json=body)

    def client(self) -> httpx.AsyncClient:
        """HTTP client routed through this fake."""
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def contents_api():
    """Create an empty fake contents API."""
    return FakeContentsApi()


@pytest.fixture
def topic_url():
    """Factory for topic manifest URLs of an app repository."""

    def _topic_url(repo: str, app: str, directory: str = "assets", ext: str = ".ejs") -> str:
        return f"{API_BASE}/{repo}/contents/{directory}/{app}.topic.metadata.json{ext}"

    return _topic_url


@pytest.fixture
def repo_base():
    """Factory for repository content-API base URLs."""

    def _repo_base(repo: str) -> str:
        return f"{API_BASE}/{repo}/contents/"

    return _repo_base
