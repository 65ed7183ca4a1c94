"""
Test configuration and fixtures for Docs Sync.
"""

from typing import Any, Dict, List, Optional, Union
from unittest.mock import AsyncMock

import pytest

from docs_sync.core.config import Settings

API = "https://api.github.com"
RAW = "https://raw.githubusercontent.com"
LISTING_URL = f"{API}/repos/ollama/ollama/contents/docs"


class MockAsyncContextManager:
    """Mock async context manager for aiohttp responses."""

    def __init__(self, mock_response=None, error: Optional[BaseException] = None):
        self.mock_response = mock_response
        self.error = error

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self.mock_response

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None


def make_response(
    status: int = 200,
    body: Union[str, bytes] = "",
    headers: Optional[Dict[str, str]] = None,
):
    """Build a mock aiohttp response."""
    response = AsyncMock()
    response.status = status
    response.read.return_value = body.encode("utf-8") if isinstance(body, str) else body
    response.headers = headers or {}
    return response


Route = Union[tuple, BaseException]


class FakeSession:
    """Stand-in for aiohttp.ClientSession that serves canned responses by URL.

    A route is ``(status, body)``, ``(status, body, headers)`` or an exception
    to raise when the request is entered. A list of routes is consumed in order.
    """

    def __init__(self, routes: Dict[str, Union[Route, List[Route]]]):
        self.routes = routes
        self.calls: List[tuple] = []

    def get(self, url: str, headers: Optional[Dict[str, str]] = None):
        self.calls.append((url, headers))
        if url not in self.routes:
            return MockAsyncContextManager(make_response(404, '{"message": "Not Found"}'))

        route = self.routes[url]
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, BaseException):
            return MockAsyncContextManager(error=route)
        return MockAsyncContextManager(make_response(*route))

    def urls(self) -> List[str]:
        return [url for url, _ in self.calls]


def build_metadata(name: str = "intro.md", **overrides: Any) -> Dict[str, Any]:
    """GitHub contents API metadata for a file in docs/."""
    url = f"{API}/repos/ollama/ollama/contents/docs/{name}?ref=main"
    metadata = {
        "name": name,
        "path": f"docs/{name}",
        "sha": f"sha-{name}",
        "size": 120,
        "url": url,
        "html_url": f"https://github.com/ollama/ollama/blob/main/docs/{name}",
        "git_url": f"{API}/repos/ollama/ollama/git/blobs/sha-{name}",
        "download_url": f"{RAW}/ollama/ollama/main/docs/{name}",
        "type": "file",
        "content": "IyBiYXNlNjQ=\n",
        "encoding": "base64",
        "_links": {
            "self": url,
            "git": f"{API}/repos/ollama/ollama/git/blobs/sha-{name}",
            "html": f"https://github.com/ollama/ollama/blob/main/docs/{name}",
        },
    }
    metadata.update(overrides)
    return metadata


@pytest.fixture
def test_settings():
    """Settings isolated from the environment, with retries disabled."""
    return Settings(
        _env_file=None,
        max_retries=0,
        max_concurrent_requests=4,
        store_backend="memory",
    )
