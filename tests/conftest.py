from __future__ import annotations

from typing import AsyncIterator, Awaitable, Callable, Iterator

import httpx
import pytest
import pytest_asyncio
import respx

from repo_browser.domain.value_objects import RepoRef
from repo_browser.infrastructure.access_layer import ApiAccessLayer
from repo_browser.infrastructure.config import Settings

API = "https://api.github.com"
TOKEN = "ghp_test_token_value"

Handler = Callable[[httpx.Request], httpx.Response | Awaitable[httpx.Response]]


def rate_headers(limit: int = 5000, remaining: int = 4999, reset: int = 1700000000) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset),
    }


@pytest.fixture
def repo() -> RepoRef:
    return RepoRef(owner="octo", name="hello")


@pytest.fixture
def settings() -> Settings:
    return Settings(github_token=TOKEN, _env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def make_access() -> Callable[..., ApiAccessLayer]:
    """Build an ApiAccessLayer whose network is an in-process handler."""

    def _make(handler: Handler, **kwargs) -> ApiAccessLayer:
        return ApiAccessLayer(TOKEN, transport=httpx.MockTransport(handler), **kwargs)

    return _make


@pytest.fixture
def github() -> Iterator[respx.MockRouter]:
    """respx router for api.github.com; unmatched requests fail the test."""
    with respx.mock(base_url=API, assert_all_called=False) as router:
        yield router


@pytest_asyncio.fixture
async def access() -> AsyncIterator[ApiAccessLayer]:
    """ApiAccessLayer on the real httpx transport (intercepted by ``github``)."""
    async with ApiAccessLayer(TOKEN) as layer:
        yield layer
