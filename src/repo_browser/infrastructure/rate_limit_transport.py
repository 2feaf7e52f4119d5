"""Rate-limiting transport — the single choke point for GitHub API calls.

Every request sent through an ``httpx.AsyncClient`` built on
:class:`RateLimitTransport` is sequenced as

1. classify as REST or GraphQL (:func:`classify_request`),
2. acquire a :class:`ConcurrencyGate` permit,
3. acquire a token from that protocol's :class:`TokenBucket`,
4. hand the request to the wrapped transport,
5. for REST only, feed ``X-RateLimit-*`` headers to the :class:`QuotaTracker`,
6. release the permit once the response body is closed, or at once if
   anything before that fails.

Nothing is retried here; limiter timeouts, cancellation and transport errors
all reach the caller unchanged.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import AsyncIterator

import httpx

from repo_browser.domain.entities import ApiProtocol
from repo_browser.infrastructure.concurrency_gate import ConcurrencyGate
from repo_browser.infrastructure.quota_tracker import QuotaTracker
from repo_browser.infrastructure.token_bucket import TokenBucket

logger = logging.getLogger(__name__)

# ── Provider budgets ────────────────────────────────────────────────────────

GRAPHQL_PATH = "/graphql"

REST_REQUESTS_PER_HOUR = 5000
GRAPHQL_POINTS_PER_HOUR = 5000
BURST = 10

# GitHub rejects more than 100 concurrent requests per token.
MAX_CONCURRENT_REQUESTS = 90


def classify_request(method: str, path: str) -> ApiProtocol:
    """GraphQL iff the request is a ``POST`` to ``/graphql``; REST otherwise."""
    if method.upper() == "POST" and path.rstrip("/") == GRAPHQL_PATH:
        return ApiProtocol.GRAPHQL
    return ApiProtocol.REST


class RateLimitTransport(httpx.AsyncBaseTransport):
    """``httpx`` transport middleware enforcing concurrency and rate limits.

    Parameters
    ----------
    wrapped:
        The transport that performs real network I/O.
    gate:
        Concurrency gate shared by both protocols.
    rest_bucket / graphql_bucket:
        Independent token buckets, one per provider quota.
    quota:
        Receives REST rate-limit headers.
    acquire_timeout:
        Optional upper bound, in seconds, on waiting for a rate token.
    """

    def __init__(
        self,
        wrapped: httpx.AsyncBaseTransport,
        *,
        gate: ConcurrencyGate,
        rest_bucket: TokenBucket,
        graphql_bucket: TokenBucket,
        quota: QuotaTracker,
        acquire_timeout: float | None = None,
    ) -> None:
        self._wrapped = wrapped
        self._gate = gate
        self._buckets = {
            ApiProtocol.REST: rest_bucket,
            ApiProtocol.GRAPHQL: graphql_bucket,
        }
        self._quota = quota
        self._acquire_timeout = acquire_timeout

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        protocol = classify_request(request.method, request.url.path)

        async with AsyncExitStack() as stack:
            await stack.enter_async_context(self._gate.slot())
            await self._buckets[protocol].acquire(timeout=self._acquire_timeout)
            logger.debug("%s %s %s", protocol.value, request.method, request.url.path)
            response = await self._wrapped.handle_async_request(request)
            if protocol is ApiProtocol.REST:
                self._quota.record_rest_headers(response.headers)
            if response.is_closed:
                # Body already read in memory; nothing left on the network.
                return response
            permit = stack.pop_all()

        assert isinstance(response.stream, httpx.AsyncByteStream)
        response.stream = _PermitHoldingStream(response.stream, permit)
        return response

    async def aclose(self) -> None:
        await self._wrapped.aclose()


class _PermitHoldingStream(httpx.AsyncByteStream):
    """Response body that keeps the gate permit until the body is closed.

    ``httpx`` reads the body after the transport returns, so the call is
    only complete when the client closes the stream.
    """

    def __init__(self, stream: httpx.AsyncByteStream, permit: AsyncExitStack) -> None:
        self._stream = stream
        self._permit = permit

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._stream:
            yield chunk

    async def aclose(self) -> None:
        try:
            await self._stream.aclose()
        finally:
            await self._permit.aclose()
