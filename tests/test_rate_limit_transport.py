import asyncio
import random

import httpx
import pytest

from conftest import rate_headers
from repo_browser.domain.entities import ApiProtocol
from repo_browser.infrastructure.concurrency_gate import ConcurrencyGate
from repo_browser.infrastructure.quota_tracker import QuotaTracker
from repo_browser.infrastructure.rate_limit_transport import (
    MAX_CONCURRENT_REQUESTS,
    RateLimitTransport,
    classify_request,
)
from repo_browser.infrastructure.token_bucket import TokenBucket


@pytest.mark.parametrize(
    "method, path, want",
    [
        ("POST", "/graphql", ApiProtocol.GRAPHQL),
        ("post", "/graphql", ApiProtocol.GRAPHQL),
        ("GET", "/graphql", ApiProtocol.REST),
        ("PUT", "/graphql", ApiProtocol.REST),
        ("GET", "/repos/owner/name", ApiProtocol.REST),
        ("POST", "/repos/owner/name/issues", ApiProtocol.REST),
        ("POST", "/graphql/extra", ApiProtocol.REST),
        ("GET", "/user", ApiProtocol.REST),
    ],
)
def test_classify_request(method, path, want):
    assert classify_request(method, path) is want


def _transport(handler, *, capacity=MAX_CONCURRENT_REQUESTS, rate=10_000.0, burst=1_000):
    quota = QuotaTracker()
    gate = ConcurrencyGate(capacity)
    rest = TokenBucket(rate, burst)
    graphql = TokenBucket(rate, burst)
    transport = RateLimitTransport(
        httpx.MockTransport(handler),
        gate=gate,
        rest_bucket=rest,
        graphql_bucket=graphql,
        quota=quota,
    )
    return transport, quota, gate, rest, graphql


class TestHeaderTracking:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "limit, remaining, reset",
        [(5000, 4999, 1700000000), (5000, 100, 1700001000)],
    )
    async def test_rest_headers_update_quota(self, limit, remaining, reset):
        transport, quota, *_ = _transport(
            lambda request: httpx.Response(200, headers=rate_headers(limit, remaining, reset))
        )
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            await client.get("/repos/owner/name")

        got_remaining, got_limit, reset_at = quota.rest_stats()
        assert (got_remaining, got_limit) == (remaining, limit)
        assert int(reset_at.timestamp()) == reset

    @pytest.mark.asyncio
    async def test_graphql_headers_are_ignored(self):
        transport, quota, *_ = _transport(
            lambda request: httpx.Response(200, headers=rate_headers(1000, 999, 1), json={"data": {}})
        )
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            await client.post("/graphql", json={"query": "{ viewer { login } }"})

        assert quota.rest_stats() == (5000, 5000, None)
        assert quota.graphql_stats() == (5000, 5000)

    @pytest.mark.asyncio
    async def test_unrepresentable_reset_does_not_fail_the_call(self):
        transport, quota, *_ = _transport(
            lambda request: httpx.Response(200, headers=rate_headers(5000, 1, 10**13), json={})
        )
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            resp = await client.get("/repos/owner/name")

        assert resp.status_code == 200
        assert quota.rest_stats() == (5000, 5000, None)


class TestBuckets:
    @pytest.mark.asyncio
    async def test_each_protocol_draws_from_its_own_bucket(self):
        transport, _, _, rest, graphql = _transport(
            lambda request: httpx.Response(200, json={}), rate=0.001, burst=5
        )
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            await client.get("/repos/owner/name")
            await client.get("/repos/owner/name")
            await client.post("/graphql", json={})

        assert rest.tokens == pytest.approx(3, abs=0.01)
        assert graphql.tokens == pytest.approx(4, abs=0.01)

    @pytest.mark.asyncio
    async def test_empty_bucket_blocks_until_cancelled_and_releases_permit(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        transport, _, gate, rest, _ = _transport(handler, rate=0.001, burst=1)
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            await client.get("/a")
            task = asyncio.create_task(client.get("/b"))
            await asyncio.sleep(0.02)
            assert not task.done()
            assert gate.in_use == 1

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert len(calls) == 1
        assert gate.in_use == 0


class TestFailurePropagation:
    @pytest.mark.asyncio
    async def test_transport_error_is_propagated_and_permit_released(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport, quota, gate, *_ = _transport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            with pytest.raises(httpx.ConnectError):
                await client.get("/repos/owner/name")

        assert gate.in_use == 0
        assert quota.rest_stats() == (5000, 5000, None)

    @pytest.mark.asyncio
    async def test_no_retry_on_error_status(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        transport, *_ = _transport(handler)
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            resp = await client.get("/repos/owner/name")

        assert resp.status_code == 500
        assert len(calls) == 1


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_default_gate_caps_in_flight_requests(self):
        total = MAX_CONCURRENT_REQUESTS + 30
        in_flight = 0
        max_in_flight = 0

        async def handler(request):
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(0.05)
            in_flight -= 1
            return httpx.Response(200)

        transport, _, gate, *_ = _transport(handler, burst=total + 10)
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            await asyncio.gather(*(client.get("/repos/test/test") for _ in range(total)))

        assert max_in_flight <= MAX_CONCURRENT_REQUESTS
        assert max_in_flight == MAX_CONCURRENT_REQUESTS
        assert gate.in_use == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(5))
    async def test_gate_holds_under_randomized_load(self, seed):
        rng = random.Random(seed)
        capacity = rng.randint(2, 8)
        total = capacity * rng.randint(3, 6)
        in_flight = 0
        max_in_flight = 0

        async def handler(request):
            nonlocal in_flight, max_in_flight
            in_flight += 1
            max_in_flight = max(max_in_flight, in_flight)
            await asyncio.sleep(rng.uniform(0, 0.01))
            in_flight -= 1
            if rng.random() < 0.2:
                raise httpx.ReadError("reset", request=request)
            return httpx.Response(200)

        transport, _, gate, *_ = _transport(handler, capacity=capacity, burst=total)

        async def call(client, i):
            method = "POST" if i % 3 == 0 else "GET"
            path = "/graphql" if method == "POST" else f"/repos/o/r/{i}"
            try:
                await client.request(method, path)
            except httpx.ReadError:
                pass

        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            await asyncio.gather(*(call(client, i) for i in range(total)))

        assert max_in_flight <= capacity
        assert gate.in_use == 0


class _SlowBody(httpx.AsyncByteStream):
    """Streamed body that records how many bodies are being read at once."""

    active = 0
    peak = 0

    async def __aiter__(self):
        cls = type(self)
        cls.active += 1
        cls.peak = max(cls.peak, cls.active)
        try:
            for _ in range(3):
                await asyncio.sleep(0.01)
                yield b"chunk"
        finally:
            cls.active -= 1


class TestStreamedBodies:
    @pytest.fixture(autouse=True)
    def _reset_counters(self):
        _SlowBody.active = 0
        _SlowBody.peak = 0

    @pytest.mark.asyncio
    async def test_gate_covers_body_reads(self):
        transport, _, gate, *_ = _transport(
            lambda request: httpx.Response(200, stream=_SlowBody()), capacity=2, burst=20
        )
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            responses = await asyncio.gather(*(client.get("/repos/o/r") for _ in range(10)))

        assert all(r.content == b"chunk" * 3 for r in responses)
        assert _SlowBody.peak <= 2
        assert _SlowBody.peak == 2
        assert gate.in_use == 0

    @pytest.mark.asyncio
    async def test_streamed_response_holds_permit_until_closed(self):
        transport, _, gate, *_ = _transport(lambda request: httpx.Response(200, stream=_SlowBody()))
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            async with client.stream("GET", "/repos/o/r") as resp:
                assert gate.in_use == 1
                await resp.aread()
            assert gate.in_use == 0

    @pytest.mark.asyncio
    async def test_cancelled_body_read_releases_permit(self):
        transport, _, gate, *_ = _transport(lambda request: httpx.Response(200, stream=_SlowBody()))
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            task = asyncio.create_task(client.get("/repos/o/r"))
            await asyncio.sleep(0.015)
            assert gate.in_use == 1

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert gate.in_use == 0

    @pytest.mark.asyncio
    async def test_in_memory_body_releases_permit_immediately(self):
        transport, _, gate, *_ = _transport(lambda request: httpx.Response(200, json={"ok": True}))
        async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as client:
            async with client.stream("GET", "/repos/o/r"):
                assert gate.in_use == 0
