"""API access layer — owns every object that mediates outbound calls.

One :class:`ApiAccessLayer` is created per process (or per test) and passed
to whatever needs GitHub.  It holds the quota tracker, the two token buckets,
the concurrency gate, the rate-limiting transport and the two HTTP clients:

* ``api_client`` — REST and GraphQL calls, routed through the middleware;
* ``download_client`` — log blob downloads, sharing the underlying transport
  but bypassing the middleware.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

import httpx

from repo_browser.domain.entities import (
    Connection,
    CredentialScopes,
    Issue,
    LogPayload,
    Page,
    QuotaSnapshot,
    WorkflowRun,
)
from repo_browser.domain.value_objects import RepoRef
from repo_browser.infrastructure.concurrency_gate import ConcurrencyGate
from repo_browser.infrastructure.config import Settings
from repo_browser.infrastructure.credential_validator import validate_credential
from repo_browser.infrastructure.github_graphql_adapter import GitHubGraphQLAdapter
from repo_browser.infrastructure.github_rest_adapter import GitHubRestAdapter
from repo_browser.infrastructure.log_retriever import MAX_LOG_BYTES, LogRetriever
from repo_browser.infrastructure.quota_tracker import QuotaTracker
from repo_browser.infrastructure.rate_limit_transport import (
    BURST,
    GRAPHQL_POINTS_PER_HOUR,
    MAX_CONCURRENT_REQUESTS,
    REST_REQUESTS_PER_HOUR,
    RateLimitTransport,
)
from repo_browser.infrastructure.token_bucket import TokenBucket

logger = logging.getLogger(__name__)

USER_AGENT = "repo-browser/1.0"


class ApiAccessLayer:
    """Rate-limited, concurrency-bounded gateway to the GitHub APIs.

    Parameters
    ----------
    token:
        Bearer credential; only ever sent as the ``Authorization`` header.
    base_url:
        API root, ``https://api.github.com`` for github.com.
    transport:
        Underlying network transport.  Defaults to a fresh
        ``httpx.AsyncHTTPTransport``; tests inject ``httpx.MockTransport``.
    timeout:
        Per-request ``httpx`` timeout in seconds.
    max_log_bytes:
        Cap for job log downloads.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.github.com",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
        max_concurrent: int = MAX_CONCURRENT_REQUESTS,
        max_log_bytes: int = MAX_LOG_BYTES,
    ) -> None:
        self.quota = QuotaTracker()
        self.gate = ConcurrencyGate(max_concurrent)
        self.rest_bucket = TokenBucket(REST_REQUESTS_PER_HOUR / 3600, BURST)
        self.graphql_bucket = TokenBucket(GRAPHQL_POINTS_PER_HOUR / 3600, BURST)

        self._transport = transport or httpx.AsyncHTTPTransport()
        self.middleware = RateLimitTransport(
            self._transport,
            gate=self.gate,
            rest_bucket=self.rest_bucket,
            graphql_bucket=self.graphql_bucket,
            quota=self.quota,
        )

        self.api_client = httpx.AsyncClient(
            base_url=base_url,
            transport=self.middleware,
            timeout=httpx.Timeout(timeout),
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "User-Agent": USER_AGENT,
            },
        )
        # No Authorization header: the redirect target is a pre-signed URL.
        self.download_client = httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

        self.rest = GitHubRestAdapter(self.api_client)
        self.graphql = GitHubGraphQLAdapter(self.api_client)
        self.logs = LogRetriever(self.rest, self.download_client, max_bytes=max_log_bytes)

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> ApiAccessLayer:
        return cls(
            settings.github_token.get_secret_value(),
            base_url=settings.github_api_url,
            transport=transport,
            timeout=settings.request_timeout,
        )

    # ── Inbound operations ──────────────────────────────────────────────

    async def list_resource_items(
        self,
        repo: RepoRef,
        filters: dict[str, Any] | None = None,
        page: int | None = None,
    ) -> Page[WorkflowRun]:
        """One page of workflow runs; ``filters`` may hold ``status`` / ``workflow_id``."""
        filters = filters or {}
        return await self.rest.list_workflow_runs(
            repo,
            status=filters.get("status"),
            workflow_id=filters.get("workflow_id"),
            page=page,
            per_page=filters.get("per_page", 30),
        )

    async def list_query_items(self, variables: dict[str, Any]) -> Connection[Issue]:
        """One page of an issue/pull-request search."""
        return await self.graphql.search_issues(variables)

    async def fetch_log(
        self, repo: RepoRef, job_id: int, timeout: float | None = None
    ) -> LogPayload:
        return await self.logs.fetch(repo, job_id, timeout=timeout)

    async def validate_credential(self) -> CredentialScopes:
        return await validate_credential(self.api_client)

    def current_quota_snapshot(self) -> QuotaSnapshot:
        return self.quota.snapshot()

    # ── Lifecycle ───────────────────────────────────────────────────────

    async def aclose(self) -> None:
        """Close both clients and the transport they share."""
        await self.download_client.aclose()
        await self.api_client.aclose()

    async def __aenter__(self) -> ApiAccessLayer:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
