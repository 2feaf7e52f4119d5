"""GitHub REST API adapter — implements the ResourceApi port."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from repo_browser.domain.entities import Issue, Page, Workflow, WorkflowJob, WorkflowRun
from repo_browser.domain.exceptions import (
    AccessDeniedError,
    ApiStatusError,
    RateLimitExceededError,
    ResourceNotFoundError,
)
from repo_browser.domain.value_objects import RepoRef
from repo_browser.infrastructure.payloads import (
    IssuePayload,
    WorkflowJobListPayload,
    WorkflowListPayload,
    WorkflowRunListPayload,
)

logger = logging.getLogger(__name__)

_REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


def raise_for_github_status(resp: httpx.Response) -> None:
    """Translate a non-2xx GitHub response into a domain exception."""
    if resp.is_success:
        return

    target = f"{resp.request.method} {resp.request.url.path}"

    if resp.status_code == 404:
        raise ResourceNotFoundError(404, f"Not Found (404): {target}")

    if resp.status_code == 403:
        remaining = resp.headers.get("x-ratelimit-remaining", "")
        if remaining == "0":
            reset_raw = resp.headers.get("x-ratelimit-reset", "")
            try:
                reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
                    "%Y-%m-%d %H:%M:%S UTC"
                )
            except (ValueError, OSError):
                reset_str = reset_raw or "unknown"
            raise RateLimitExceededError(
                403, f"GitHub API rate limit exceeded. Resets at {reset_str}."
            )
        raise AccessDeniedError(
            403, f"Access denied (403): {target}. Check your token's permissions."
        )

    if resp.status_code == 429:
        raise RateLimitExceededError(429, "GitHub API rate limit exceeded (HTTP 429).")

    raise ApiStatusError(
        resp.status_code, f"GitHub API returned HTTP {resp.status_code} for {target}"
    )


def next_page_number(resp: httpx.Response) -> int | None:
    """Page number of the ``rel="next"`` Link, or ``None`` on the last page."""
    link = resp.links.get("next")
    if not link or "url" not in link:
        return None
    page = httpx.URL(link["url"]).params.get("page")
    try:
        return int(page) if page is not None else None
    except ValueError:
        return None


class GitHubRestAdapter:
    """Concrete ResourceApi backed by the GitHub v3 REST API.

    *client* must already carry the base URL, the authorization header and
    the rate-limiting transport; this class only shapes requests and
    responses.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    # ── Actions ─────────────────────────────────────────────────────────

    async def list_workflow_runs(
        self,
        repo: RepoRef,
        *,
        status: str | None = None,
        workflow_id: int | None = None,
        page: int | None = None,
        per_page: int = 30,
    ) -> Page[WorkflowRun]:
        """GET /repos/{owner}/{repo}/actions[/workflows/{id}]/runs → Page[WorkflowRun]."""
        if workflow_id:
            endpoint = f"/repos/{repo.owner}/{repo.name}/actions/workflows/{workflow_id}/runs"
        else:
            endpoint = f"/repos/{repo.owner}/{repo.name}/actions/runs"

        params: dict[str, Any] = {"per_page": per_page}
        if status:
            params["status"] = status
        if page:
            params["page"] = page

        resp = await self._api_get(endpoint, params=params)
        payload = WorkflowRunListPayload.model_validate(resp.json())
        return Page(
            items=[run.to_entity() for run in payload.workflow_runs],
            next_page=next_page_number(resp),
        )

    async def list_workflows(self, repo: RepoRef) -> list[Workflow]:
        """GET /repos/{owner}/{repo}/actions/workflows, following every page."""
        endpoint = f"/repos/{repo.owner}/{repo.name}/actions/workflows"
        workflows: list[Workflow] = []
        page: int | None = 1
        while page is not None:
            resp = await self._api_get(endpoint, params={"per_page": 100, "page": page})
            payload = WorkflowListPayload.model_validate(resp.json())
            workflows.extend(w.to_entity() for w in payload.workflows)
            page = next_page_number(resp)
        return workflows

    async def list_workflow_jobs(self, repo: RepoRef, run_id: int) -> list[WorkflowJob]:
        """GET /repos/{owner}/{repo}/actions/runs/{run_id}/jobs → [WorkflowJob]."""
        resp = await self._api_get(
            f"/repos/{repo.owner}/{repo.name}/actions/runs/{run_id}/jobs",
            params={"per_page": 100},
        )
        payload = WorkflowJobListPayload.model_validate(resp.json())
        return [job.to_entity() for job in payload.jobs]

    async def get_job_log_url(self, repo: RepoRef, job_id: int) -> str:
        """GET /repos/{owner}/{repo}/actions/jobs/{job_id}/logs → redirect target."""
        resp = await self._client.get(
            f"/repos/{repo.owner}/{repo.name}/actions/jobs/{job_id}/logs",
            follow_redirects=False,
        )
        if resp.status_code in _REDIRECT_STATUSES and "location" in resp.headers:
            return resp.headers["location"]
        raise_for_github_status(resp)
        raise ApiStatusError(
            resp.status_code,
            f"expected a redirect to the log for job {job_id}, got HTTP {resp.status_code}",
        )

    # ── Issues ──────────────────────────────────────────────────────────

    async def list_issues(
        self,
        repo: RepoRef,
        *,
        state: str = "open",
        page: int | None = None,
        per_page: int = 30,
    ) -> Page[Issue]:
        """GET /repos/{owner}/{repo}/issues → Page[Issue] (includes pull requests)."""
        params: dict[str, Any] = {"state": state, "per_page": per_page}
        if page:
            params["page"] = page
        resp = await self._api_get(f"/repos/{repo.owner}/{repo.name}/issues", params=params)
        return Page(
            items=[IssuePayload.model_validate(item).to_entity() for item in resp.json()],
            next_page=next_page_number(resp),
        )

    # ── Internals ───────────────────────────────────────────────────────

    async def _api_get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Perform a GitHub API GET request with error translation."""
        resp = await self._client.get(endpoint, params=params)
        raise_for_github_status(resp)
        return resp
