"""Port: REST resource API — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from repo_browser.domain.entities import Issue, Page, Workflow, WorkflowJob, WorkflowRun
from repo_browser.domain.value_objects import RepoRef


class ResourceApi(Protocol):
    """Abstract contract for the page-numbered GitHub REST surface."""

    async def list_workflow_runs(
        self,
        repo: RepoRef,
        *,
        status: str | None = None,
        workflow_id: int | None = None,
        page: int | None = None,
        per_page: int = 30,
    ) -> Page[WorkflowRun]:
        """Return one page of workflow runs, newest first."""
        ...

    async def list_workflows(self, repo: RepoRef) -> list[Workflow]:
        """Return every workflow defined in the repository."""
        ...

    async def list_workflow_jobs(self, repo: RepoRef, run_id: int) -> list[WorkflowJob]:
        """Return the jobs of a single run."""
        ...

    async def list_issues(
        self,
        repo: RepoRef,
        *,
        state: str = "open",
        page: int | None = None,
        per_page: int = 30,
    ) -> Page[Issue]:
        """Return one page of issues and pull requests."""
        ...

    async def get_job_log_url(self, repo: RepoRef, job_id: int) -> str:
        """Return the short-lived download URL for a job's log."""
        ...
