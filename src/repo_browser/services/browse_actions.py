"""Browse-actions use case — the state behind the workflow runs / jobs views.

List widgets page with opaque string cursors; the REST API pages with
numbers.  This module converts between the two so a view can treat REST
and GraphQL lists the same way.
"""

from __future__ import annotations

import logging

from repo_browser.domain.entities import PageInfo, Workflow, WorkflowJob, WorkflowRun
from repo_browser.domain.ports.resource_api import ResourceApi
from repo_browser.domain.value_objects import RepoRef

logger = logging.getLogger(__name__)

# "" means no filter.
STATUS_FILTER_CYCLE: tuple[str, ...] = ("", "success", "failure", "in_progress", "queued")


def page_from_cursor(cursor: str | None) -> int | None:
    """Page number encoded in a list cursor, or ``None`` for the first page."""
    if not cursor:
        return None
    try:
        page = int(cursor)
    except ValueError:
        logger.debug("Ignoring non-numeric cursor %r", cursor)
        return None
    return page if page > 0 else None


def page_info_from_next_page(next_page: int | None) -> PageInfo:
    if next_page is None:
        return PageInfo(has_next_page=False)
    return PageInfo(has_next_page=True, end_cursor=str(next_page))


class ActionsBrowser:
    """Filter state and list loading for one repository's Actions tab."""

    def __init__(self, resource_api: ResourceApi, repo: RepoRef, page_size: int = 30) -> None:
        self._api = resource_api
        self._repo = repo
        self._page_size = page_size
        self.status_filter = ""
        self.workflow: Workflow | None = None
        self._workflows: list[Workflow] | None = None

    # ── Filters ─────────────────────────────────────────────────────────

    def cycle_status_filter(self) -> str:
        """Advance to the next status filter and return it."""
        try:
            current = STATUS_FILTER_CYCLE.index(self.status_filter)
        except ValueError:
            current = 0
        self.status_filter = STATUS_FILTER_CYCLE[(current + 1) % len(STATUS_FILTER_CYCLE)]
        return self.status_filter

    async def workflows(self) -> list[Workflow]:
        """All workflows of the repository, fetched once per browser."""
        if self._workflows is None:
            self._workflows = await self._api.list_workflows(self._repo)
        return self._workflows

    def select_workflow(self, workflow: Workflow | None) -> None:
        """Restrict runs to *workflow*; ``None`` shows every workflow."""
        self.workflow = workflow

    def status_line(self) -> str:
        status = self.status_filter or "all"
        workflow = self.workflow.name if self.workflow else "all"
        return f"Actions | Status: {status} | Workflow: {workflow}"

    # ── Lists ───────────────────────────────────────────────────────────

    async def list_runs(self, cursor: str | None = None) -> tuple[list[WorkflowRun], PageInfo]:
        page = await self._api.list_workflow_runs(
            self._repo,
            status=self.status_filter or None,
            workflow_id=self.workflow.id if self.workflow else None,
            page=page_from_cursor(cursor),
            per_page=self._page_size,
        )
        return page.items, page_info_from_next_page(page.next_page)

    async def list_jobs(self, run_id: int) -> tuple[list[WorkflowJob], PageInfo]:
        """Jobs of *run_id*; always a single page."""
        jobs = await self._api.list_workflow_jobs(self._repo, run_id)
        return jobs, PageInfo(has_next_page=False)
