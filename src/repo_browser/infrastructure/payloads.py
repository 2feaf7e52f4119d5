"""Pydantic models for GitHub REST payloads.

Only the fields the application displays are declared; everything else in
the provider's JSON is ignored.  Each model converts itself into the frozen
domain entity via ``to_entity()``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from repo_browser.domain.entities import Issue, Workflow, WorkflowJob, WorkflowRun


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ── Actions ─────────────────────────────────────────────────────────────────


class WorkflowPayload(_Payload):
    id: int
    name: str = ""
    path: str = ""
    state: str = ""

    def to_entity(self) -> Workflow:
        return Workflow(id=self.id, name=self.name, path=self.path, state=self.state)


class WorkflowListPayload(_Payload):
    total_count: int = 0
    workflows: list[WorkflowPayload] = Field(default_factory=list)


class WorkflowRunPayload(_Payload):
    id: int
    name: str | None = None
    display_title: str | None = None
    status: str | None = None
    conclusion: str | None = None
    head_branch: str | None = None
    event: str = ""
    run_number: int = 0
    html_url: str = ""
    created_at: datetime | None = None
    run_started_at: datetime | None = None
    updated_at: datetime | None = None

    def to_entity(self) -> WorkflowRun:
        return WorkflowRun(
            id=self.id,
            name=self.name or "",
            title=self.display_title or "",
            status=self.status or "",
            conclusion=self.conclusion or "",
            head_branch=self.head_branch or "",
            event=self.event,
            run_number=self.run_number,
            html_url=self.html_url,
            created_at=self.created_at,
            started_at=self.run_started_at,
            updated_at=self.updated_at,
        )


class WorkflowRunListPayload(_Payload):
    total_count: int = 0
    workflow_runs: list[WorkflowRunPayload] = Field(default_factory=list)


class WorkflowJobPayload(_Payload):
    id: int
    run_id: int
    name: str = ""
    status: str | None = None
    conclusion: str | None = None
    html_url: str = ""
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def to_entity(self) -> WorkflowJob:
        return WorkflowJob(
            id=self.id,
            run_id=self.run_id,
            name=self.name,
            status=self.status or "",
            conclusion=self.conclusion or "",
            html_url=self.html_url,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )


class WorkflowJobListPayload(_Payload):
    total_count: int = 0
    jobs: list[WorkflowJobPayload] = Field(default_factory=list)


# ── Issues ──────────────────────────────────────────────────────────────────


class UserPayload(_Payload):
    login: str = ""


class LabelPayload(_Payload):
    name: str = ""


class IssuePayload(_Payload):
    number: int
    title: str = ""
    state: str = ""
    html_url: str = ""
    node_id: str = ""
    body: str | None = None
    user: UserPayload | None = None
    labels: list[LabelPayload] = Field(default_factory=list)
    pull_request: dict[str, Any] | None = None

    def to_entity(self) -> Issue:
        return Issue(
            number=self.number,
            title=self.title,
            state=self.state,
            author=self.user.login if self.user else "",
            url=self.html_url,
            id=self.node_id,
            is_pull_request=self.pull_request is not None,
            labels=[label.name for label in self.labels],
            body=self.body or "",
        )
