"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ApiProtocol(str, Enum):
    """The two GitHub API surfaces, each billed against its own quota."""

    REST = "rest"
    GRAPHQL = "graphql"


# ── Actions ─────────────────────────────────────────────────────────────────


def format_duration(delta: timedelta) -> str:
    """Render a duration as ``Xs``, ``Xm Ys`` or ``Xh Ym``."""
    seconds = int(delta.total_seconds())
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds // 60) % 60}m"


@dataclass(frozen=True, slots=True)
class Workflow:
    """A workflow definition (one YAML file under ``.github/workflows``)."""

    id: int
    name: str
    path: str = ""
    state: str = ""


@dataclass(frozen=True, slots=True)
class WorkflowRun:
    """A single execution of a workflow."""

    id: int
    name: str
    title: str
    status: str
    conclusion: str
    head_branch: str
    event: str
    run_number: int
    html_url: str
    created_at: datetime | None = None
    started_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def duration(self) -> str:
        if self.started_at is None or self.updated_at is None:
            return ""
        return format_duration(self.updated_at - self.started_at)

    @property
    def display_status(self) -> str:
        """Conclusion for completed runs, status otherwise."""
        return self.conclusion if self.status == "completed" else self.status


@dataclass(frozen=True, slots=True)
class WorkflowJob:
    """A job inside a workflow run."""

    id: int
    run_id: int
    name: str
    status: str
    conclusion: str
    html_url: str
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration(self) -> str:
        if self.started_at is None or self.completed_at is None:
            return ""
        return format_duration(self.completed_at - self.started_at)

    @property
    def display_status(self) -> str:
        return self.conclusion if self.status == "completed" else self.status


# ── Issues / repositories ───────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Issue:
    """An issue or pull request."""

    number: int
    title: str
    state: str
    author: str
    url: str
    id: str = ""  # GraphQL node id, required for mutations
    is_pull_request: bool = False
    labels: list[str] = field(default_factory=list)
    body: str = ""


@dataclass(frozen=True, slots=True)
class Repository:
    """Repository summary as listed for an owner."""

    name: str
    owner: str
    description: str | None = None
    url: str = ""


# ── Pagination ──────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class PageInfo:
    """Cursor pagination state of a GraphQL connection."""

    has_next_page: bool = False
    end_cursor: str | None = None


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One REST page; ``next_page`` is ``None`` on the last page."""

    items: list[T]
    next_page: int | None = None


@dataclass(frozen=True, slots=True)
class Connection(Generic[T]):
    """One GraphQL connection page."""

    items: list[T]
    page_info: PageInfo = field(default_factory=PageInfo)


# ── Quota ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RateBudget:
    """Last-known quota for one protocol.

    ``reset_at`` is only ever set for the REST protocol.
    """

    remaining: int
    limit: int
    reset_at: datetime | None = None

    def is_approaching_limit(self, threshold: float) -> bool:
        """``remaining < threshold * limit``; always ``False`` when ``limit`` is 0."""
        if self.limit == 0:
            return False
        return self.remaining < threshold * self.limit


@dataclass(frozen=True, slots=True)
class QuotaSnapshot:
    """Point-in-time copy of both protocols' budgets."""

    rest: RateBudget
    graphql: RateBudget

    def budget_for(self, protocol: ApiProtocol) -> RateBudget:
        return self.rest if protocol is ApiProtocol.REST else self.graphql


# ── Credentials ─────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CredentialScopes:
    """Scope information derived from a single ``GET /user`` call.

    Exactly one of ``is_classic`` / ``is_fine_grained`` is true.  Only
    classic tokens expose their scopes (via ``X-OAuth-Scopes``).
    """

    scopes: tuple[str, ...] = ()
    has_repo: bool = False
    has_project: bool = False
    is_classic: bool = False
    is_fine_grained: bool = False

    def missing_scopes(self) -> list[str]:
        """Required scopes not granted; empty for fine-grained tokens."""
        if self.is_fine_grained:
            return []
        missing: list[str] = []
        if not self.has_repo:
            missing.append("repo")
        if not self.has_project:
            missing.append("project or read:org")
        return missing


# ── Logs ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class LogPayload:
    """A sanitized job log and the size of the (capped) raw download."""

    text: str
    raw_size: int
