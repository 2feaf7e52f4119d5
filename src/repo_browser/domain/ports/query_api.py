"""Port: GraphQL query API — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Any, Protocol

from repo_browser.domain.entities import Connection, Issue, Repository
from repo_browser.domain.value_objects import RepoRef


class QueryApi(Protocol):
    """Abstract contract for the cursor-paginated GitHub GraphQL surface."""

    async def search_issues(self, variables: dict[str, Any]) -> Connection[Issue]:
        """Run an issue/PR search; ``variables`` holds ``query``, ``first``, ``cursor``."""
        ...

    async def get_issue(self, repo: RepoRef, number: int) -> Issue:
        """Return a single issue with its body."""
        ...

    async def list_repositories(
        self, login: str, first: int = 30, cursor: str | None = None
    ) -> Connection[Repository]:
        """Return an owner's repositories, newest first."""
        ...

    async def close_issue(self, issue_id: str) -> None:
        ...

    async def reopen_issue(self, issue_id: str) -> None:
        ...

    async def add_comment(self, subject_id: str, body: str) -> None:
        ...
