"""GitHub GraphQL adapter — implements the QueryApi port."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from repo_browser.domain.entities import Connection, Issue, PageInfo, Repository
from repo_browser.domain.exceptions import QueryError, ResourceNotFoundError
from repo_browser.domain.value_objects import RepoRef
from repo_browser.infrastructure.github_rest_adapter import raise_for_github_status
from repo_browser.infrastructure.rate_limit_transport import GRAPHQL_PATH

logger = logging.getLogger(__name__)

# ── Query documents ─────────────────────────────────────────────────────────

_ISSUE_FIELDS = """
  id
  number
  title
  state
  url
  author { login }
  labels(first: 10) { nodes { name } }
"""

SEARCH_ISSUES_QUERY = f"""
query($query: String!, $first: Int!, $cursor: String) {{
  search(query: $query, type: ISSUE, first: $first, after: $cursor) {{
    nodes {{
      __typename
      ... on Issue {{ {_ISSUE_FIELDS} }}
      ... on PullRequest {{ {_ISSUE_FIELDS} }}
    }}
    pageInfo {{ hasNextPage endCursor }}
  }}
}}
"""

GET_ISSUE_QUERY = f"""
query($owner: String!, $name: String!, $number: Int!) {{
  repository(owner: $owner, name: $name) {{
    issue(number: $number) {{ {_ISSUE_FIELDS} body }}
  }}
}}
"""

LIST_REPOSITORIES_QUERY = """
query($login: String!, $first: Int!, $cursor: String) {
  repositoryOwner(login: $login) {
    repositories(first: $first, after: $cursor, orderBy: {field: CREATED_AT, direction: DESC}) {
      nodes { name description url owner { login } }
      pageInfo { hasNextPage endCursor }
    }
  }
}
"""

CLOSE_ISSUE_MUTATION = """
mutation($input: CloseIssueInput!) {
  closeIssue(input: $input) { issue { id } }
}
"""

REOPEN_ISSUE_MUTATION = """
mutation($input: ReopenIssueInput!) {
  reopenIssue(input: $input) { issue { id } }
}
"""

ADD_COMMENT_MUTATION = """
mutation($input: AddCommentInput!) {
  addComment(input: $input) { subject { id } }
}
"""


def _to_issue(node: dict[str, Any]) -> Issue:
    author = node.get("author") or {}
    labels = (node.get("labels") or {}).get("nodes") or []
    return Issue(
        number=node.get("number", 0),
        title=node.get("title", ""),
        state=node.get("state", ""),
        author=author.get("login", ""),
        url=node.get("url", ""),
        id=node.get("id", ""),
        is_pull_request=node.get("__typename") == "PullRequest",
        labels=[label.get("name", "") for label in labels],
        body=node.get("body") or "",
    )


def _to_page_info(raw: dict[str, Any] | None) -> PageInfo:
    raw = raw or {}
    return PageInfo(
        has_next_page=bool(raw.get("hasNextPage", False)),
        end_cursor=raw.get("endCursor"),
    )


class GitHubGraphQLAdapter:
    """Concrete QueryApi backed by the GitHub v4 GraphQL API.

    All documents are ``POST``-ed to ``/graphql`` through *client*, whose
    transport accounts them against the GraphQL budget.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def search_issues(self, variables: dict[str, Any]) -> Connection[Issue]:
        """``search(type: ISSUE)`` → Connection[Issue] (issues and pull requests)."""
        data = await self.execute(
            SEARCH_ISSUES_QUERY,
            {"first": 30, "cursor": None, **variables},
        )
        search = data.get("search") or {}
        nodes = [n for n in search.get("nodes") or [] if n]
        return Connection(
            items=[_to_issue(n) for n in nodes],
            page_info=_to_page_info(search.get("pageInfo")),
        )

    async def get_issue(self, repo: RepoRef, number: int) -> Issue:
        data = await self.execute(
            GET_ISSUE_QUERY,
            {"owner": repo.owner, "name": repo.name, "number": number},
        )
        node = (data.get("repository") or {}).get("issue")
        if not node:
            raise ResourceNotFoundError(404, f"Issue #{number} not found in {repo.full_name}")
        return _to_issue(node)

    async def list_repositories(
        self, login: str, first: int = 30, cursor: str | None = None
    ) -> Connection[Repository]:
        data = await self.execute(
            LIST_REPOSITORIES_QUERY,
            {"login": login, "first": first, "cursor": cursor},
        )
        owner = data.get("repositoryOwner")
        if not owner:
            raise ResourceNotFoundError(404, f"Owner '{login}' not found")
        repos = owner.get("repositories") or {}
        return Connection(
            items=[
                Repository(
                    name=n.get("name", ""),
                    owner=(n.get("owner") or {}).get("login", login),
                    description=n.get("description"),
                    url=n.get("url", ""),
                )
                for n in repos.get("nodes") or []
                if n
            ],
            page_info=_to_page_info(repos.get("pageInfo")),
        )

    # ── Mutations ───────────────────────────────────────────────────────

    async def close_issue(self, issue_id: str) -> None:
        await self.execute(CLOSE_ISSUE_MUTATION, {"input": {"issueId": issue_id}})

    async def reopen_issue(self, issue_id: str) -> None:
        await self.execute(REOPEN_ISSUE_MUTATION, {"input": {"issueId": issue_id}})

    async def add_comment(self, subject_id: str, body: str) -> None:
        await self.execute(
            ADD_COMMENT_MUTATION,
            {"input": {"subjectId": subject_id, "body": body}},
        )

    # ── Transport ───────────────────────────────────────────────────────

    async def execute(self, document: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST a query document and return its ``data`` object."""
        resp = await self._client.post(
            GRAPHQL_PATH,
            json={"query": document, "variables": variables},
        )
        raise_for_github_status(resp)

        body = resp.json()
        errors = body.get("errors")
        if errors:
            messages = [str(e.get("message", e)) for e in errors]
            logger.warning("GraphQL errors: %s", messages)
            raise QueryError(messages)
        return body.get("data") or {}
