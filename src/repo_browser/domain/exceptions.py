"""Domain exception hierarchy.

Each exception maps to a specific exit code and message at the interface
layer.  Inner layers raise these; the command-line error handler translates
them.  Transport failures (``httpx.HTTPError``) and task cancellation are
never wrapped and reach callers unchanged.
"""

from __future__ import annotations


class RepoBrowserError(Exception):
    """Base exception for the entire application."""


# ── Input validation ────────────────────────────────────────────────────────


class InvalidRepositoryError(RepoBrowserError):
    """The supplied ``owner/name`` or git remote cannot be parsed."""


# ── GitHub API errors ───────────────────────────────────────────────────────


class ApiStatusError(RepoBrowserError):
    """The provider answered with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResourceNotFoundError(ApiStatusError):
    """The resource does not exist, or is not available yet (404)."""


class AccessDeniedError(ApiStatusError):
    """Access to the resource was denied (403)."""


class RateLimitExceededError(ApiStatusError):
    """GitHub API rate limit exceeded (429 / 403 with exhausted quota)."""


class QueryError(RepoBrowserError):
    """A GraphQL response carried an ``errors`` array."""

    def __init__(self, messages: list[str]) -> None:
        super().__init__("GraphQL query failed: " + "; ".join(messages))
        self.messages = messages


# ── Credential errors ───────────────────────────────────────────────────────


class CredentialError(RepoBrowserError):
    """The token cannot be used; the application must not start."""


class CredentialInvalidError(CredentialError):
    """The introspection call itself was rejected (invalid or expired token)."""

    def __init__(self, status_code: int) -> None:
        super().__init__(
            f"token validation failed: HTTP {status_code} "
            "- check that your token is valid"
        )
        self.status_code = status_code


class InsufficientScopeError(CredentialError):
    """A classic token is valid but lacks required scopes."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            f"missing required token scopes: {', '.join(missing)}\n\n"
            "Your token needs: repo, project (or read:org)\n"
            "See: https://github.com/settings/tokens"
        )
        self.missing = missing


# ── Log retrieval ───────────────────────────────────────────────────────────


class LogRetrievalError(RepoBrowserError):
    """Downloading a job log failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
