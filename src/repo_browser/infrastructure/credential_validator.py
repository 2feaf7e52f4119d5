"""Startup credential check — classifies the token and verifies its scopes.

Classic personal access tokens report their scopes in the ``X-OAuth-Scopes``
response header; fine-grained tokens do not, so for those the check can only
warn and let the session proceed.
"""

from __future__ import annotations

import logging

import httpx

from repo_browser.domain.entities import CredentialScopes
from repo_browser.domain.exceptions import CredentialInvalidError, InsufficientScopeError

logger = logging.getLogger(__name__)

SCOPES_HEADER = "x-oauth-scopes"
USER_ENDPOINT = "/user"

REPO_SCOPE = "repo"
# Any one of these grants project access.
PROJECT_SCOPES = ("project", "read:org", "admin:org")

FINE_GRAINED_WARNING = (
    "Fine-grained token detected - scope validation skipped. If you encounter "
    "permission errors, verify that your token has repo, actions and project "
    "read permissions."
)


def parse_scopes(header: str) -> tuple[str, ...]:
    """Split a comma-separated scope header into trimmed, non-empty names."""
    return tuple(s for s in (part.strip() for part in header.split(",")) if s)


def scopes_from_header(header: str | None) -> CredentialScopes:
    """Classify a token from the value of its ``X-OAuth-Scopes`` header."""
    if not header:
        return CredentialScopes(is_fine_grained=True)

    scopes = parse_scopes(header)
    return CredentialScopes(
        scopes=scopes,
        has_repo=REPO_SCOPE in scopes,
        has_project=any(s in scopes for s in PROJECT_SCOPES),
        is_classic=True,
    )


def check_scopes(scopes: CredentialScopes) -> None:
    """Raise if a classic token lacks scopes; warn once for fine-grained tokens."""
    missing = scopes.missing_scopes()
    if missing:
        raise InsufficientScopeError(missing)
    if scopes.is_fine_grained:
        logger.warning(FINE_GRAINED_WARNING)


async def introspect_credential(client: httpx.AsyncClient) -> CredentialScopes:
    """Call ``GET /user`` with the client's credential and classify it.

    Any non-2xx status means the token itself is unusable and raises
    :class:`CredentialInvalidError` carrying that status.
    """
    resp = await client.get(USER_ENDPOINT)
    if not resp.is_success:
        raise CredentialInvalidError(resp.status_code)
    return scopes_from_header(resp.headers.get(SCOPES_HEADER))


async def validate_credential(client: httpx.AsyncClient) -> CredentialScopes:
    """Introspect the credential and enforce the required scopes."""
    scopes = await introspect_credential(client)
    check_scopes(scopes)
    if scopes.is_classic:
        logger.info("Classic token scopes: %s", ", ".join(scopes.scopes))
    return scopes
