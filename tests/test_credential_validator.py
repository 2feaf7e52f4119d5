import logging

import httpx
import pytest

from conftest import TOKEN
from repo_browser.domain.exceptions import CredentialInvalidError, InsufficientScopeError
from repo_browser.infrastructure.credential_validator import (
    FINE_GRAINED_WARNING,
    parse_scopes,
    scopes_from_header,
    validate_credential,
)


def _user_handler(status=200, scopes=None, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        assert request.url.path == "/user"
        headers = {} if scopes is None else {"X-OAuth-Scopes": scopes}
        return httpx.Response(status, headers=headers, json={"login": "octo"})

    return handler


@pytest.mark.parametrize(
    "header, want",
    [
        ("repo, project", ("repo", "project")),
        ("repo,read:org", ("repo", "read:org")),
        (" repo ,, workflow , ", ("repo", "workflow")),
        ("", ()),
    ],
)
def test_parse_scopes(header, want):
    assert parse_scopes(header) == want


class TestClassicTokens:
    @pytest.mark.asyncio
    async def test_all_scopes(self, make_access):
        access = make_access(_user_handler(scopes="repo, project"))
        scopes = await access.validate_credential()

        assert scopes.is_classic is True
        assert scopes.is_fine_grained is False
        assert scopes.has_repo is True
        assert scopes.has_project is True
        assert scopes.scopes == ("repo", "project")

    @pytest.mark.asyncio
    async def test_missing_project(self, make_access):
        access = make_access(_user_handler(scopes="repo"))
        with pytest.raises(InsufficientScopeError) as exc_info:
            await access.validate_credential()

        assert exc_info.value.missing == ["project or read:org"]
        assert "project or read:org" in str(exc_info.value)
        assert "https://github.com/settings/tokens" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_repo(self, make_access):
        access = make_access(_user_handler(scopes="project"))
        with pytest.raises(InsufficientScopeError) as exc_info:
            await access.validate_credential()
        assert exc_info.value.missing == ["repo"]

    @pytest.mark.asyncio
    async def test_missing_both(self, make_access):
        access = make_access(_user_handler(scopes="gist"))
        with pytest.raises(InsufficientScopeError) as exc_info:
            await access.validate_credential()
        assert exc_info.value.missing == ["repo", "project or read:org"]

    @pytest.mark.parametrize("org_scope", ["read:org", "admin:org"])
    def test_org_scopes_imply_project(self, org_scope):
        scopes = scopes_from_header(f"repo, {org_scope}")
        assert scopes.has_project is True
        assert scopes.missing_scopes() == []


class TestFineGrainedTokens:
    @pytest.mark.asyncio
    async def test_no_header_warns_and_succeeds(self, make_access, caplog):
        access = make_access(_user_handler(scopes=None))
        with caplog.at_level(logging.WARNING):
            scopes = await access.validate_credential()

        assert scopes.is_fine_grained is True
        assert scopes.is_classic is False
        assert scopes.missing_scopes() == []
        warnings = [r for r in caplog.records if r.getMessage() == FINE_GRAINED_WARNING]
        assert len(warnings) == 1

    def test_empty_header_is_fine_grained(self):
        assert scopes_from_header("").is_fine_grained is True


class TestInvalidTokens:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403, 500])
    async def test_non_success_status_is_hard_failure(self, make_access, status):
        access = make_access(_user_handler(status=status, scopes="repo, project"))
        with pytest.raises(CredentialInvalidError) as exc_info:
            await access.validate_credential()

        assert exc_info.value.status_code == status
        assert str(status) in str(exc_info.value)


@pytest.mark.asyncio
async def test_sends_bearer_token(make_access):
    seen = []
    access = make_access(_user_handler(scopes="repo, project", seen=seen))
    await validate_credential(access.api_client)

    assert seen[0].headers["Authorization"] == f"Bearer {TOKEN}"


@pytest.mark.asyncio
async def test_token_never_logged(make_access, caplog):
    access = make_access(_user_handler(scopes="repo, project"))
    with caplog.at_level(logging.DEBUG):
        await access.validate_credential()
    assert all(TOKEN not in r.getMessage() for r in caplog.records)
