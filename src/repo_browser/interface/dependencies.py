"""Session wiring — builds the access layer and validates the credential."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from repo_browser.domain.entities import CredentialScopes
from repo_browser.domain.value_objects import RepoRef
from repo_browser.infrastructure.access_layer import ApiAccessLayer
from repo_browser.infrastructure.config import Settings
from repo_browser.services.browse_actions import ActionsBrowser

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AppContext:
    """Everything a command needs, owned by one :func:`open_session` block."""

    settings: Settings
    repo: RepoRef
    access: ApiAccessLayer
    scopes: CredentialScopes

    def actions_browser(self) -> ActionsBrowser:
        return ActionsBrowser(self.access.rest, self.repo, page_size=self.settings.page_size)


@asynccontextmanager
async def open_session(
    settings: Settings,
    repo: RepoRef,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[AppContext]:
    """Create the access layer, validate the token, and close everything on exit.

    Validation runs before anything is yielded; a credential error or a
    validation timeout propagates and no command runs.
    """
    async with ApiAccessLayer.from_settings(settings, transport) as access:
        async with asyncio.timeout(settings.validation_timeout):
            scopes = await access.validate_credential()
        logger.info("Browsing %s", repo.full_name)
        yield AppContext(settings=settings, repo=repo, access=access, scopes=scopes)
