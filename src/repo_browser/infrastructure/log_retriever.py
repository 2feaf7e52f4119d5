"""Job log retrieval — bounded, cancelable download of a single job's log.

The REST API answers a log request with a redirect to a short-lived blob
URL.  The redirect target is a plain file download, so it is fetched with a
client that bypasses the rate-limiting transport, streamed, and cut off at
:data:`MAX_LOG_BYTES` so a huge log can never be buffered whole.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from repo_browser.domain.entities import LogPayload
from repo_browser.domain.exceptions import LogRetrievalError
from repo_browser.domain.ports.resource_api import ResourceApi
from repo_browser.domain.value_objects import RepoRef
from repo_browser.services.log_sanitizer import sanitize_log

logger = logging.getLogger(__name__)

MAX_LOG_BYTES = 10 * 1024 * 1024


class LogRetriever:
    """Fetches and sanitizes job logs.

    Parameters
    ----------
    resource_api:
        Resolves the log redirect URL (a rate-limited REST call).
    download_client:
        Client used for the redirect target; must not route through the
        rate-limiting transport.
    max_bytes:
        Download cap; anything beyond it is discarded unread.
    """

    def __init__(
        self,
        resource_api: ResourceApi,
        download_client: httpx.AsyncClient,
        max_bytes: int = MAX_LOG_BYTES,
    ) -> None:
        self._resource_api = resource_api
        self._download_client = download_client
        self._max_bytes = max_bytes

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    async def fetch(
        self, repo: RepoRef, job_id: int, timeout: float | None = None
    ) -> LogPayload:
        """Return the sanitized log of *job_id*.

        Raises :class:`TimeoutError` when *timeout* elapses; cancelling the
        calling task raises :class:`asyncio.CancelledError` instead, so the
        two outcomes stay distinguishable.
        """
        async with asyncio.timeout(timeout):
            url = await self._resource_api.get_job_log_url(repo, job_id)
            raw = await self.download(url)

        logger.debug("Fetched %d bytes of log for job %d", len(raw), job_id)
        return LogPayload(
            text=sanitize_log(raw.decode("utf-8", errors="replace")),
            raw_size=len(raw),
        )

    async def download(self, url: str) -> bytes:
        """Stream *url* and return at most ``max_bytes`` of its body."""
        async with self._download_client.stream("GET", url) as resp:
            if not resp.is_success:
                raise LogRetrievalError(
                    f"log download returned status {resp.status_code}",
                    status_code=resp.status_code,
                )

            body = bytearray()
            async for chunk in resp.aiter_bytes():
                body.extend(chunk[: self._max_bytes - len(body)])
                if len(body) >= self._max_bytes:
                    break
        return bytes(body)
