"""Log session — owns the single in-flight job log fetch.

Starting a fetch cancels the previous one first.  A cancelled fetch reports
nothing, and a fetch that has been superseded never delivers its content,
even if its download completed just before the newer fetch started.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from repo_browser.domain.entities import LogPayload, WorkflowJob
from repo_browser.domain.exceptions import RepoBrowserError, ResourceNotFoundError
from repo_browser.domain.value_objects import RepoRef

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = (
    "Log not available. The job may still be running or logs may have expired."
)
TIMEOUT_MESSAGE = (
    "Log download timed out. The log may be very large. "
    "Open the job in a browser to view it."
)
TRUNCATION_NOTICE = (
    "\n\n--- Log truncated at 10MB. Open the job in a browser to view the full log. ---"
)

LogFetcher = Callable[[RepoRef, int, float | None], Awaitable[LogPayload]]
Callback = Callable[[WorkflowJob, str], None]


def _is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, ResourceNotFoundError) or getattr(exc, "status_code", None) == 404


class LogSession:
    """Runs at most one log fetch at a time and reports its outcome.

    Parameters
    ----------
    fetch_log:
        ``(repo, job_id, timeout) -> LogPayload``, normally
        :meth:`ApiAccessLayer.fetch_log`.
    on_content / on_error:
        Called with the job and the text to show.  Never called for a
        cancelled or superseded fetch.
    max_bytes:
        Download cap; a payload that reaches it gets a truncation notice.
    timeout:
        Deadline in seconds for each fetch.
    """

    def __init__(
        self,
        fetch_log: LogFetcher,
        *,
        on_content: Callback,
        on_error: Callback,
        max_bytes: int,
        timeout: float | None = 30.0,
    ) -> None:
        self._fetch_log = fetch_log
        self._on_content = on_content
        self._on_error = on_error
        self._max_bytes = max_bytes
        self._timeout = timeout
        self._task: asyncio.Task[None] | None = None
        self._generation = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, repo: RepoRef, job: WorkflowJob) -> asyncio.Task[None]:
        """Cancel any running fetch, then fetch *job*'s log in a new task."""
        self.cancel()
        self._generation += 1
        self._task = asyncio.create_task(self._run(repo, job, self._generation))
        return self._task

    def cancel(self) -> None:
        """Abandon the in-flight fetch, if any, without reporting it."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._generation += 1

    async def close(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    # ── Internals ───────────────────────────────────────────────────────

    async def _run(self, repo: RepoRef, job: WorkflowJob, generation: int) -> None:
        try:
            payload = await self._fetch_log(repo, job.id, self._timeout)
        except asyncio.CancelledError:
            logger.debug("Log fetch for job %d cancelled", job.id)
            raise
        except (TimeoutError, httpx.TimeoutException):
            self._report(generation, self._on_error, job, TIMEOUT_MESSAGE)
        except (RepoBrowserError, httpx.HTTPError) as exc:
            message = NOT_FOUND_MESSAGE if _is_not_found(exc) else str(exc)
            self._report(generation, self._on_error, job, message)
        else:
            text = payload.text
            if payload.raw_size >= self._max_bytes:
                text += TRUNCATION_NOTICE
            self._report(generation, self._on_content, job, text)

    def _report(self, generation: int, callback: Callback, job: WorkflowJob, text: str) -> None:
        if generation != self._generation:
            logger.debug("Dropping stale log result for job %d", job.id)
            return
        callback(job, text)
