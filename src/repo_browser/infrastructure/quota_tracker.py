"""Quota tracker — last-known rate-limit state for both API protocols.

REST budgets are refreshed from the ``X-RateLimit-*`` headers of every REST
response.  GraphQL responses are never inspected here, so the GraphQL budget
keeps its documented defaults.  The tracker is a monitoring hint, not a
ledger: concurrent responses are applied last-write-wins.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Mapping

from repo_browser.domain.entities import QuotaSnapshot, RateBudget

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5000

_HEADER_LIMIT = "x-ratelimit-limit"
_HEADER_REMAINING = "x-ratelimit-remaining"
_HEADER_RESET = "x-ratelimit-reset"


class QuotaTracker:
    """Lock-protected remaining/limit/reset state.

    One :class:`threading.Lock` guards both protocols; it is held only for
    field copies, never across I/O, so snapshots may be read from any thread.
    """

    def __init__(self, default_limit: int = DEFAULT_LIMIT) -> None:
        self._lock = threading.Lock()
        self._rest_remaining = default_limit
        self._rest_limit = default_limit
        self._rest_reset_at: datetime | None = None
        self._graphql_remaining = default_limit
        self._graphql_limit = default_limit

    # ── Updates ─────────────────────────────────────────────────────────

    def record_rest(self, limit: int, remaining: int, reset_epoch: int) -> None:
        """Overwrite the REST budget with values from a live response."""
        reset_at = datetime.fromtimestamp(reset_epoch, tz=timezone.utc)
        with self._lock:
            self._rest_limit = limit
            self._rest_remaining = remaining
            self._rest_reset_at = reset_at
        logger.debug("REST quota %d/%d, resets %s", remaining, limit, reset_at.isoformat())

    def record_rest_headers(self, headers: Mapping[str, str]) -> bool:
        """Parse ``X-RateLimit-*`` headers and record them.

        Returns ``False`` (recording nothing) unless all three headers are
        present and numeric, with a representable reset time.
        """
        try:
            limit = int(headers[_HEADER_LIMIT])
            remaining = int(headers[_HEADER_REMAINING])
            reset_epoch = int(headers[_HEADER_RESET])
        except (KeyError, ValueError):
            return False
        try:
            self.record_rest(limit, remaining, reset_epoch)
        except (OverflowError, OSError, ValueError):
            logger.debug("Ignoring out-of-range reset epoch %d", reset_epoch)
            return False
        return True

    # ── Reads ───────────────────────────────────────────────────────────

    def snapshot(self) -> QuotaSnapshot:
        with self._lock:
            return QuotaSnapshot(
                rest=RateBudget(
                    remaining=self._rest_remaining,
                    limit=self._rest_limit,
                    reset_at=self._rest_reset_at,
                ),
                graphql=RateBudget(
                    remaining=self._graphql_remaining,
                    limit=self._graphql_limit,
                ),
            )

    def rest_stats(self) -> tuple[int, int, datetime | None]:
        """``(remaining, limit, reset_at)`` for REST."""
        budget = self.snapshot().rest
        return budget.remaining, budget.limit, budget.reset_at

    def graphql_stats(self) -> tuple[int, int]:
        """``(remaining, limit)`` for GraphQL."""
        budget = self.snapshot().graphql
        return budget.remaining, budget.limit

    def is_approaching_limit(self, threshold: float) -> tuple[bool, bool]:
        """``(rest, graphql)``: whether ``remaining < threshold * limit``.

        A protocol whose limit is 0 is never reported as approaching.
        """
        snap = self.snapshot()
        return (
            snap.rest.is_approaching_limit(threshold),
            snap.graphql.is_approaching_limit(threshold),
        )
