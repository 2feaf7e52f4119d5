"""Human-readable quota status for the status line and the ``quota`` command."""

from __future__ import annotations

from repo_browser.domain.entities import ApiProtocol, QuotaSnapshot, RateBudget

_LABELS = {ApiProtocol.REST: "REST", ApiProtocol.GRAPHQL: "GraphQL"}


def _describe(label: str, budget: RateBudget) -> str:
    line = f"{label}: {budget.remaining}/{budget.limit} remaining"
    if budget.reset_at is not None:
        line += f" (resets {budget.reset_at:%H:%M:%S} UTC)"
    return line


def format_quota(snapshot: QuotaSnapshot) -> list[str]:
    return [_describe(_LABELS[p], snapshot.budget_for(p)) for p in ApiProtocol]


def quota_warnings(snapshot: QuotaSnapshot, threshold: float) -> list[str]:
    """One warning per protocol whose budget is below *threshold* of its limit."""
    return [
        f"Warning: {_LABELS[p]} API quota is running low "
        f"({snapshot.budget_for(p).remaining}/{snapshot.budget_for(p).limit})"
        for p in ApiProtocol
        if snapshot.budget_for(p).is_approaching_limit(threshold)
    ]
