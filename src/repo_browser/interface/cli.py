"""Command-line surface — thin commands that delegate to the services."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Awaitable, Callable, TextIO

import httpx

from repo_browser.domain.entities import WorkflowJob
from repo_browser.domain.value_objects import RepoRef
from repo_browser.infrastructure.config import Settings
from repo_browser.interface.dependencies import AppContext, open_session
from repo_browser.services.log_session import LogSession
from repo_browser.services.quota_report import format_quota, quota_warnings

Command = Callable[[AppContext, argparse.Namespace, TextIO], Awaitable[int]]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-browser",
        description="Browse a GitHub repository's issues, pull requests and Actions runs.",
    )
    parser.add_argument(
        "-R",
        "--repo",
        help="<owner>/<repo>; defaults to the 'origin' remote of the current checkout",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    runs = sub.add_parser("runs", help="list workflow runs")
    runs.add_argument("--status", default="", help="success, failure, in_progress, queued")
    runs.add_argument("--workflow", type=int, help="workflow id to filter on")
    runs.add_argument("--page", help="page cursor printed by a previous call")

    sub.add_parser("workflows", help="list workflows")

    jobs = sub.add_parser("jobs", help="list the jobs of a run")
    jobs.add_argument("run_id", type=int)

    log = sub.add_parser("log", help="print the log of a job")
    log.add_argument("job_id", type=int)

    issues = sub.add_parser("issues", help="search issues and pull requests")
    issues.add_argument("query", nargs="?", default="is:open", help="GitHub search qualifiers")
    issues.add_argument("--after", help="cursor printed by a previous call")

    sub.add_parser("quota", help="show the remaining API quota")
    return parser


# ── Commands ────────────────────────────────────────────────────────────────


async def _runs(ctx: AppContext, args: argparse.Namespace, out: TextIO) -> int:
    browser = ctx.actions_browser()
    browser.status_filter = args.status
    if args.workflow:
        workflows = {w.id: w for w in await browser.workflows()}
        browser.select_workflow(workflows.get(args.workflow))
        if browser.workflow is None:
            print(f"Unknown workflow id {args.workflow}", file=sys.stderr)
            return 2

    runs, page_info = await browser.list_runs(args.page)
    print(browser.status_line(), file=out)
    for run in runs:
        print(
            f"{run.id}\t{run.display_status}\t{run.name}\t{run.head_branch}"
            f"\t{run.event}\t{run.duration}",
            file=out,
        )
    if page_info.has_next_page:
        print(f"-- more: --page {page_info.end_cursor}", file=out)
    return 0


async def _workflows(ctx: AppContext, args: argparse.Namespace, out: TextIO) -> int:
    for workflow in await ctx.actions_browser().workflows():
        print(f"{workflow.id}\t{workflow.name}\t{workflow.path}", file=out)
    return 0


async def _jobs(ctx: AppContext, args: argparse.Namespace, out: TextIO) -> int:
    jobs, _ = await ctx.actions_browser().list_jobs(args.run_id)
    for job in jobs:
        print(f"{job.id}\t{job.display_status}\t{job.name}\t{job.duration}", file=out)
    return 0


async def _log(ctx: AppContext, args: argparse.Namespace, out: TextIO) -> int:
    failures: list[str] = []

    def show(job: WorkflowJob, text: str) -> None:
        out.write(text)
        if not text.endswith("\n"):
            out.write("\n")

    def fail(job: WorkflowJob, message: str) -> None:
        failures.append(message)

    session = LogSession(
        ctx.access.fetch_log,
        on_content=show,
        on_error=fail,
        max_bytes=ctx.access.logs.max_bytes,
        timeout=ctx.settings.log_fetch_timeout,
    )
    job = WorkflowJob(
        id=args.job_id, run_id=0, name=str(args.job_id), status="", conclusion="", html_url=""
    )
    try:
        await session.start(ctx.repo, job)
    finally:
        await session.close()

    for message in failures:
        print(message, file=sys.stderr)
    return 1 if failures else 0


async def _issues(ctx: AppContext, args: argparse.Namespace, out: TextIO) -> int:
    connection = await ctx.access.list_query_items(
        {
            "query": f"repo:{ctx.repo.full_name} {args.query}",
            "first": ctx.settings.page_size,
            "cursor": args.after,
        }
    )
    for issue in connection.items:
        kind = "PR" if issue.is_pull_request else "issue"
        labels = ",".join(issue.labels)
        print(f"#{issue.number}\t{kind}\t{issue.state}\t{issue.title}\t{labels}", file=out)
    if connection.page_info.has_next_page:
        print(f"-- more: --after {connection.page_info.end_cursor}", file=out)
    return 0


async def _quota(ctx: AppContext, args: argparse.Namespace, out: TextIO) -> int:
    for line in format_quota(ctx.access.current_quota_snapshot()):
        print(line, file=out)
    return 0


COMMANDS: dict[str, Command] = {
    "runs": _runs,
    "workflows": _workflows,
    "jobs": _jobs,
    "log": _log,
    "issues": _issues,
    "quota": _quota,
}


async def run(
    args: argparse.Namespace,
    settings: Settings,
    repo: RepoRef,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    out: TextIO | None = None,
) -> int:
    """Open a validated session, run one command and report low quota."""
    out = out or sys.stdout
    async with open_session(settings, repo, transport) as ctx:
        code = await COMMANDS[args.command](ctx, args, out)
        snapshot = ctx.access.current_quota_snapshot()
        for warning in quota_warnings(snapshot, settings.quota_warning_threshold):
            print(warning, file=sys.stderr)
    return code


def run_sync(args: argparse.Namespace, settings: Settings, repo: RepoRef) -> int:
    return asyncio.run(run(args, settings, repo))
