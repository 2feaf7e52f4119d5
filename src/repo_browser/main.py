from __future__ import annotations
import logging
import sys

import httpx
from pydantic import ValidationError

from repo_browser.domain.exceptions import RepoBrowserError
from repo_browser.domain.value_objects import RepoRef
from repo_browser.infrastructure.config import get_settings
from repo_browser.infrastructure.git_remote import detect_repo
from repo_browser.interface.cli import build_parser, run_sync
from repo_browser.interface.error_handlers import report_error


def main(argv: list[str] | None = None) -> int:
    """Validate the token, then run one browsing command."""
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValidationError:
        print("GITHUB_TOKEN is not set (environment or .env file).", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    try:
        repo = RepoRef.from_string(args.repo) if args.repo else detect_repo()
        return run_sync(args, settings, repo)
    except KeyboardInterrupt:
        return 130
    except (RepoBrowserError, httpx.HTTPError, TimeoutError) as exc:
        return report_error(exc)


if __name__ == "__main__":
    sys.exit(main())
