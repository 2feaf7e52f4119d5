"""Top-level error reporting — translate failures into messages and exit codes.

Each exception type maps to a process exit code; the table is ordered most
specific first.  User-initiated cancellation never reaches this module.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import httpx

from repo_browser.domain.exceptions import (
    AccessDeniedError,
    ApiStatusError,
    CredentialInvalidError,
    InsufficientScopeError,
    InvalidRepositoryError,
    LogRetrievalError,
    QueryError,
    RateLimitExceededError,
    ResourceNotFoundError,
)

logger = logging.getLogger(__name__)

EXIT_UNEXPECTED = 1

_EXCEPTION_EXIT: list[tuple[type[BaseException], int]] = [
    (InvalidRepositoryError, 2),
    (CredentialInvalidError, 3),
    (InsufficientScopeError, 3),
    (RateLimitExceededError, 4),
    (ResourceNotFoundError, 5),
    (AccessDeniedError, 6),
    (ApiStatusError, 7),
    (QueryError, 7),
    (LogRetrievalError, 8),
    (httpx.HTTPError, 9),
    (TimeoutError, 10),
]

_PREFIXES: list[tuple[type[BaseException], str]] = [
    (CredentialInvalidError, "Token validation failed"),
    (InsufficientScopeError, "Token scope check failed"),
    (httpx.HTTPError, "Network error"),
]


def exit_code_for(exc: BaseException) -> int:
    for exc_type, code in _EXCEPTION_EXIT:
        if isinstance(exc, exc_type):
            return code
    return EXIT_UNEXPECTED


def describe(exc: BaseException) -> str:
    """User-facing one-paragraph description of *exc*."""
    if isinstance(exc, TimeoutError):
        return "Request timed out. GitHub may be slow or unreachable; try again."
    message = str(exc) or type(exc).__name__
    for exc_type, prefix in _PREFIXES:
        if isinstance(exc, exc_type):
            return f"{prefix}: {message}"
    return message


def report_error(exc: BaseException, stream: TextIO | None = None) -> int:
    """Print *exc* for the user and return the exit code to use."""
    code = exit_code_for(exc)
    if code == EXIT_UNEXPECTED:
        logger.exception("Unhandled exception", exc_info=exc)
    else:
        logger.debug("%s: %s", type(exc).__name__, exc)
    print(describe(exc), file=stream or sys.stderr)
    return code
