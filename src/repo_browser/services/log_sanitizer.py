"""Log sanitizer — strips terminal escapes and timestamp prefixes from job logs.

GitHub Actions prefixes every log line with an RFC 3339 timestamp carrying
fractional seconds (``2024-01-15T10:30:45.1234567Z ``) and passes through the
ANSI colour and cursor sequences emitted by the job.  Neither is useful in a
text viewer.  Patterns are applied until the text stops changing, so the
result is a fixed point: sanitizing it again returns it unchanged.
"""

from __future__ import annotations

import re

# ── Compiled patterns ───────────────────────────────────────────────────────

# CSI sequences: colours (SGR), cursor movement, erase, private modes.
_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")

_TIMESTAMP_PREFIX_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d+(?:Z|[+-]\d{2}:\d{2}) ",
    re.MULTILINE,
)


# ── Public API ──────────────────────────────────────────────────────────────


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def strip_timestamps(text: str) -> str:
    return _TIMESTAMP_PREFIX_RE.sub("", text)


def sanitize_log(raw: str) -> str:
    """Remove escape sequences and per-line timestamp prefixes from *raw*."""
    text = raw
    while True:
        cleaned = strip_timestamps(strip_ansi(text))
        if cleaned == text:
            return cleaned
        text = cleaned
