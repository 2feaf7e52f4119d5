"""Detect the repository from the local git checkout."""

from __future__ import annotations

import shutil
import subprocess

from repo_browser.domain.exceptions import InvalidRepositoryError
from repo_browser.domain.value_objects import RepoRef


def detect_repo(remote: str = "origin") -> RepoRef:
    """``RepoRef`` of ``git remote get-url <remote>`` in the working directory."""
    if shutil.which("git") is None:
        raise InvalidRepositoryError("git executable not found; pass <owner>/<repo> explicitly")

    proc = subprocess.run(
        ["git", "remote", "get-url", remote],
        capture_output=True,
        text=True,
        check=False,
    )
    if proc.returncode != 0:
        raise InvalidRepositoryError(
            f"invalid repo: {proc.stderr.strip() or 'no git remote ' + remote}"
        )
    return RepoRef.from_remote(proc.stdout.rstrip("\r\n"))
