"""Value objects — self-validating domain primitives."""

from __future__ import annotations

import re
from dataclasses import dataclass

from repo_browser.domain.exceptions import InvalidRepositoryError

_NAME = r"[A-Za-z0-9\-_.]+"

_SLUG_RE = re.compile(rf"^(?P<owner>{_NAME})/(?P<repo>{_NAME})$")

# ssh://git@github.com/owner/repo(.git)  https://github.com/owner/repo(.git)
_URL_REMOTE_RE = re.compile(
    rf"^(?:ssh|https?|git)://[^/]+/(?:.*/)?(?P<owner>{_NAME})/(?P<repo>{_NAME}?)(?:\.git)?/?$"
)

# git@github.com:owner/repo(.git)
_SCP_REMOTE_RE = re.compile(
    rf"^[^@/\s]+@[^:/\s]+:(?P<owner>{_NAME})/(?P<repo>{_NAME}?)(?:\.git)?/?$"
)


@dataclass(frozen=True, slots=True)
class RepoRef:
    """Validated ``owner/name`` pair identifying a repository."""

    owner: str
    name: str

    @classmethod
    def from_string(cls, value: str) -> RepoRef:
        """Parse ``owner/name``."""
        value = value.strip()
        match = _SLUG_RE.match(value)
        if not match:
            raise InvalidRepositoryError(
                f"Invalid repository: '{value}'. Expected format: <owner>/<repo>"
            )
        return cls(owner=match["owner"], name=match["repo"])

    @classmethod
    def from_remote(cls, remote: str) -> RepoRef:
        """Parse the output of ``git remote get-url origin``.

        Accepts ``ssh://``, scp-style ``git@host:owner/repo`` and
        ``http(s)://`` remotes, with or without a ``.git`` suffix.
        """
        remote = remote.strip()
        match = _URL_REMOTE_RE.match(remote) or _SCP_REMOTE_RE.match(remote)
        if not match:
            raise InvalidRepositoryError(
                f"cannot get owner/repo from remote: {remote}"
            )
        return cls(owner=match["owner"], name=match["repo"])

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"
