"""Git client for refbuild, backed by GitPython.

Implements the VersionControl protocol for a local working copy. Every
GitPython failure is converted into VersionControlError so the commit
recorder can degrade to an empty window.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from git import BadName, BadObject, Repo
from git.exc import GitError

from refbuild.exceptions import VersionControlError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

_GIT_ERRORS = (GitError, BadName, BadObject, ValueError, OSError)


class GitRepository:
    """Read-only view on the history of a git working copy.

    The repository is opened lazily on first use.

    Args:
        path: Path of the working copy (or bare repository).
        first_parent: Follow only the first parent of merge commits.
    """

    def __init__(self, path: str, *, first_parent: bool = False) -> None:
        self._path = path
        self._first_parent = first_parent
        self._repo: Repo | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def repo(self) -> Repo:
        if self._repo is None:
            try:
                self._repo = Repo(self._path)
            except _GIT_ERRORS as exc:
                raise VersionControlError(
                    f"Not a git repository: {self._path} ({exc})"
                ) from exc
            logger.debug("Opened git repository %s", self._path)
        return self._repo

    def head_commit(self) -> str:
        """Return the commit id HEAD points at.

        Raises VersionControlError for an empty repository or a HEAD that
        does not resolve.
        """
        try:
            return self.repo.head.commit.hexsha
        except _GIT_ERRORS as exc:
            raise VersionControlError(f"Cannot resolve HEAD in {self._path}: {exc}") from exc

    def iter_commits(self, head: str) -> Iterator[str]:
        """Yield commit ids reachable from *head*, newest first.

        Streams ``git rev-list`` output; stopping early does not read the
        rest of the history.
        """
        kwargs = {"first_parent": True} if self._first_parent else {}
        try:
            for commit in self.repo.iter_commits(head, **kwargs):
                yield commit.hexsha
        except _GIT_ERRORS as exc:
            raise VersionControlError(f"Cannot walk history of {head}: {exc}") from exc

    def close(self) -> None:
        """Release git subprocesses and file handles held by GitPython."""
        if self._repo is not None:
            self._repo.close()
            self._repo = None

    def __enter__(self) -> GitRepository:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"GitRepository(path='{self._path}')"
