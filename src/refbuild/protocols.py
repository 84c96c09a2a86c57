"""Protocol definitions for refbuild.

Defines the pluggable collaborator interfaces consumed by the engine:
VersionControl (history of the checked-out working copy) and
BranchResolver (primary-branch lookup for multi-branch projects).

No SQLAlchemy imports allowed in this module -- pure domain protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator


@runtime_checkable
class VersionControl(Protocol):
    """Read access to the linear history of a working copy.

    Implementations raise ``VersionControlError`` when the repository
    cannot be read (no HEAD, I/O failure, timeout). A raw ``OSError``
    (``TimeoutError``, ``ConnectionError``) is tolerated the same way.
    """

    def head_commit(self) -> str:
        """Return the commit id HEAD points at."""
        ...

    def iter_commits(self, head: str) -> Iterator[str]:
        """Yield commit ids reachable from *head*, newest first.

        Must be lazy: callers stop consuming as soon as they reach a known
        commit, so large histories are never materialized.
        """
        ...


@runtime_checkable
class BranchResolver(Protocol):
    """Resolves the primary-branch job of a multi-branch project."""

    def primary_branch_job(self, job_name: str) -> str | None:
        """Return the primary-branch job for *job_name*, or None.

        *job_name* may be a branch job or the name of the project itself.
        """
        ...
