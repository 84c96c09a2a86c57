"""Abstract repository interfaces for refbuild storage.

Defines ABC interfaces for all database operations. No SQLAlchemy
imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from refbuild.models.build import BuildResult
    from refbuild.storage.schema import (
        BuildRow,
        CommitWindowRow,
        JobRow,
        ReferencePointerRow,
    )


class JobRepository(ABC):
    """Abstract interface for job storage operations."""

    @abstractmethod
    def get(self, name: str) -> JobRow | None:
        """Get a job by name. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, job: JobRow) -> None:
        """Save a job to storage."""
        ...

    @abstractmethod
    def list_all(self) -> Sequence[JobRow]:
        """Get all jobs, ordered by name."""
        ...

    @abstractmethod
    def get_branches(self, project: str) -> Sequence[JobRow]:
        """Get all branch jobs of a multi-branch project, ordered by name."""
        ...

    @abstractmethod
    def get_primary_branch(self, project: str) -> JobRow | None:
        """Get the primary branch job of a project. Returns None if none is flagged."""
        ...

    @abstractmethod
    def allocate_number(self, name: str) -> int:
        """Hand out the next build number of a job. Numbers are never reused."""
        ...


class BuildRepository(ABC):
    """Abstract interface for build storage operations.

    Deleted builds behave exactly like unknown ones: lookups return None.
    """

    @abstractmethod
    def get(self, build_id: str) -> BuildRow | None:
        """Get a build by id. Returns None if unknown or deleted."""
        ...

    @abstractmethod
    def save(self, build: BuildRow) -> None:
        """Save a build to storage."""
        ...

    @abstractmethod
    def get_ids(self, job_name: str, limit: int | None = None) -> list[str]:
        """Get the build ids of a job, newest first."""
        ...

    @abstractmethod
    def get_previous(self, build_id: str) -> BuildRow | None:
        """Get the build of the same job with the next lower number.

        Deleted numbers are skipped. Returns None for the first build.
        """
        ...

    @abstractmethod
    def find_recorded(
        self, job_name: str, commit_id: str, before_number: int
    ) -> BuildRow | None:
        """Get the newest build of a job numbered below *before_number*
        whose commit window lists *commit_id*. Returns None if there is none.
        """
        ...

    @abstractmethod
    def complete(self, build_id: str, result: BuildResult) -> None:
        """Set the result and completion time of a build."""
        ...

    @abstractmethod
    def delete(self, build_id: str) -> None:
        """Delete a build with its window and its own reference pointer.

        Windows and pointers of other builds are left untouched, even if
        they mention this build id.
        """
        ...


class CommitWindowRepository(ABC):
    """Abstract interface for commit window storage."""

    @abstractmethod
    def get(self, build_id: str) -> CommitWindowRow | None:
        """Get the window header of a build. Returns None if none recorded."""
        ...

    @abstractmethod
    def get_commits(self, build_id: str) -> list[str]:
        """Get the commit ids of a window, newest first."""
        ...

    @abstractmethod
    def save(
        self,
        build_id: str,
        commits: Sequence[str],
        latest_commit: str,
        parent_commit: str,
    ) -> CommitWindowRow:
        """Save a window. Commit positions follow the order of *commits*."""
        ...

    @abstractmethod
    def delete(self, build_id: str) -> None:
        """Delete a window and its commits. No-op if absent."""
        ...


class ReferencePointerRepository(ABC):
    """Abstract interface for reference pointer storage."""

    @abstractmethod
    def get(self, owner_build_id: str) -> ReferencePointerRow | None:
        """Get the pointer owned by a build. Returns None if not resolved yet."""
        ...

    @abstractmethod
    def save(
        self,
        owner_build_id: str,
        reference_build_id: str | None,
        messages: Sequence[str] = (),
    ) -> ReferencePointerRow:
        """Save the pointer of a build."""
        ...

    @abstractmethod
    def get_referencing(self, reference_build_id: str) -> list[str]:
        """Get the owner ids of all pointers that name *reference_build_id*."""
        ...

    @abstractmethod
    def delete(self, owner_build_id: str) -> None:
        """Delete the pointer owned by a build. No-op if absent."""
        ...
