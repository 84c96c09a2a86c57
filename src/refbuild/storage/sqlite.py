"""SQLite implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from refbuild.exceptions import BuildNotFoundError, JobNotFoundError
from refbuild.models.build import BuildResult
from refbuild.storage.repositories import (
    BuildRepository,
    CommitWindowRepository,
    JobRepository,
    ReferencePointerRepository,
)
from refbuild.storage.schema import (
    BuildRow,
    CommitWindowRow,
    JobRow,
    ReferencePointerRow,
    WindowCommitRow,
)


class SqliteJobRepository(JobRepository):
    """SQLite implementation of job repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, name: str) -> JobRow | None:
        stmt = select(JobRow).where(JobRow.name == name)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, job: JobRow) -> None:
        self._session.add(job)
        self._session.flush()

    def list_all(self) -> Sequence[JobRow]:
        stmt = select(JobRow).order_by(JobRow.name)
        return list(self._session.execute(stmt).scalars().all())

    def get_branches(self, project: str) -> Sequence[JobRow]:
        stmt = select(JobRow).where(JobRow.project == project).order_by(JobRow.name)
        return list(self._session.execute(stmt).scalars().all())

    def get_primary_branch(self, project: str) -> JobRow | None:
        stmt = (
            select(JobRow)
            .where(JobRow.project == project, JobRow.is_primary.is_(True))
            .order_by(JobRow.name)
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def allocate_number(self, name: str) -> int:
        job = self.get(name)
        if job is None:
            raise JobNotFoundError(name)
        number = job.next_number
        job.next_number = number + 1
        self._session.flush()
        return number


class SqliteBuildRepository(BuildRepository):
    """SQLite implementation of build repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, build_id: str) -> BuildRow | None:
        stmt = select(BuildRow).where(BuildRow.build_id == build_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, build: BuildRow) -> None:
        self._session.add(build)
        self._session.flush()

    def get_ids(self, job_name: str, limit: int | None = None) -> list[str]:
        stmt = (
            select(BuildRow.build_id)
            .where(BuildRow.job_name == job_name)
            .order_by(BuildRow.number.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.execute(stmt).scalars().all())

    def get_previous(self, build_id: str) -> BuildRow | None:
        build = self.get(build_id)
        if build is None:
            return None
        stmt = (
            select(BuildRow)
            .where(BuildRow.job_name == build.job_name, BuildRow.number < build.number)
            .order_by(BuildRow.number.desc())
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def find_recorded(
        self, job_name: str, commit_id: str, before_number: int
    ) -> BuildRow | None:
        stmt = (
            select(BuildRow)
            .join(WindowCommitRow, WindowCommitRow.build_id == BuildRow.build_id)
            .where(
                BuildRow.job_name == job_name,
                BuildRow.number < before_number,
                WindowCommitRow.commit_id == commit_id,
            )
            .order_by(BuildRow.number.desc())
            .limit(1)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def complete(self, build_id: str, result: BuildResult) -> None:
        build = self.get(build_id)
        if build is None:
            raise BuildNotFoundError(build_id)
        build.result = result
        build.completed_at = datetime.now(timezone.utc)
        self._session.flush()

    def delete(self, build_id: str) -> None:
        """Delete a build by id. Also removes the rows it owns.

        Window commits, the window header and the build's own pointer go
        first. Pointers owned by other builds keep naming this id.
        """
        self._session.execute(
            delete(WindowCommitRow).where(WindowCommitRow.build_id == build_id)
        )
        self._session.execute(
            delete(CommitWindowRow).where(CommitWindowRow.build_id == build_id)
        )
        self._session.execute(
            delete(ReferencePointerRow).where(
                ReferencePointerRow.owner_build_id == build_id
            )
        )
        build = self.get(build_id)
        if build is not None:
            self._session.delete(build)
        self._session.flush()


class SqliteCommitWindowRepository(CommitWindowRepository):
    """SQLite implementation of commit window repository.

    A window is stored as a header row plus one row per commit, with
    position 0 holding the newest commit.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, build_id: str) -> CommitWindowRow | None:
        stmt = select(CommitWindowRow).where(CommitWindowRow.build_id == build_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def get_commits(self, build_id: str) -> list[str]:
        stmt = (
            select(WindowCommitRow.commit_id)
            .where(WindowCommitRow.build_id == build_id)
            .order_by(WindowCommitRow.position)
        )
        return list(self._session.execute(stmt).scalars().all())

    def save(
        self,
        build_id: str,
        commits: Sequence[str],
        latest_commit: str,
        parent_commit: str,
    ) -> CommitWindowRow:
        row = CommitWindowRow(
            build_id=build_id,
            latest_commit=latest_commit,
            parent_commit=parent_commit,
            commit_count=len(commits),
            created_at=datetime.now(timezone.utc),
        )
        self._session.add(row)
        # Header must exist before its commits (FK).
        self._session.flush()
        for position, commit_id in enumerate(commits):
            self._session.add(
                WindowCommitRow(build_id=build_id, position=position, commit_id=commit_id)
            )
        self._session.flush()
        return row

    def delete(self, build_id: str) -> None:
        self._session.execute(
            delete(WindowCommitRow).where(WindowCommitRow.build_id == build_id)
        )
        self._session.execute(
            delete(CommitWindowRow).where(CommitWindowRow.build_id == build_id)
        )
        self._session.flush()


class SqliteReferencePointerRepository(ReferencePointerRepository):
    """SQLite implementation of reference pointer repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, owner_build_id: str) -> ReferencePointerRow | None:
        stmt = select(ReferencePointerRow).where(
            ReferencePointerRow.owner_build_id == owner_build_id
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def save(
        self,
        owner_build_id: str,
        reference_build_id: str | None,
        messages: Sequence[str] = (),
    ) -> ReferencePointerRow:
        row = ReferencePointerRow(
            owner_build_id=owner_build_id,
            reference_build_id=reference_build_id,
            messages_json=list(messages) if messages else None,
            created_at=datetime.now(timezone.utc),
        )
        self._session.add(row)
        self._session.flush()
        return row

    def get_referencing(self, reference_build_id: str) -> list[str]:
        stmt = (
            select(ReferencePointerRow.owner_build_id)
            .where(ReferencePointerRow.reference_build_id == reference_build_id)
            .order_by(ReferencePointerRow.owner_build_id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def delete(self, owner_build_id: str) -> None:
        self._session.execute(
            delete(ReferencePointerRow).where(
                ReferencePointerRow.owner_build_id == owner_build_id
            )
        )
        self._session.flush()
