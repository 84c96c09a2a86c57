"""Ledger -- the public SDK entry point for refbuild.

Ties together storage, the commit recorder and the reference resolver into
a user-facing API.  Users interact with ``Ledger.open()``,
``ledger.complete_build()``, ``ledger.get_reference()``, etc.

Not thread-safe.  Each worker should open its own ``Ledger``; several
ledgers may share one SQLite file.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from refbuild.exceptions import (
    BuildNotFoundError,
    BuildStateError,
    JobExistsError,
    JobNotFoundError,
)
from refbuild.models.build import BuildInfo, BuildResult, JobInfo, format_build_id
from refbuild.models.config import LedgerConfig, ReferenceConfig
from refbuild.models.reference import BuildRecord, ReferencePointer
from refbuild.operations.branches import (
    StoreBranchResolver,
    branch_job_name,
    validate_job_name,
)
from refbuild.operations.index import BuildCommitIndex
from refbuild.operations.recorder import CommitRecorder
from refbuild.operations.resolver import ReferenceResolver
from refbuild.storage.engine import create_ledger_engine, create_session_factory, init_db
from refbuild.storage.schema import BuildRow, JobRow
from refbuild.storage.sqlite import (
    SqliteBuildRepository,
    SqliteCommitWindowRepository,
    SqliteJobRepository,
    SqliteReferencePointerRepository,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

    from refbuild.models.commits import CommitWindow
    from refbuild.protocols import BranchResolver, VersionControl

logger = logging.getLogger(__name__)


class Ledger:
    """Primary entry point for refbuild -- commit windows and reference builds.

    Create a ledger via :meth:`Ledger.open`.

    Example::

        with Ledger.open("ci.db") as ledger:
            ledger.create_job("app")
            record = ledger.complete_build("app", GitRepository("."))
            print(record.reference.reference_build_id)
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        *,
        engine: Engine | None,
        session: Session,
        config: LedgerConfig,
        job_repo: SqliteJobRepository,
        build_repo: SqliteBuildRepository,
        window_repo: SqliteCommitWindowRepository,
        pointer_repo: SqliteReferencePointerRepository,
        branches: BranchResolver | None = None,
    ) -> None:
        self._engine = engine
        self._session = session
        self._config = config
        self._job_repo = job_repo
        self._build_repo = build_repo
        self._window_repo = window_repo
        self._pointer_repo = pointer_repo
        self._index = BuildCommitIndex(build_repo, window_repo)
        self._branches = branches or StoreBranchResolver(job_repo)
        self._resolver = ReferenceResolver(self._index, job_repo, self._branches)
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str = ":memory:",
        *,
        url: str | None = None,
        config: LedgerConfig | None = None,
        branches: BranchResolver | None = None,
    ) -> Ledger:
        """Open (or create) a ledger database.

        Args:
            path: SQLite path.  ``":memory:"`` for in-memory (default).
            url: Full SQLAlchemy URL; overrides *path*.
            config: Ledger configuration.  Defaults created if *None*.
            branches: Pluggable primary-branch resolver.  Resolved from the
                job store by default.

        Returns:
            A ready-to-use ``Ledger`` instance.
        """
        if config is None:
            config = LedgerConfig(db_path=path, db_url=url)
        else:
            config = config.model_copy(update={"db_path": path, "db_url": url})

        engine = create_ledger_engine(path, url=url)
        init_db(engine)
        session = create_session_factory(engine)()

        return cls(
            engine=engine,
            session=session,
            config=config,
            job_repo=SqliteJobRepository(session),
            build_repo=SqliteBuildRepository(session),
            window_repo=SqliteCommitWindowRepository(session),
            pointer_repo=SqliteReferencePointerRepository(session),
            branches=branches,
        )

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> LedgerConfig:
        """The ledger configuration."""
        return self._config

    @property
    def index(self) -> BuildCommitIndex:
        """Read-only index over builds and commit windows."""
        return self._index

    @property
    def resolver(self) -> ReferenceResolver:
        return self._resolver

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def create_job(
        self,
        name: str,
        *,
        project: str | None = None,
        branch: str | None = None,
        primary: bool = False,
    ) -> JobInfo:
        """Register a job.

        Args:
            name: Job name, e.g. ``"app"`` or ``"p/master"``.
            project: Multi-branch project the job belongs to, if any.
            branch: Branch built by the job (multi-branch only).
            primary: Make this the primary branch of *project*.  A previous
                primary branch of the project is demoted.

        Raises:
            InvalidJobNameError: If the name violates naming rules.
            JobExistsError: If a job with this name already exists.
        """
        validate_job_name(name)
        if self._job_repo.get(name) is not None:
            raise JobExistsError(name)

        if primary and project is not None:
            current = self._job_repo.get_primary_branch(project)
            if current is not None:
                logger.info("Primary branch of %s moves from %s to %s", project, current.name, name)
                current.is_primary = False

        row = JobRow(
            name=name,
            project=project,
            branch=branch,
            is_primary=primary and project is not None,
            next_number=1,
            created_at=datetime.now(timezone.utc),
        )
        self._job_repo.save(row)
        self._session.commit()
        return self._job_info(row)

    def create_branch_job(self, project: str, branch: str, *, primary: bool = False) -> JobInfo:
        """Register the job building *branch* of multi-branch *project*."""
        return self.create_job(
            branch_job_name(project, branch),
            project=project,
            branch=branch,
            primary=primary,
        )

    def get_job(self, name: str) -> JobInfo | None:
        row = self._job_repo.get(name)
        return self._job_info(row) if row is not None else None

    def list_jobs(self) -> list[JobInfo]:
        return [self._job_info(row) for row in self._job_repo.list_all()]

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def start_build(self, job_name: str) -> BuildInfo:
        """Append a new, running build to a job.

        Raises:
            JobNotFoundError: If the job does not exist.
        """
        if self._job_repo.get(job_name) is None:
            raise JobNotFoundError(job_name)
        number = self._job_repo.allocate_number(job_name)
        row = BuildRow(
            build_id=format_build_id(job_name, number),
            job_name=job_name,
            number=number,
            result=None,
            created_at=datetime.now(timezone.utc),
        )
        self._build_repo.save(row)
        self._session.commit()
        logger.debug("Started build %s", row.build_id)
        return self._require_build(row.build_id)

    def finish_build(self, build_id: str, result: BuildResult = BuildResult.SUCCESS) -> BuildInfo:
        """Mark a running build as completed with *result*.

        Raises:
            BuildNotFoundError: If the build does not exist.
            BuildStateError: If the build already has a result.
        """
        build = self._require_build(build_id)
        if build.is_completed:
            raise BuildStateError(f"Build {build_id} already completed with {build.result}")
        self._build_repo.complete(build_id, result)
        self._session.commit()
        return self._require_build(build_id)

    def get_build(self, build_id: str) -> BuildInfo | None:
        """Return a build, or None if it is unknown or was deleted."""
        return self._index.lookup(build_id)

    def list_builds(self, job_name: str) -> list[BuildInfo]:
        """All builds of a job, newest first.

        Raises:
            JobNotFoundError: If the job does not exist.
        """
        if self._job_repo.get(job_name) is None:
            raise JobNotFoundError(job_name)
        builds = []
        for build_id in self._index.builds_of(job_name):
            build = self._index.lookup(build_id)
            if build is not None:
                builds.append(build)
        return builds

    def delete_build(self, build_id: str) -> None:
        """Delete a build together with its window and its own reference pointer.

        Pointers of other builds that name this build keep the id and
        become dangling.

        Raises:
            BuildNotFoundError: If the build does not exist.
        """
        self._require_build(build_id)
        referencing = self._pointer_repo.get_referencing(build_id)
        self._build_repo.delete(build_id)
        self._session.commit()
        if referencing:
            logger.info(
                "Deleted %s; still named as reference by %s", build_id, ", ".join(referencing)
            )

    # ------------------------------------------------------------------
    # Commit windows and reference builds
    # ------------------------------------------------------------------

    def record_commits(
        self,
        build_id: str,
        vcs: VersionControl,
        *,
        max_commits: int | None = None,
    ) -> CommitWindow:
        """Record the commit window of a build.

        Idempotent: a build that already has a window keeps it.

        Args:
            build_id: The build to record.
            vcs: Version-control client of the build's working copy.
            max_commits: Recording cap.  Defaults to ``config.record_limit``.

        Raises:
            BuildNotFoundError: If the build does not exist.
        """
        build = self._require_build(build_id)
        existing = self._index.window_of(build_id)
        if existing is not None:
            return existing

        window = CommitRecorder(vcs).record(
            build.job_name,
            build_id,
            self._index.previous_window(build_id),
            max_commits or self._config.record_limit,
            self._index.recorded_commits(build_id),
        )
        self._window_repo.save(
            build_id,
            window.commits,
            window.latest_commit,
            window.parent_commit,
        )
        self._session.commit()
        return window

    def resolve_reference(
        self, build_id: str, config: ReferenceConfig | None = None
    ) -> ReferencePointer:
        """Resolve and store the reference build of a build.

        Idempotent: a build that already has a pointer keeps it.  Never
        raises for search problems; the pointer is empty instead.

        Raises:
            BuildNotFoundError: If the build does not exist.
        """
        self._require_build(build_id)
        existing = self.get_reference(build_id)
        if existing is not None:
            return existing

        pointer = self._resolver.resolve(build_id, config or self._config.reference)
        self._pointer_repo.save(
            build_id,
            pointer.reference_build_id,
            pointer.messages,
        )
        self._session.commit()
        return pointer

    def complete_build(
        self,
        job_name: str,
        vcs: VersionControl,
        *,
        result: BuildResult = BuildResult.SUCCESS,
        config: ReferenceConfig | None = None,
    ) -> BuildRecord:
        """Run a whole build completion: start, record, finish, resolve.

        The commit window is stored before the reference build is
        resolved, since the resolution reads it.
        """
        build = self.start_build(job_name)
        window = self.record_commits(build.build_id, vcs)
        build = self.finish_build(build.build_id, result)
        reference = self.resolve_reference(build.build_id, config)
        return BuildRecord(build=build, window=window, reference=reference)

    def get_window(self, build_id: str) -> CommitWindow | None:
        return self._index.window_of(build_id)

    def get_reference(self, build_id: str) -> ReferencePointer | None:
        """Stored reference pointer of a build, or None if not resolved yet."""
        row = self._pointer_repo.get(build_id)
        if row is None:
            return None
        return ReferencePointer(
            owner=row.owner_build_id,
            reference_build_id=row.reference_build_id,
            messages=tuple(row.messages_json or ()),
        )

    def reference_build_of(self, build_id: str) -> BuildInfo | None:
        """The reference build of a build, or None if there is none or it was deleted."""
        pointer = self.get_reference(build_id)
        if pointer is None or pointer.reference_build_id is None:
            return None
        return self._index.lookup(pointer.reference_build_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_build(self, build_id: str) -> BuildInfo:
        build = self._index.lookup(build_id)
        if build is None:
            raise BuildNotFoundError(build_id)
        return build

    @staticmethod
    def _job_info(row: JobRow) -> JobInfo:
        return JobInfo(
            name=row.name,
            project=row.project,
            branch=row.branch,
            is_primary=row.is_primary,
            created_at=row.created_at,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the session and dispose the engine."""
        if self._closed:
            return
        self._closed = True
        self._session.close()
        if self._engine is not None:
            self._engine.dispose()

    def __enter__(self) -> Ledger:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            return "Ledger(closed=True)"
        return f"Ledger(db='{self._config.db_url or self._config.db_path}')"
