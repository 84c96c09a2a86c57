"""Read-only index over recorded builds and their commit windows.

BuildCommitIndex is the only way the search engine looks at builds: every
access goes through a build id and may come back empty, because builds can
be deleted at any time by someone else.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Container, Sequence

from refbuild.models.build import BuildInfo
from refbuild.models.commits import CommitWindow

if TYPE_CHECKING:
    from refbuild.storage.repositories import BuildRepository, CommitWindowRepository


class BuildCommitIndex:
    """Pure read accessor for builds, build histories and commit windows.

    Never mutates storage and never raises for unknown or deleted ids.
    """

    def __init__(
        self,
        build_repo: BuildRepository,
        window_repo: CommitWindowRepository,
    ) -> None:
        self._build_repo = build_repo
        self._window_repo = window_repo

    def lookup(self, build_id: str) -> BuildInfo | None:
        """Return the build, or None if it is unknown or was deleted."""
        row = self._build_repo.get(build_id)
        if row is None:
            return None
        return BuildInfo(
            build_id=row.build_id,
            job_name=row.job_name,
            number=row.number,
            result=row.result,
            created_at=row.created_at,
            completed_at=row.completed_at,
        )

    def window_of(self, build_id: str) -> CommitWindow | None:
        """Return the commit window of a build, or None if there is none."""
        header = self._window_repo.get(build_id)
        if header is None:
            return None
        return CommitWindow(
            commits=tuple(self._window_repo.get_commits(build_id)),
            latest_commit=header.latest_commit,
            parent_commit=header.parent_commit,
        )

    def latest_commit_of(self, build_id: str) -> str | None:
        header = self._window_repo.get(build_id)
        return header.latest_commit if header is not None else None

    def parent_commit_of(self, build_id: str) -> str | None:
        header = self._window_repo.get(build_id)
        return header.parent_commit if header is not None else None

    def builds_of(self, job_name: str) -> list[str]:
        """Snapshot of a job's build ids, newest first.

        The returned list is detached from storage: builds appended later
        are not part of it.
        """
        return list(self._build_repo.get_ids(job_name))

    def previous_window(self, build_id: str) -> CommitWindow | None:
        """Window of the nearest earlier build of the same job that has one.

        Earlier builds without a recorded window (never recorded, or still
        running) and builds whose HEAD could not be resolved are skipped.
        """
        previous = self._build_repo.get_previous(build_id)
        while previous is not None:
            window = self.window_of(previous.build_id)
            if window is not None and window.has_head:
                return window
            previous = self._build_repo.get_previous(previous.build_id)
        return None

    def recorded_commits(self, build_id: str) -> Container[str]:
        """Commits recorded by earlier builds of the same job.

        Membership is checked against storage one commit at a time. Empty
        for unknown builds.
        """
        build = self._build_repo.get(build_id)
        if build is None:
            return frozenset()
        return RecordedCommits(self._build_repo, build.job_name, build.number)

    def branch_history(self, build_id: str, limit: int) -> list[str]:
        """Commits in the ancestry of a build known to its job, newest first.

        Starts with the build's own window, then follows the parent commit
        to the earlier build of the same job that recorded it, continuing
        with that window from the parent commit on, and so on until the
        chain ends or *limit* commits have been collected. Windows of
        earlier builds that are not ancestors of this build (another branch
        built by the same job) are never visited.

        A no-op rebuild of the first build has no parent; its HEAD starts
        the chain instead. Empty if the build has no window or its HEAD
        was never resolved.
        """
        window = self.window_of(build_id)
        build = self._build_repo.get(build_id)
        if window is None or not window.has_head or build is None:
            return []

        history: list[str] = []
        seen: set[str] = set()

        def extend(commits: Sequence[str]) -> None:
            for commit_id in commits:
                if len(history) >= limit:
                    return
                if commit_id not in seen:
                    seen.add(commit_id)
                    history.append(commit_id)

        extend(window.commits)
        frontier = window.parent_commit
        if not frontier and window.is_empty:
            frontier = window.latest_commit
        before = build.number
        while frontier and len(history) < limit:
            extend((frontier,))
            owner = self._build_repo.find_recorded(build.job_name, frontier, before)
            if owner is None:
                break
            earlier = self.window_of(owner.build_id)
            if earlier is None:
                break
            extend(earlier.commits[earlier.commits.index(frontier) + 1 :])
            frontier = earlier.parent_commit
            before = owner.number
        return history


class RecordedCommits:
    """Read-only view of the commits recorded by a job's builds before a
    given build number. Supports ``commit_id in view`` only.
    """

    def __init__(self, build_repo: BuildRepository, job_name: str, before_number: int) -> None:
        self._build_repo = build_repo
        self._job_name = job_name
        self._before_number = before_number

    def __contains__(self, commit_id: object) -> bool:
        if not isinstance(commit_id, str) or not commit_id:
            return False
        return (
            self._build_repo.find_recorded(self._job_name, commit_id, self._before_number)
            is not None
        )

    def __repr__(self) -> str:
        return f"RecordedCommits(job={self._job_name!r}, before={self._before_number})"
