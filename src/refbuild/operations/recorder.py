"""Commit recorder for refbuild.

Computes the commit window of a build: the commits reachable from the
build's HEAD that were not yet known to earlier builds of its job.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Container

from refbuild.exceptions import VersionControlError
from refbuild.models.commits import CommitWindow

if TYPE_CHECKING:
    from collections.abc import Iterator

    from refbuild.protocols import VersionControl

logger = logging.getLogger(__name__)


class HistoryWalk:
    """Lazy newest-first walk from a head commit down to a known commit.

    Iterating yields commit ids until the stop commit or a commit in
    *known* (both excluded), or the root of the history. Each ``iter()``
    restarts the walk from *head*; ``stopped_at`` holds the commit the last
    walk ended on, or ``""`` when it ran to the root.
    """

    def __init__(
        self,
        vcs: VersionControl,
        head: str,
        stop_commit: str = "",
        known: Container[str] = frozenset(),
    ) -> None:
        self._vcs = vcs
        self._head = head
        self._stop_commit = stop_commit
        self._known = known
        self.stopped_at = ""

    def __iter__(self) -> Iterator[str]:
        self.stopped_at = ""
        seen: set[str] = set()
        for commit_id in self._vcs.iter_commits(self._head):
            if commit_id in seen:
                continue
            if commit_id == self._stop_commit or commit_id in self._known:
                self.stopped_at = commit_id
                return
            seen.add(commit_id)
            yield commit_id


class CommitRecorder:
    """Records the commit window of a build from a version-control client.

    Never raises for repository problems: a client failure, including
    ``OSError`` from I/O and timeouts, produces an empty window so the build
    itself is not affected.
    """

    def __init__(self, vcs: VersionControl) -> None:
        self._vcs = vcs

    def record(
        self,
        job_name: str,
        build_id: str,
        previous_window: CommitWindow | None,
        max_commits: int,
        recorded: Container[str] = frozenset(),
    ) -> CommitWindow:
        """Compute the commit window of *build_id*.

        Args:
            job_name: Job the build belongs to (used for logging).
            build_id: The build being recorded.
            previous_window: Window of the previous build of the same job,
                or None for the first build.
            max_commits: Maximum number of commits to collect.
            recorded: Commits recorded by earlier builds of the job. The
                walk stops at the first of them, so a job that switches
                branches links back to the build that knew the fork point.

        Returns:
            The new, immutable CommitWindow. Persisting it is up to the caller.
        """
        try:
            head = self._vcs.head_commit()
            if previous_window is None or not previous_window.has_head:
                window = self._record_first(head, max_commits)
            else:
                window = self._record_incremental(head, previous_window, max_commits, recorded)
        except (VersionControlError, OSError) as exc:
            logger.warning(
                "Could not read history for %s (job %s): %s", build_id, job_name, exc
            )
            return CommitWindow.empty()

        logger.debug(
            "Recorded %d commits for %s (latest %s, parent %s)",
            window.size,
            build_id,
            window.latest_commit or "-",
            window.parent_commit or "-",
        )
        return window

    def _record_first(self, head: str, max_commits: int) -> CommitWindow:
        commits: list[str] = []
        for commit_id in HistoryWalk(self._vcs, head):
            if len(commits) >= max_commits:
                logger.info("Stopped recording at %d commits (first build)", max_commits)
                break
            commits.append(commit_id)
        return CommitWindow(
            commits=tuple(commits),
            latest_commit=head,
            parent_commit="",
        )

    def _record_incremental(
        self,
        head: str,
        previous_window: CommitWindow,
        max_commits: int,
        recorded: Container[str],
    ) -> CommitWindow:
        stop_commit = previous_window.latest_commit
        if head == stop_commit:
            # Nothing new since the previous build: the boundary stays put.
            return CommitWindow(
                commits=(),
                latest_commit=head,
                parent_commit=previous_window.parent_commit,
            )

        walk = HistoryWalk(self._vcs, head, stop_commit, recorded)
        commits: list[str] = []
        parent_commit = ""
        for commit_id in walk:
            if len(commits) >= max_commits:
                # Best-effort boundary; the search does not go past the cap.
                parent_commit = commit_id
                logger.info(
                    "No commit of an earlier build found within %d commits of %s",
                    max_commits,
                    head,
                )
                break
            commits.append(commit_id)
        else:
            parent_commit = walk.stopped_at
            if not parent_commit:
                logger.warning(
                    "Commit %s of the previous build is not part of the history of %s",
                    stop_commit,
                    head,
                )
            elif parent_commit != stop_commit:
                logger.info(
                    "History of %s joins the job's builds at %s, not at the previous HEAD %s",
                    head,
                    parent_commit,
                    stop_commit,
                )

        return CommitWindow(
            commits=tuple(commits),
            latest_commit=head,
            parent_commit=parent_commit,
        )
