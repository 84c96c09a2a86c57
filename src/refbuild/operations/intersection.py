"""Intersection finder: the reference-build search.

Walks the build history of a target job from newest to oldest and returns
the first build whose commit window shares a commit with the commits known
to the current build. The walk is bounded by a commit budget, and two policy
switches change what happens with divergent candidates and with a search
that comes back empty.

This is a deliberately cheap approximation of "closest ancestor build":
no merge base is computed. For simple forks the first intersecting build is
the build of the fork point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from refbuild.models.config import DEFAULT_MAX_COMMITS
from refbuild.models.reference import NO_INTERSECTION_FOUND

if TYPE_CHECKING:
    from collections.abc import Sequence

    from refbuild.models.build import BuildInfo, BuildResult
    from refbuild.operations.index import BuildCommitIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchPolicy:
    """Knobs of the reference-build search.

    Attributes:
        max_commits: Commit budget. Bounds how many of the current build's
            commits take part in the comparison, and how many candidate
            commits may be compared in total before the search gives up.
        skip_unknown_commits: Disqualify candidates that contain any commit
            the current build does not know.
        latest_build_if_not_found: Fall back to the newest candidate build
            instead of returning no reference build.
        required_result: If set, only builds with this result or better are
            candidates.
    """

    max_commits: int = DEFAULT_MAX_COMMITS
    skip_unknown_commits: bool = False
    latest_build_if_not_found: bool = False
    required_result: BuildResult | None = None

    def __post_init__(self) -> None:
        if self.max_commits <= 0:
            raise ValueError(f"max_commits must be positive, got {self.max_commits}")


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one search, with the trail of decisions that led to it.

    Attributes:
        build_id: The reference build id, or NO_INTERSECTION_FOUND.
        matched: True if the build was found by commit intersection.
        fallback: True if the build is the newest-build fallback.
        examined: Number of candidate windows compared.
        charged: Number of candidate commits charged against the budget.
        messages: Human-readable trail of the search.
    """

    build_id: str
    matched: bool = False
    fallback: bool = False
    examined: int = 0
    charged: int = 0
    messages: tuple[str, ...] = ()

    @property
    def found(self) -> bool:
        return self.build_id != NO_INTERSECTION_FOUND


class IntersectionFinder:
    """Finds the newest build of a target job that intersects the current commits."""

    def __init__(self, index: BuildCommitIndex) -> None:
        self._index = index

    def find(
        self,
        current_build_id: str,
        current_commits: Sequence[str],
        target_builds: Sequence[str],
        policy: SearchPolicy,
    ) -> str:
        """Return the reference build id, or NO_INTERSECTION_FOUND."""
        return self.search(current_build_id, current_commits, target_builds, policy).build_id

    def search(
        self,
        current_build_id: str,
        current_commits: Sequence[str],
        target_builds: Sequence[str],
        policy: SearchPolicy,
    ) -> SearchOutcome:
        """Run the search and report how the result came about.

        Args:
            current_build_id: The build a reference is searched for. Never
                returned as its own reference.
            current_commits: Commits known to the current build, newest
                first. Only the first ``policy.max_commits`` take part.
            target_builds: Build ids of the target job, newest first. The
                sequence is copied up front; later appends are ignored.
            policy: Search knobs.
        """
        candidates = [b for b in list(target_builds) if b != current_build_id]
        known = set(list(current_commits)[: policy.max_commits])
        messages: list[str] = []

        if not known:
            messages.append(f"No commits known to {current_build_id}, nothing to intersect")
            return self._give_up(candidates, policy, messages)

        charged = 0
        examined = 0
        for candidate in candidates:
            if charged >= policy.max_commits:
                messages.append(
                    f"Commit budget of {policy.max_commits} exhausted after "
                    f"{examined} candidate builds"
                )
                break

            build = self._index.lookup(candidate)
            if build is None:
                logger.debug("Skipping deleted build %s", candidate)
                messages.append(f"Skipped {candidate}: build no longer exists")
                continue
            if not self._qualifies(build, policy):
                messages.append(f"Skipped {candidate}: result {build.result or 'running'}")
                continue
            window = self._index.window_of(candidate)
            if window is None:
                messages.append(f"Skipped {candidate}: no commits recorded")
                continue

            examined += 1
            if policy.skip_unknown_commits and any(c not in known for c in window.commits):
                logger.debug("Skipping %s: contains unknown commits", candidate)
                messages.append(f"Skipped {candidate}: contains commits unknown to {current_build_id}")
            elif known.intersection(window.commits):
                logger.debug("Build %s intersects %s", candidate, current_build_id)
                messages.append(f"Found reference build {candidate} by commit intersection")
                return SearchOutcome(
                    build_id=candidate,
                    matched=True,
                    examined=examined,
                    charged=charged,
                    messages=tuple(messages),
                )
            charged += window.size

        return self._give_up(candidates, policy, messages, examined=examined, charged=charged)

    def _qualifies(self, build: BuildInfo, policy: SearchPolicy) -> bool:
        if build.result is None:
            return False
        if policy.required_result is None:
            return True
        return build.result.is_better_or_equal(policy.required_result)

    def _give_up(
        self,
        candidates: list[str],
        policy: SearchPolicy,
        messages: list[str],
        *,
        examined: int = 0,
        charged: int = 0,
    ) -> SearchOutcome:
        messages.append("No intersecting build found")
        if policy.latest_build_if_not_found:
            for candidate in candidates:
                build = self._index.lookup(candidate)
                if build is not None and self._qualifies(build, policy):
                    messages.append(f"Using newest build {candidate} as fallback")
                    return SearchOutcome(
                        build_id=candidate,
                        fallback=True,
                        examined=examined,
                        charged=charged,
                        messages=tuple(messages),
                    )
            messages.append("No build available for the fallback")
        return SearchOutcome(
            build_id=NO_INTERSECTION_FOUND,
            examined=examined,
            charged=charged,
            messages=tuple(messages),
        )
