"""Tests for IntersectionFinder.

Covers:
- First-match-wins over newest-to-oldest candidates
- Commit budget charging and exhaustion
- skip_unknown_commits and latest_build_if_not_found
- Skipping deleted, running, window-less and low-result builds
- Self-exclusion and empty current commits
- Property tests: determinism, first match, budget monotonicity,
  self-exclusion, skip-unknown disqualification
"""

from __future__ import annotations

from datetime import datetime, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from refbuild.models.build import BuildInfo, BuildResult
from refbuild.models.commits import CommitWindow
from refbuild.models.reference import NO_INTERSECTION_FOUND
from refbuild.operations.intersection import IntersectionFinder, SearchPolicy
from tests.strategies import current_commits, policies, target_history

CURRENT = "p/feature#1"


class MemoryIndex:
    """Dict-backed stand-in for BuildCommitIndex (lookup and window_of only)."""

    def __init__(self) -> None:
        self.builds: dict[str, BuildInfo] = {}
        self.windows: dict[str, CommitWindow] = {}
        self.lookups: list[str] = []

    def add(
        self,
        build_id: str,
        commits: list[str] | None,
        result: BuildResult | None = BuildResult.SUCCESS,
    ) -> str:
        job_name, _, number = build_id.rpartition("#")
        self.builds[build_id] = BuildInfo(
            build_id=build_id,
            job_name=job_name,
            number=int(number),
            result=result,
            created_at=datetime.now(timezone.utc),
        )
        if commits is not None:
            self.windows[build_id] = CommitWindow(
                commits=tuple(commits),
                latest_commit=commits[0] if commits else "z",
            )
        return build_id

    def lookup(self, build_id: str) -> BuildInfo | None:
        self.lookups.append(build_id)
        return self.builds.get(build_id)

    def window_of(self, build_id: str) -> CommitWindow | None:
        return self.windows.get(build_id)


def _master(index: MemoryIndex, windows: list[list[str] | None]) -> list[str]:
    """Register master builds from *windows* (oldest first); return ids newest first."""
    ids = [index.add(f"p/master#{n}", commits) for n, commits in enumerate(windows, start=1)]
    return list(reversed(ids))


def _populate(index: MemoryIndex, history) -> list[str]:
    """Register generated candidates; return their ids newest first."""
    ids = []
    for n, (commits, result) in enumerate(history):
        ids.append(index.add(f"p/master#{len(history) - n}", commits, result))
    return ids


class TestMatching:
    def test_newest_intersecting_build_wins(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["b"], ["c"]])
        finder = IntersectionFinder(index)
        assert finder.find(CURRENT, ["x", "b", "a"], targets, SearchPolicy()) == "p/master#2"

    def test_no_intersection(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["b"]])
        outcome = IntersectionFinder(index).search(CURRENT, ["x", "y"], targets, SearchPolicy())
        assert outcome.build_id == NO_INTERSECTION_FOUND
        assert not outcome.found
        assert outcome.examined == 2
        assert outcome.charged == 2

    def test_outcome_of_match(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["b", "c"]])
        outcome = IntersectionFinder(index).search(CURRENT, ["a"], targets, SearchPolicy())
        assert outcome.build_id == "p/master#1"
        assert outcome.matched and not outcome.fallback
        assert outcome.examined == 2
        assert outcome.charged == 2
        assert outcome.messages[-1] == "Found reference build p/master#1 by commit intersection"

    def test_empty_current_commits_never_match(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], []])
        assert IntersectionFinder(index).find(CURRENT, [], targets, SearchPolicy()) == NO_INTERSECTION_FOUND

    def test_empty_candidate_window_never_matches(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], []])
        policy = SearchPolicy(skip_unknown_commits=True)
        assert IntersectionFinder(index).find(CURRENT, ["a"], targets, policy) == "p/master#1"

    def test_excludes_current_build(self):
        index = MemoryIndex()
        index.add("app#2", ["b"])
        index.add("app#1", ["a"])
        finder = IntersectionFinder(index)
        assert finder.find("app#2", ["b", "a"], ["app#2", "app#1"], SearchPolicy()) == "app#1"

    def test_target_list_is_copied(self):
        index = MemoryIndex()
        targets = _master(index, [["a"]])
        IntersectionFinder(index).find(CURRENT, ["a"], targets, SearchPolicy())
        assert targets == ["p/master#1"]


class TestSkippedCandidates:
    def test_deleted_build(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["b"]])
        del index.builds["p/master#1"]
        assert IntersectionFinder(index).find(CURRENT, ["a"], targets, SearchPolicy()) == NO_INTERSECTION_FOUND

    def test_build_without_window_is_not_charged(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], None])
        outcome = IntersectionFinder(index).search(CURRENT, ["a"], targets, SearchPolicy(max_commits=1))
        assert outcome.build_id == "p/master#1"
        assert outcome.examined == 1

    def test_running_build(self):
        index = MemoryIndex()
        index.add("p/master#1", ["a"], result=None)
        assert IntersectionFinder(index).find(CURRENT, ["a"], ["p/master#1"], SearchPolicy()) == NO_INTERSECTION_FOUND

    def test_required_result(self):
        index = MemoryIndex()
        index.add("p/master#2", ["b", "a"], result=BuildResult.FAILURE)
        index.add("p/master#1", ["a"], result=BuildResult.UNSTABLE)
        targets = ["p/master#2", "p/master#1"]
        finder = IntersectionFinder(index)
        assert finder.find(CURRENT, ["a"], targets, SearchPolicy()) == "p/master#2"
        policy = SearchPolicy(required_result=BuildResult.UNSTABLE)
        assert finder.find(CURRENT, ["a"], targets, policy) == "p/master#1"
        policy = SearchPolicy(required_result=BuildResult.SUCCESS)
        assert finder.find(CURRENT, ["a"], targets, policy) == NO_INTERSECTION_FOUND


class TestBudget:
    def test_budget_exhausted(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["b", "c"], ["d"]])
        policy = SearchPolicy(max_commits=3)
        outcome = IntersectionFinder(index).search(CURRENT, ["a", "x"], targets, policy)
        assert outcome.build_id == NO_INTERSECTION_FOUND
        assert outcome.charged == 3
        assert any("budget of 3 exhausted" in m for m in outcome.messages)

    def test_budget_sufficient(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["b", "c"], ["d"]])
        policy = SearchPolicy(max_commits=4)
        assert IntersectionFinder(index).find(CURRENT, ["a", "x"], targets, policy) == "p/master#1"

    def test_budget_bounds_current_commits(self):
        index = MemoryIndex()
        targets = _master(index, [["a"]])
        finder = IntersectionFinder(index)
        assert finder.find(CURRENT, ["x", "y", "a"], targets, SearchPolicy(max_commits=2)) == NO_INTERSECTION_FOUND
        assert finder.find(CURRENT, ["x", "y", "a"], targets, SearchPolicy(max_commits=3)) == "p/master#1"

    def test_stops_looking_up_after_budget(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["b"], ["c"], ["d"]])
        IntersectionFinder(index).find(CURRENT, ["x"], targets, SearchPolicy(max_commits=2))
        assert index.lookups == ["p/master#4", "p/master#3"]


class TestSkipUnknownCommits:
    def test_candidate_with_unknown_commits_skipped(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["m", "a2"]])
        index.windows["p/master#2"] = CommitWindow(commits=("m", "a"), latest_commit="m")
        policy = SearchPolicy(skip_unknown_commits=True)
        finder = IntersectionFinder(index)
        assert finder.find(CURRENT, ["f", "a"], targets, SearchPolicy()) == "p/master#2"
        assert finder.find(CURRENT, ["f", "a"], targets, policy) == "p/master#1"

    def test_skipped_candidate_is_charged(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["m", "n"]])
        policy = SearchPolicy(max_commits=2, skip_unknown_commits=True)
        outcome = IntersectionFinder(index).search(CURRENT, ["a"], targets, policy)
        assert outcome.build_id == NO_INTERSECTION_FOUND
        assert outcome.charged == 2


class TestLatestBuildIfNotFound:
    def test_fallback_to_newest(self):
        index = MemoryIndex()
        targets = _master(index, [["a"], ["b"]])
        policy = SearchPolicy(latest_build_if_not_found=True)
        outcome = IntersectionFinder(index).search(CURRENT, ["x"], targets, policy)
        assert outcome.build_id == "p/master#2"
        assert outcome.fallback and not outcome.matched

    def test_fallback_skips_deleted_and_running(self):
        index = MemoryIndex()
        index.add("p/master#1", ["a"])
        index.add("p/master#2", ["b"], result=None)
        targets = ["p/master#3", "p/master#2", "p/master#1"]
        policy = SearchPolicy(latest_build_if_not_found=True)
        assert IntersectionFinder(index).find(CURRENT, ["x"], targets, policy) == "p/master#1"

    def test_fallback_with_empty_current_commits(self):
        index = MemoryIndex()
        targets = _master(index, [["a"]])
        policy = SearchPolicy(latest_build_if_not_found=True)
        assert IntersectionFinder(index).find(CURRENT, [], targets, policy) == "p/master#1"

    def test_fallback_never_returns_current(self):
        index = MemoryIndex()
        index.add("app#1", ["a"])
        policy = SearchPolicy(latest_build_if_not_found=True)
        assert IntersectionFinder(index).find("app#1", ["x"], ["app#1"], policy) == NO_INTERSECTION_FOUND

    def test_no_candidates(self):
        policy = SearchPolicy(latest_build_if_not_found=True)
        outcome = IntersectionFinder(MemoryIndex()).search(CURRENT, ["a"], [], policy)
        assert outcome.build_id == NO_INTERSECTION_FOUND
        assert "No build available for the fallback" in outcome.messages


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    @given(history=target_history, current=current_commits, policy=policies)
    def test_deterministic(self, history, current, policy):
        index = MemoryIndex()
        targets = _populate(index, history)
        finder = IntersectionFinder(index)
        assert finder.search(CURRENT, current, targets, policy) == finder.search(
            CURRENT, current, targets, policy
        )

    @given(history=target_history, current=current_commits)
    def test_first_match_wins(self, history, current):
        index = MemoryIndex()
        targets = _populate(index, history)
        known = set(current)
        expected = next(
            (
                build_id
                for build_id, (commits, result) in zip(targets, history)
                if commits is not None and result is not None and known.intersection(commits)
            ),
            NO_INTERSECTION_FOUND,
        )
        policy = SearchPolicy(max_commits=1000)
        assert IntersectionFinder(index).find(CURRENT, current, targets, policy) == expected

    @given(
        history=target_history,
        current=current_commits,
        policy=policies,
        extra=st.integers(min_value=0, max_value=30),
    )
    def test_budget_monotonicity(self, history, current, policy, extra):
        index = MemoryIndex()
        targets = _populate(index, history)
        finder = IntersectionFinder(index)
        small = finder.search(CURRENT, current, targets, policy)
        larger = SearchPolicy(
            max_commits=policy.max_commits + extra,
            skip_unknown_commits=policy.skip_unknown_commits,
            latest_build_if_not_found=policy.latest_build_if_not_found,
            required_result=policy.required_result,
        )
        big = finder.search(CURRENT, current, targets, larger)
        if small.matched:
            assert big.matched
            assert targets.index(big.build_id) <= targets.index(small.build_id)

    @given(history=target_history, current=current_commits, policy=policies)
    def test_never_returns_current_build(self, history, current, policy):
        index = MemoryIndex()
        targets = _populate(index, history)
        if targets:
            own = targets[0]
            assert IntersectionFinder(index).find(own, current, targets, policy) != own

    @given(history=target_history, current=current_commits, policy=policies)
    @settings(max_examples=200)
    def test_skip_unknown_only_returns_known_windows(self, history, current, policy):
        index = MemoryIndex()
        targets = _populate(index, history)
        strict = SearchPolicy(
            max_commits=policy.max_commits,
            skip_unknown_commits=True,
            required_result=policy.required_result,
        )
        outcome = IntersectionFinder(index).search(CURRENT, current, targets, strict)
        if outcome.matched:
            known = set(current[: strict.max_commits])
            assert set(index.window_of(outcome.build_id).commits) <= known
