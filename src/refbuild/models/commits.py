"""Commit window domain model.

A CommitWindow is the set of commits a build newly observed since the
previous build of its job. It is attached to exactly one build and never
changes after it has been recorded.
"""

from __future__ import annotations

from pydantic import BaseModel, model_validator


class CommitWindow(BaseModel):
    """Commits newly introduced by one build, newest first.

    Attributes:
        commits: Commit ids reachable from HEAD that were not known to the
            previous build of the same job, newest first.
        latest_commit: HEAD of the build. Empty only when HEAD could not
            be resolved.
        parent_commit: The commit right before the oldest entry of
            ``commits``, i.e. the frontier known to the previous build.
            Empty for the first build of a job.
    """

    model_config = {"frozen": True}

    commits: tuple[str, ...] = ()
    latest_commit: str = ""
    parent_commit: str = ""

    @model_validator(mode="after")
    def _check_invariants(self) -> CommitWindow:
        if len(set(self.commits)) != len(self.commits):
            raise ValueError("commit window contains duplicate commits")
        if self.parent_commit and self.parent_commit in self.commits:
            raise ValueError(
                f"parent commit {self.parent_commit} is part of the window"
            )
        if self.commits and self.latest_commit != self.commits[0]:
            raise ValueError("latest commit must be the newest commit of the window")
        return self

    @classmethod
    def empty(cls) -> CommitWindow:
        """Window of a build whose HEAD could not be resolved."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.commits

    @property
    def is_first_build(self) -> bool:
        """True if the window reaches back without a known boundary."""
        return not self.parent_commit

    @property
    def has_head(self) -> bool:
        return bool(self.latest_commit)

    @property
    def size(self) -> int:
        return len(self.commits)

    def __contains__(self, commit_id: object) -> bool:
        return commit_id in self.commits

    def __str__(self) -> str:
        latest = self.latest_commit[:8] if self.latest_commit else "-"
        parent = self.parent_commit[:8] if self.parent_commit else "-"
        return f"{latest} ({len(self.commits)} new commits, parent {parent})"
