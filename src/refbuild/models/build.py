"""Job and build domain models.

JobInfo and BuildInfo are the SDK-facing models returned by the ledger.
BuildResult is the enum stored on completed builds.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class BuildResult(str, enum.Enum):
    """Outcome of a completed build, best to worst."""

    SUCCESS = "success"
    UNSTABLE = "unstable"
    FAILURE = "failure"
    NOT_BUILT = "not_built"
    ABORTED = "aborted"

    @property
    def ordinal(self) -> int:
        return _RESULT_ORDER.index(self)

    def is_better_or_equal(self, other: BuildResult) -> bool:
        """True if this result is at least as good as *other*."""
        return self.ordinal <= other.ordinal

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


_RESULT_ORDER = list(BuildResult)


class JobInfo(BaseModel):
    """SDK-facing job information model.

    A job is either an independent project or one branch of a multi-branch
    project. Exactly one branch per project should be flagged primary; it
    is the comparison target for the other branches.
    """

    name: str
    project: Optional[str] = None
    branch: Optional[str] = None
    is_primary: bool = False
    created_at: datetime

    @property
    def is_branch(self) -> bool:
        return self.project is not None

    def __str__(self) -> str:
        if self.project is None:
            return self.name
        flag = " (primary)" if self.is_primary else ""
        return f"{self.name} [{self.project}:{self.branch}]{flag}"


class BuildInfo(BaseModel):
    """SDK-facing build information model.

    ``build_id`` is ``"<job>#<number>"``. It is globally unique and stays
    valid as a reference even after the build itself has been deleted.
    """

    build_id: str
    job_name: str
    number: int
    result: Optional[BuildResult] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.result is not None

    def __str__(self) -> str:
        state = self.result.value if self.result else "running"
        return f"{self.build_id} ({state})"


def format_build_id(job_name: str, number: int) -> str:
    """Build the externalizable id of build *number* of *job_name*."""
    return f"{job_name}#{number}"


def parse_build_id(build_id: str) -> tuple[str, int]:
    """Split a build id into ``(job_name, number)``.

    Raises ValueError for ids that do not end in ``#<number>``.
    """
    job_name, sep, number = build_id.rpartition("#")
    if not sep or not job_name or not number.isdigit():
        raise ValueError(f"Malformed build id: {build_id!r}")
    return job_name, int(number)
