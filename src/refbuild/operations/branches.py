"""Job naming and multi-branch resolution for refbuild.

Validates job names and resolves the primary-branch job of a multi-branch
project from the job store.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from refbuild.exceptions import InvalidJobNameError

if TYPE_CHECKING:
    from refbuild.storage.repositories import JobRepository


# Characters forbidden in job names (git-ref style, plus '#' used by build ids)
_FORBIDDEN_CHARS = re.compile(r"[\s~^:?*\[\\#]")


def validate_job_name(name: str) -> None:
    """Validate a job name against git-ref-like naming rules.

    Raises InvalidJobNameError on violation.
    """
    if not name:
        raise InvalidJobNameError(name, "job name cannot be empty")

    if ".." in name:
        raise InvalidJobNameError(name, "job name cannot contain '..'")

    if name.startswith(".") or name.endswith("."):
        raise InvalidJobNameError(name, "job name cannot start or end with '.'")

    if _FORBIDDEN_CHARS.search(name):
        raise InvalidJobNameError(
            name, "job name contains forbidden characters (whitespace, ~, ^, :, ?, *, [, \\, #)"
        )

    if name.startswith("/") or name.endswith("/") or "//" in name:
        raise InvalidJobNameError(name, "job name has invalid slash usage")


def branch_job_name(project: str, branch: str) -> str:
    """Name of the job that builds *branch* of *project*, e.g. ``p/master``."""
    return f"{project}/{branch}"


class StoreBranchResolver:
    """BranchResolver backed by the job store.

    A job name may be a branch job (``p/feature``) or a project name
    (``p``); both resolve to the project's primary branch job.
    """

    def __init__(self, job_repo: JobRepository) -> None:
        self._job_repo = job_repo

    def primary_branch_job(self, job_name: str) -> str | None:
        job = self._job_repo.get(job_name)
        project = job.project if job is not None else job_name
        if project is None:
            return None
        primary = self._job_repo.get_primary_branch(project)
        return primary.name if primary is not None else None
