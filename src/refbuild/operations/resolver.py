"""Reference resolver: picks the reference build of a finished build.

Chooses the target job (configured job, primary branch, or the build's own
job), runs the intersection finder against that job's build history and
wraps the outcome into a ReferencePointer.

Finding a reference build is an enrichment, never a gate: every failure in
here ends as a pointer without reference build, not as an exception.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from refbuild.models.reference import ReferencePointer
from refbuild.operations.intersection import IntersectionFinder

if TYPE_CHECKING:
    from refbuild.models.config import ReferenceConfig
    from refbuild.operations.index import BuildCommitIndex
    from refbuild.protocols import BranchResolver
    from refbuild.storage.repositories import JobRepository

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Resolves the reference build of a build from its recorded commits."""

    def __init__(
        self,
        index: BuildCommitIndex,
        job_repo: JobRepository,
        branches: BranchResolver | None = None,
    ) -> None:
        self._index = index
        self._job_repo = job_repo
        self._branches = branches
        self._finder = IntersectionFinder(index)

    def resolve(self, build_id: str, config: ReferenceConfig) -> ReferencePointer:
        """Resolve the reference build of *build_id*.

        The caller persists the returned pointer against the build.
        """
        messages: list[str] = []
        try:
            build = self._index.lookup(build_id)
            if build is None:
                messages.append(f"Build {build_id} not found")
                return ReferencePointer(owner=build_id, messages=tuple(messages))

            target_job = self.target_job(build.job_name, config, messages)

            if self._index.window_of(build_id) is None:
                messages.append(f"No commits recorded for {build_id}")
            policy = config.to_policy()
            current_commits = self._index.branch_history(build_id, policy.max_commits)
            outcome = self._finder.search(
                build_id,
                current_commits,
                self._index.builds_of(target_job),
                policy,
            )
            messages.extend(outcome.messages)
        except Exception as exc:
            logger.warning(
                "Reference resolution for %s raised %s: %s",
                build_id,
                type(exc).__name__,
                exc,
            )
            messages.append(f"Reference resolution failed: {exc}")
            return ReferencePointer(owner=build_id, messages=tuple(messages))

        pointer = ReferencePointer.from_build_id(build_id, outcome.build_id, tuple(messages))
        logger.info("Reference build of %s: %s", build_id, pointer.reference_build_id or "none")
        return pointer

    def target_job(
        self,
        job_name: str,
        config: ReferenceConfig,
        messages: list[str] | None = None,
    ) -> str:
        """Name of the job whose builds are searched for a reference.

        A configured reference job wins when it exists; the name of a
        multi-branch project resolves to its primary branch.
        Without configuration, branch jobs use their project's primary
        branch and other jobs use themselves. Anything unresolvable falls
        back to *job_name*.
        """
        trail = messages if messages is not None else []
        if config.reference_job:
            target = self._resolve_configured(config.reference_job)
            if target is not None:
                trail.append(f"Using reference job {target}")
                return target
            logger.warning(
                "Reference job %s not found, using %s", config.reference_job, job_name
            )
            trail.append(f"Reference job {config.reference_job} not found, using {job_name}")
            return job_name

        job = self._job_repo.get(job_name)
        if job is not None and job.project is not None and self._branches is not None:
            primary = self._branches.primary_branch_job(job_name)
            if primary is not None and primary != job_name:
                trail.append(f"Using primary branch job {primary}")
                return primary
            if primary is None:
                trail.append(f"No primary branch for project {job.project}, using {job_name}")
                return job_name
        trail.append(f"Using own job {job_name}")
        return job_name

    def _resolve_configured(self, reference_job: str) -> str | None:
        job = self._job_repo.get(reference_job)
        if job is not None:
            return job.name
        # Not a job: may be the name of a multi-branch project.
        if self._branches is not None:
            return self._branches.primary_branch_job(reference_job)
        return None
