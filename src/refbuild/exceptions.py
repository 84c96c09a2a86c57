"""refbuild exception hierarchy.

All refbuild-specific exceptions inherit from RefBuildError.
"""


class RefBuildError(Exception):
    """Base exception for all refbuild errors."""


class JobNotFoundError(RefBuildError):
    """Raised when a job lookup fails."""

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        super().__init__(f"Job not found: {job_name}")


class JobExistsError(RefBuildError):
    """Raised when trying to create a job that already exists."""

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        super().__init__(f"Job already exists: {job_name}")


class InvalidJobNameError(RefBuildError):
    """Raised when a job name violates naming rules."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid job name '{name}': {reason}")


class BuildNotFoundError(RefBuildError):
    """Raised when a build id lookup fails (unknown or deleted build)."""

    def __init__(self, build_id: str) -> None:
        self.build_id = build_id
        super().__init__(f"Build not found: {build_id}")


class BuildStateError(RefBuildError):
    """Raised when a build is not in the state an operation requires.

    For example finishing a build that already has a result.
    """


class VersionControlError(RefBuildError):
    """Raised by version-control clients when history cannot be read.

    The commit recorder converts this into an empty commit window, it never
    reaches the build.
    """
