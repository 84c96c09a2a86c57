"""Domain models for refbuild."""

from refbuild.models.build import BuildInfo, BuildResult, JobInfo
from refbuild.models.commits import CommitWindow
from refbuild.models.config import LedgerConfig, ReferenceConfig
from refbuild.models.reference import NO_INTERSECTION_FOUND, BuildRecord, ReferencePointer

__all__ = [
    "BuildInfo",
    "BuildRecord",
    "BuildResult",
    "CommitWindow",
    "JobInfo",
    "LedgerConfig",
    "NO_INTERSECTION_FOUND",
    "ReferenceConfig",
    "ReferencePointer",
]
