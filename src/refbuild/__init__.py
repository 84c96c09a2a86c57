"""refbuild: reference builds for CI jobs.

Every build records the commits it newly observed. The reference build of a
build is the newest build of a target job whose commits overlap its own,
found by a bounded search over the target job's build history.
"""

from refbuild._version import __version__

# Core entry point
from refbuild.ledger import Ledger

# Models
from refbuild.models.build import BuildInfo, BuildResult, JobInfo
from refbuild.models.commits import CommitWindow
from refbuild.models.reference import NO_INTERSECTION_FOUND, BuildRecord, ReferencePointer

# Configuration
from refbuild.models.config import LedgerConfig, ReferenceConfig

# Protocols
from refbuild.protocols import BranchResolver, VersionControl

# Engine
from refbuild.operations.branches import StoreBranchResolver
from refbuild.operations.index import BuildCommitIndex
from refbuild.operations.intersection import IntersectionFinder, SearchOutcome, SearchPolicy
from refbuild.operations.recorder import CommitRecorder, HistoryWalk
from refbuild.operations.resolver import ReferenceResolver

# Exceptions
from refbuild.exceptions import (
    BuildNotFoundError,
    BuildStateError,
    InvalidJobNameError,
    JobExistsError,
    JobNotFoundError,
    RefBuildError,
    VersionControlError,
)

__all__ = [
    "__version__",
    "Ledger",
    # Models
    "BuildInfo",
    "BuildRecord",
    "BuildResult",
    "CommitWindow",
    "JobInfo",
    "NO_INTERSECTION_FOUND",
    "ReferencePointer",
    # Configuration
    "LedgerConfig",
    "ReferenceConfig",
    # Protocols
    "BranchResolver",
    "VersionControl",
    # Engine
    "BuildCommitIndex",
    "CommitRecorder",
    "HistoryWalk",
    "IntersectionFinder",
    "ReferenceResolver",
    "SearchOutcome",
    "SearchPolicy",
    "StoreBranchResolver",
    # Exceptions
    "BuildNotFoundError",
    "BuildStateError",
    "InvalidJobNameError",
    "JobExistsError",
    "JobNotFoundError",
    "RefBuildError",
    "VersionControlError",
]
