"""Configuration models for refbuild.

ReferenceConfig holds the reference-build search options a pipeline passes
to the resolver. LedgerConfig holds per-ledger storage settings.

Both are validated at construction: out-of-range values raise
``pydantic.ValidationError`` and never reach the search engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field

from refbuild.models.build import BuildResult

if TYPE_CHECKING:
    from refbuild.operations.intersection import SearchPolicy

DEFAULT_MAX_COMMITS = 100
DEFAULT_RECORD_LIMIT = 200


class ReferenceConfig(BaseModel):
    """Options for finding the reference build of a build.

    Pipeline-style camelCase keys are accepted as aliases::

        ReferenceConfig.model_validate({"maxCommits": 2, "latestBuildIfNotFound": True})
    """

    model_config = {"populate_by_name": True, "frozen": True}

    reference_job: str = Field(default="", alias="referenceJob")
    max_commits: int = Field(default=DEFAULT_MAX_COMMITS, gt=0, alias="maxCommits")
    skip_unknown_commits: bool = Field(default=False, alias="skipUnknownCommits")
    latest_build_if_not_found: bool = Field(
        default=False, alias="latestBuildIfNotFound"
    )
    required_result: Optional[BuildResult] = Field(default=None, alias="requiredResult")

    def to_policy(self) -> SearchPolicy:
        """Convert to the policy consumed by the intersection finder."""
        from refbuild.operations.intersection import SearchPolicy

        return SearchPolicy(
            max_commits=self.max_commits,
            skip_unknown_commits=self.skip_unknown_commits,
            latest_build_if_not_found=self.latest_build_if_not_found,
            required_result=self.required_result,
        )


class LedgerConfig(BaseModel):
    """Per-ledger configuration."""

    db_path: str = ":memory:"
    db_url: Optional[str] = None
    record_limit: int = Field(default=DEFAULT_RECORD_LIMIT, gt=0)
    reference: ReferenceConfig = Field(default_factory=ReferenceConfig)
