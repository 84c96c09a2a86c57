"""Reference pointer domain model.

A ReferencePointer is attached to exactly one build (its owner) and names
the build chosen as comparison baseline, or nothing.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from refbuild.models.build import BuildInfo
from refbuild.models.commits import CommitWindow

# Returned by the intersection finder when no reference build qualifies.
NO_INTERSECTION_FOUND = "-"


class ReferencePointer(BaseModel):
    """Reference build of one owner build.

    The target id may dangle once the referenced build has been deleted;
    that is a valid state, not an error.
    """

    model_config = {"frozen": True}

    owner: str
    reference_build_id: Optional[str] = None
    messages: tuple[str, ...] = ()

    @classmethod
    def from_build_id(
        cls, owner: str, build_id: str, messages: tuple[str, ...] = ()
    ) -> ReferencePointer:
        """Wrap a finder result, mapping NO_INTERSECTION_FOUND to no reference."""
        if build_id == NO_INTERSECTION_FOUND:
            return cls(owner=owner, messages=messages)
        return cls(owner=owner, reference_build_id=build_id, messages=messages)

    @property
    def has_reference_build(self) -> bool:
        return self.reference_build_id is not None

    def __str__(self) -> str:
        target = self.reference_build_id or "no reference build"
        return f"{self.owner} -> {target}"


class BuildRecord(BaseModel):
    """Everything recorded for one completed build.

    Returned by ``Ledger.complete_build()``.
    """

    build: BuildInfo
    window: CommitWindow
    reference: ReferencePointer

    def __str__(self) -> str:
        return f"{self.build} | {self.window} | {self.reference}"
