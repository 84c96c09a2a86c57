"""SQLAlchemy ORM schema for refbuild.

Defines all database tables: jobs, builds, commit_windows, window_commits,
reference_pointers, _refbuild_meta.

IMPORTANT: BuildResult is imported from the domain models -- it is NOT
redefined here. The ORM uses the same Python enum.

Windows and pointers are keyed by build id, not by a foreign key to the
builds table: a pointer to a deleted build must survive as a dangling id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from refbuild.models.build import BuildResult


class Base(DeclarativeBase):
    """Base class for all refbuild ORM models."""

    pass


class JobRow(Base):
    """A job: an independent project or one branch of a multi-branch project."""

    __tablename__ = "jobs"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    project: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    branch: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Next build number to hand out; numbers are never reused.
    next_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_jobs_project", "project"),
    )


class BuildRow(Base):
    """One execution of a job."""

    __tablename__ = "builds"

    build_id: Mapped[str] = mapped_column(String(300), primary_key=True)
    job_name: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("jobs.name"),
        nullable=False,
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    result: Mapped[Optional[BuildResult]] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("job_name", "number", name="uq_builds_job_number"),
        Index("ix_builds_job_number", "job_name", "number"),
    )


class CommitWindowRow(Base):
    """Header of the commit window recorded for a build."""

    __tablename__ = "commit_windows"

    build_id: Mapped[str] = mapped_column(String(300), primary_key=True)
    latest_commit: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    parent_commit: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    commit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class WindowCommitRow(Base):
    """One commit of a commit window.

    Position 0 is the newest commit (the build's HEAD).
    """

    __tablename__ = "window_commits"

    build_id: Mapped[str] = mapped_column(
        String(300),
        ForeignKey("commit_windows.build_id"),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    commit_id: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_window_commits_commit", "commit_id"),
    )


class ReferencePointerRow(Base):
    """The reference build chosen for an owner build.

    ``reference_build_id`` is NULL when no reference build was found.
    ``messages_json`` holds the resolution trail as a JSON list of strings.
    """

    __tablename__ = "reference_pointers"

    owner_build_id: Mapped[str] = mapped_column(String(300), primary_key=True)
    reference_build_id: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    messages_json: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_reference_pointers_target", "reference_build_id"),
    )


class LedgerMetaRow(Base):
    """Key-value metadata for the ledger database itself (e.g., schema version)."""

    __tablename__ = "_refbuild_meta"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
