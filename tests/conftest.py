"""Shared test fixtures for refbuild.

Provides in-memory SQLite engine, session, and repository fixtures, plus
SampleRepo: an in-memory commit graph that implements VersionControl.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from refbuild.exceptions import VersionControlError
from refbuild.storage.engine import create_ledger_engine, init_db
from refbuild.storage.sqlite import (
    SqliteBuildRepository,
    SqliteCommitWindowRepository,
    SqliteJobRepository,
    SqliteReferencePointerRepository,
)


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_ledger_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    """Session with automatic rollback after each test."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sess = SessionLocal()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def job_repo(session: Session) -> SqliteJobRepository:
    return SqliteJobRepository(session)


@pytest.fixture
def build_repo(session: Session) -> SqliteBuildRepository:
    return SqliteBuildRepository(session)


@pytest.fixture
def window_repo(session: Session) -> SqliteCommitWindowRepository:
    return SqliteCommitWindowRepository(session)


@pytest.fixture
def pointer_repo(session: Session) -> SqliteReferencePointerRepository:
    return SqliteReferencePointerRepository(session)


@pytest.fixture
def repo() -> SampleRepo:
    return SampleRepo()


@pytest.fixture
def ledger():
    """In-memory Ledger, closed after the test."""
    led = make_ledger()
    yield led
    led.close()


# ------------------------------------------------------------------
# Sample repository
# ------------------------------------------------------------------


class SampleRepo:
    """In-memory git-like commit graph implementing VersionControl.

    Commit ids are ``c1``, ``c2``, ... in creation order. Branches are
    movable names; ``checkout`` switches the working branch the way
    ``git checkout [-b]`` does.
    """

    def __init__(self, branch: str = "master") -> None:
        self._parents: dict[str, tuple[str, ...]] = {}
        self._order: dict[str, int] = {}
        self._branches: dict[str, str | None] = {branch: None}
        self._current = branch
        self.broken = False
        self.walks = 0

    @property
    def head(self) -> str | None:
        return self._branches[self._current]

    def commit(self, count: int = 1) -> str:
        """Add *count* commits on the current branch and return the last id."""
        for _ in range(count):
            commit_id = f"c{len(self._parents) + 1}"
            parent = self.head
            self._parents[commit_id] = (parent,) if parent else ()
            self._order[commit_id] = len(self._order)
            self._branches[self._current] = commit_id
        return self.head

    def checkout(self, branch: str, *, create: bool = False) -> None:
        if create:
            if branch in self._branches:
                raise ValueError(f"branch {branch} exists")
            self._branches[branch] = self.head
        elif branch not in self._branches:
            raise ValueError(f"no branch {branch}")
        self._current = branch

    def merge(self, branch: str) -> str:
        """Merge *branch* into the current branch with a merge commit."""
        other = self._branches[branch]
        commit_id = f"c{len(self._parents) + 1}"
        self._parents[commit_id] = tuple(p for p in (self.head, other) if p)
        self._order[commit_id] = len(self._order)
        self._branches[self._current] = commit_id
        return commit_id

    def reset(self, commit_id: str) -> None:
        """Point the current branch at *commit_id* (history rewrite)."""
        self._branches[self._current] = commit_id

    # -- VersionControl ------------------------------------------------

    def head_commit(self) -> str:
        if self.broken:
            raise VersionControlError("repository unavailable")
        if self.head is None:
            raise VersionControlError(f"branch {self._current} has no commits")
        return self.head

    def iter_commits(self, head: str) -> Iterator[str]:
        """Yield reachable commits, newest first (like ``git rev-list``)."""
        if self.broken:
            raise VersionControlError("repository unavailable")
        if head not in self._parents:
            raise VersionControlError(f"unknown revision {head}")
        self.walks += 1
        seen = {head}
        queue = [(-self._order[head], head)]
        while queue:
            _, commit_id = heapq.heappop(queue)
            yield commit_id
            for parent in self._parents[commit_id]:
                if parent not in seen:
                    seen.add(parent)
                    heapq.heappush(queue, (-self._order[parent], parent))


class FlakyRepo(SampleRepo):
    """SampleRepo whose history walk fails after *fail_after* commits."""

    def __init__(self, fail_after: int) -> None:
        super().__init__()
        self._fail_after = fail_after

    def iter_commits(self, head: str) -> Iterator[str]:
        for n, commit_id in enumerate(super().iter_commits(head)):
            if n >= self._fail_after:
                raise VersionControlError("connection reset")
            yield commit_id


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------


def make_ledger(**kwargs) -> "Ledger":
    """Create an in-memory Ledger for testing."""
    from refbuild import Ledger

    return Ledger.open(":memory:", **kwargs)


def make_project(ledger, project: str = "p", branches: tuple[str, ...] = ("master", "feature")):
    """Register a multi-branch project; the first branch is primary."""
    for n, branch in enumerate(branches):
        ledger.create_branch_job(project, branch, primary=n == 0)
