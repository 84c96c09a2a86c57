"""Version-control clients for refbuild."""

from refbuild.vcs.git import GitRepository

__all__ = ["GitRepository"]
