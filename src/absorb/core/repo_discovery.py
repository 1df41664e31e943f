"""Repository discovery functionality.

Discovers git repository information from a given path without requiring
full AbsorbContext (enables config loading before context creation).
"""

from dataclasses import dataclass
from pathlib import Path

from absorb.core.git.abc import Git


@dataclass(frozen=True)
class RepoContext:
    """Represents a git repository's working tree root."""

    root: Path


@dataclass(frozen=True)
class NoRepoSentinel:
    """Sentinel value indicating execution outside a git repository.

    Commands that require repo context can check for this sentinel and fail
    fast.
    """

    message: str = "Not inside a git repository"


def discover_repo_or_sentinel(cwd: Path, git: Git) -> RepoContext | NoRepoSentinel:
    """Find the repository containing ``cwd``.

    Returns:
        RepoContext if inside a git working tree, NoRepoSentinel otherwise
    """
    if not cwd.exists():
        return NoRepoSentinel(message=f"Start path '{cwd}' does not exist")

    root = git.get_repository_root(cwd)
    if root is None:
        return NoRepoSentinel()
    return RepoContext(root=root)
