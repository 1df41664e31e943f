"""High-level git object store interface.

This module provides a clean abstraction over git plumbing calls, making the
absorb engine testable without a repository on disk.

Architecture:
- Git: Abstract base class defining the interface
- RealGit: Production implementation using subprocess
- DryRunGit: Wrapper that refuses to move refs
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from absorb.core.diff import FileDiff


@dataclass(frozen=True)
class Signature:
    """Author or committer identity as recorded in a commit object.

    ``date`` is kept in git's raw ``<unix-seconds> <tz-offset>`` form so that
    regenerated commits carry exactly the original timestamps.
    """

    name: str
    email: str
    date: str

    def format(self) -> str:
        return f"{self.name} <{self.email}> {self.date}"


@dataclass(frozen=True)
class CommitInfo:
    """Immutable view of a commit object."""

    commit_id: str
    parents: tuple[str, ...]
    tree: str
    author: Signature
    committer: Signature
    message: str

    @property
    def summary(self) -> str:
        """First line of the message."""
        return self.message.split("\n", 1)[0]

    @property
    def short_id(self) -> str:
        return self.commit_id[:12]


# ============================================================================
# Abstract Interface
# ============================================================================


class Git(ABC):
    """Abstract interface for the git object store.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.
    """

    @abstractmethod
    def get_repository_root(self, cwd: Path) -> Path | None:
        """Get the top-level directory of the working tree containing cwd.

        Returns:
            Repository root, or None if cwd is not inside a git working tree
        """
        ...

    @abstractmethod
    def get_head_ref(self, repo_root: Path) -> str | None:
        """Get the full name of the branch HEAD points at.

        Returns:
            Ref name (e.g., 'refs/heads/feature'), or None for a detached HEAD
        """
        ...

    @abstractmethod
    def resolve_branch_tip(self, repo_root: Path) -> str:
        """Get the commit id HEAD currently resolves to."""
        ...

    @abstractmethod
    def resolve_commitish(self, repo_root: Path, rev: str) -> str | None:
        """Resolve a revision expression to a commit id, or None if it does not exist."""
        ...

    @abstractmethod
    def get_upstream_commit(self, repo_root: Path) -> str | None:
        """Get the commit the current branch's upstream points at, if one is configured."""
        ...

    @abstractmethod
    def is_ancestor(self, repo_root: Path, ancestor: str, descendant: str) -> bool:
        """Check whether ``ancestor`` is reachable from ``descendant``.

        A commit counts as its own ancestor.
        """
        ...

    @abstractmethod
    def get_user_email(self, repo_root: Path) -> str | None:
        """Get the configured user.email, or None if unset."""
        ...

    @abstractmethod
    def read_commit(self, repo_root: Path, commit_id: str) -> CommitInfo:
        """Read a commit object.

        Raises:
            ObjectStoreFailure: If the commit does not exist
        """
        ...

    @abstractmethod
    def read_file(self, repo_root: Path, tree_id: str, path: str) -> str | None:
        """Read a file's content from a tree, or None if the path is absent."""
        ...

    @abstractmethod
    def read_tree_diff(
        self,
        repo_root: Path,
        old_tree: str,
        new_tree: str,
        paths: Sequence[str] | None = None,
    ) -> list[FileDiff]:
        """Diff two trees with zero context lines.

        Args:
            repo_root: Path to the repository root
            old_tree: Tree id of the old side
            new_tree: Tree id of the new side
            paths: Optional path filter; None diffs every path

        Returns:
            One FileDiff per changed file
        """
        ...

    @abstractmethod
    def read_index_diff(
        self, repo_root: Path, tree_id: str, context_lines: int = 0
    ) -> list[FileDiff]:
        """Diff a tree against the staged content (never the working tree).

        Args:
            repo_root: Path to the repository root
            tree_id: Tree id of the old side
            context_lines: Unchanged lines to include around each change

        Returns:
            One FileDiff per staged file
        """
        ...

    @abstractmethod
    def write_tree(
        self, repo_root: Path, base_tree: str, edits: Sequence[tuple[str, str]]
    ) -> str:
        """Write a new tree equal to ``base_tree`` with some files replaced.

        Args:
            repo_root: Path to the repository root
            base_tree: Tree to start from
            edits: (path, new_content) pairs; each path must exist in base_tree

        Returns:
            The new tree id
        """
        ...

    @abstractmethod
    def write_commit(
        self,
        repo_root: Path,
        tree_id: str,
        parents: Sequence[str],
        author: Signature,
        committer: Signature,
        message: str,
    ) -> str:
        """Create a commit object without touching any ref.

        Returns:
            The new commit id
        """
        ...

    @abstractmethod
    def compare_and_swap_ref(
        self, repo_root: Path, ref: str, expected_old: str, new: str, message: str
    ) -> None:
        """Point ``ref`` at ``new`` only if it still points at ``expected_old``.

        Args:
            repo_root: Path to the repository root
            ref: Full ref name, or 'HEAD' for a detached HEAD
            expected_old: Commit id the ref must currently hold
            new: Commit id to store
            message: Reflog message

        Raises:
            ConcurrentModification: If the ref no longer holds expected_old
        """
        ...
