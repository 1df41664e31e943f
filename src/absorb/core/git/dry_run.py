"""Dry-run Git wrapper.

This module provides a Git wrapper that never moves a ref while delegating
every read and object write to the wrapped implementation. Objects written
during a dry run are unreferenced and left for git's garbage collection.
"""

from collections.abc import Sequence
from pathlib import Path

from absorb.cli.output import user_output
from absorb.core.diff import FileDiff
from absorb.core.git.abc import CommitInfo, Git, Signature

# ============================================================================
# Dry-run Wrapper
# ============================================================================


class DryRunGit(Git):
    """Wrapper that prints ref updates instead of executing them.

    Usage:
        real_ops = RealGit()
        dry_run_ops = DryRunGit(real_ops)

        # Prints what would happen instead of moving the branch
        dry_run_ops.compare_and_swap_ref(repo_root, ref, old, new, message)
    """

    def __init__(self, wrapped: Git) -> None:
        """Create a dry-run wrapper around a Git implementation.

        Args:
            wrapped: The Git implementation to wrap (usually RealGit or FakeGit)
        """
        self._wrapped = wrapped

    # Read-only operations: delegate to wrapped implementation

    def get_repository_root(self, cwd: Path) -> Path | None:
        return self._wrapped.get_repository_root(cwd)

    def get_head_ref(self, repo_root: Path) -> str | None:
        return self._wrapped.get_head_ref(repo_root)

    def resolve_branch_tip(self, repo_root: Path) -> str:
        return self._wrapped.resolve_branch_tip(repo_root)

    def resolve_commitish(self, repo_root: Path, rev: str) -> str | None:
        return self._wrapped.resolve_commitish(repo_root, rev)

    def get_upstream_commit(self, repo_root: Path) -> str | None:
        return self._wrapped.get_upstream_commit(repo_root)

    def is_ancestor(self, repo_root: Path, ancestor: str, descendant: str) -> bool:
        return self._wrapped.is_ancestor(repo_root, ancestor, descendant)

    def get_user_email(self, repo_root: Path) -> str | None:
        return self._wrapped.get_user_email(repo_root)

    def read_commit(self, repo_root: Path, commit_id: str) -> CommitInfo:
        return self._wrapped.read_commit(repo_root, commit_id)

    def read_file(self, repo_root: Path, tree_id: str, path: str) -> str | None:
        return self._wrapped.read_file(repo_root, tree_id, path)

    def read_tree_diff(
        self,
        repo_root: Path,
        old_tree: str,
        new_tree: str,
        paths: Sequence[str] | None = None,
    ) -> list[FileDiff]:
        return self._wrapped.read_tree_diff(repo_root, old_tree, new_tree, paths)

    def read_index_diff(
        self, repo_root: Path, tree_id: str, context_lines: int = 0
    ) -> list[FileDiff]:
        return self._wrapped.read_index_diff(repo_root, tree_id, context_lines)

    # Object writes: unreferenced objects are harmless, delegate

    def write_tree(
        self, repo_root: Path, base_tree: str, edits: Sequence[tuple[str, str]]
    ) -> str:
        return self._wrapped.write_tree(repo_root, base_tree, edits)

    def write_commit(
        self,
        repo_root: Path,
        tree_id: str,
        parents: Sequence[str],
        author: Signature,
        committer: Signature,
        message: str,
    ) -> str:
        return self._wrapped.write_commit(repo_root, tree_id, parents, author, committer, message)

    # Ref updates: print dry-run message instead of executing

    def compare_and_swap_ref(
        self, repo_root: Path, ref: str, expected_old: str, new: str, message: str
    ) -> None:
        """Print dry-run message instead of moving the ref."""
        user_output(f"[DRY RUN] Would run: git update-ref {ref} {new} {expected_old}")
