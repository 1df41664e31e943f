"""Production Git implementation using subprocess.

This module provides the real Git implementation that executes git plumbing
commands via subprocess. Nothing here touches the working tree or the
repository's index: new trees are built in a throwaway index file.
"""

import os
import re
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path

from absorb.core.diff import FileDiff, parse_unified_diff
from absorb.core.errors import ConcurrentModification, ObjectStoreFailure
from absorb.core.git.abc import CommitInfo, Git, Signature
from absorb.core.subprocess import run_subprocess_with_context

_SIGNATURE = re.compile(r"^(?P<name>.*?) <(?P<email>.*)> (?P<date>\d+ [+-]\d{4})$")

# Diff output must be parseable regardless of the user's diff.* configuration.
_DIFF_FLAGS = [
    "-p",
    "--no-color",
    "--no-ext-diff",
    "--no-textconv",
    "--no-renames",
    "--ignore-submodules",
    "--full-index",
    "--src-prefix=a/",
    "--dst-prefix=b/",
]

_DEFAULT_FILE_MODE = "100644"


def _git(*args: str) -> list[str]:
    return ["git", "-c", "core.quotepath=false", *args]


def parse_signature(raw: str) -> Signature:
    """Parse an ``author``/``committer`` header value."""
    match = _SIGNATURE.match(raw)
    if match is None:
        raise ObjectStoreFailure(f"Malformed signature in commit header: {raw!r}")
    return Signature(name=match["name"], email=match["email"], date=match["date"])


def parse_commit_object(commit_id: str, raw: str) -> CommitInfo:
    """Parse the output of ``git cat-file commit``.

    Continuation lines of multi-line headers (gpgsig, mergetag) are skipped.
    """
    header, _, message = raw.partition("\n\n")
    tree: str | None = None
    parents: list[str] = []
    author: Signature | None = None
    committer: Signature | None = None

    for line in header.split("\n"):
        if line.startswith(" "):
            continue
        key, _, value = line.partition(" ")
        if key == "tree":
            tree = value
        elif key == "parent":
            parents.append(value)
        elif key == "author":
            author = parse_signature(value)
        elif key == "committer":
            committer = parse_signature(value)

    if tree is None or author is None or committer is None:
        raise ObjectStoreFailure(f"Malformed commit object {commit_id}")

    return CommitInfo(
        commit_id=commit_id,
        parents=tuple(parents),
        tree=tree,
        author=author,
        committer=committer,
        message=message,
    )


# ============================================================================
# Production Implementation
# ============================================================================


class RealGit(Git):
    """Production implementation using subprocess.

    All git operations execute actual git commands via subprocess.
    """

    def get_repository_root(self, cwd: Path) -> Path | None:
        """Get the top-level directory of the working tree containing cwd."""
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return Path(result.stdout.strip())

    def get_head_ref(self, repo_root: Path) -> str | None:
        """Get the full name of the branch HEAD points at."""
        result = subprocess.run(
            ["git", "symbolic-ref", "-q", "HEAD"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def resolve_branch_tip(self, repo_root: Path) -> str:
        """Get the commit id HEAD currently resolves to."""
        result = run_subprocess_with_context(
            ["git", "rev-parse", "--verify", "HEAD^{commit}"],
            operation_context="resolve HEAD",
            cwd=repo_root,
        )
        return result.stdout.strip()

    def resolve_commitish(self, repo_root: Path, rev: str) -> str | None:
        """Resolve a revision expression to a commit id."""
        result = subprocess.run(
            ["git", "rev-parse", "--verify", "-q", f"{rev}^{{commit}}"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def get_upstream_commit(self, repo_root: Path) -> str | None:
        """Get the commit the current branch's upstream points at."""
        return self.resolve_commitish(repo_root, "@{upstream}")

    def is_ancestor(self, repo_root: Path, ancestor: str, descendant: str) -> bool:
        """Check whether ``ancestor`` is reachable from ``descendant``."""
        result = subprocess.run(
            ["git", "merge-base", "--is-ancestor", ancestor, descendant],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode in (0, 1):
            return result.returncode == 0
        raise ObjectStoreFailure(
            f"Failed to check ancestry of {ancestor} against {descendant}: "
            f"{result.stderr.strip()}"
        )

    def get_user_email(self, repo_root: Path) -> str | None:
        """Get the configured user.email."""
        result = subprocess.run(
            ["git", "config", "--get", "user.email"],
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def read_commit(self, repo_root: Path, commit_id: str) -> CommitInfo:
        """Read a commit object."""
        result = run_subprocess_with_context(
            ["git", "cat-file", "commit", commit_id],
            operation_context=f"read commit {commit_id}",
            cwd=repo_root,
        )
        return parse_commit_object(commit_id, result.stdout)

    def _ls_tree_entry(self, repo_root: Path, tree_id: str, path: str) -> tuple[str, str] | None:
        """Return (mode, object id) of a blob entry, or None if absent."""
        result = run_subprocess_with_context(
            ["git", "ls-tree", "-z", tree_id, "--", path],
            operation_context=f"look up {path} in tree {tree_id}",
            cwd=repo_root,
        )
        entry = result.stdout.rstrip("\0")
        if not entry:
            return None
        meta, _, _ = entry.partition("\t")
        mode, object_type, object_id = meta.split(" ")
        if object_type != "blob":
            return None
        return mode, object_id

    def read_file(self, repo_root: Path, tree_id: str, path: str) -> str | None:
        """Read a file's content from a tree."""
        entry = self._ls_tree_entry(repo_root, tree_id, path)
        if entry is None:
            return None
        _, blob_id = entry
        result = run_subprocess_with_context(
            ["git", "cat-file", "blob", blob_id],
            operation_context=f"read {path} from tree {tree_id}",
            cwd=repo_root,
        )
        return result.stdout

    def read_tree_diff(
        self,
        repo_root: Path,
        old_tree: str,
        new_tree: str,
        paths: Sequence[str] | None = None,
    ) -> list[FileDiff]:
        """Diff two trees with zero context lines."""
        cmd = _git("diff-tree", "-r", "-U0", *_DIFF_FLAGS, old_tree, new_tree, "--")
        if paths is not None:
            if not paths:
                return []
            cmd.extend(paths)
        result = run_subprocess_with_context(
            cmd,
            operation_context=f"diff trees {old_tree[:12]}..{new_tree[:12]}",
            cwd=repo_root,
        )
        return parse_unified_diff(result.stdout)

    def read_index_diff(
        self, repo_root: Path, tree_id: str, context_lines: int = 0
    ) -> list[FileDiff]:
        """Diff a tree against the staged content."""
        result = run_subprocess_with_context(
            _git("diff-index", "--cached", f"-U{context_lines}", *_DIFF_FLAGS, tree_id, "--"),
            operation_context="diff staged changes",
            cwd=repo_root,
        )
        return parse_unified_diff(result.stdout)

    def write_tree(
        self, repo_root: Path, base_tree: str, edits: Sequence[tuple[str, str]]
    ) -> str:
        """Write a new tree through a temporary index file."""
        if not edits:
            return base_tree

        with tempfile.TemporaryDirectory(prefix="absorb-") as tmp:
            env = {**os.environ, "GIT_INDEX_FILE": str(Path(tmp) / "index")}
            run_subprocess_with_context(
                ["git", "read-tree", base_tree],
                operation_context=f"load tree {base_tree} into temporary index",
                cwd=repo_root,
                env=env,
            )
            for path, content in edits:
                entry = self._ls_tree_entry(repo_root, base_tree, path)
                mode = entry[0] if entry is not None else _DEFAULT_FILE_MODE
                blob = run_subprocess_with_context(
                    ["git", "hash-object", "-w", "--no-filters", "--stdin"],
                    operation_context=f"write blob for {path}",
                    cwd=repo_root,
                    input=content,
                )
                run_subprocess_with_context(
                    [
                        "git",
                        "update-index",
                        "--add",
                        "--cacheinfo",
                        f"{mode},{blob.stdout.strip()},{path}",
                    ],
                    operation_context=f"stage {path} in temporary index",
                    cwd=repo_root,
                    env=env,
                )
            result = run_subprocess_with_context(
                ["git", "write-tree"],
                operation_context="write tree from temporary index",
                cwd=repo_root,
                env=env,
            )
        return result.stdout.strip()

    def write_commit(
        self,
        repo_root: Path,
        tree_id: str,
        parents: Sequence[str],
        author: Signature,
        committer: Signature,
        message: str,
    ) -> str:
        """Create a commit object with explicit author and committer."""
        env = {
            **os.environ,
            "GIT_AUTHOR_NAME": author.name,
            "GIT_AUTHOR_EMAIL": author.email,
            "GIT_AUTHOR_DATE": author.date,
            "GIT_COMMITTER_NAME": committer.name,
            "GIT_COMMITTER_EMAIL": committer.email,
            "GIT_COMMITTER_DATE": committer.date,
        }
        cmd = ["git", "commit-tree", tree_id]
        for parent in parents:
            cmd.extend(["-p", parent])
        cmd.extend(["-F", "-"])
        result = run_subprocess_with_context(
            cmd,
            operation_context=f"write commit for tree {tree_id}",
            cwd=repo_root,
            input=message,
            env=env,
        )
        return result.stdout.strip()

    def compare_and_swap_ref(
        self, repo_root: Path, ref: str, expected_old: str, new: str, message: str
    ) -> None:
        """Point ``ref`` at ``new`` only if it still points at ``expected_old``."""
        cmd = ["git", "update-ref", "-m", message]
        if ref == "HEAD":
            cmd.append("--no-deref")
        cmd.extend([ref, new, expected_old])
        result = subprocess.run(
            cmd,
            cwd=repo_root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode == 0:
            return

        actual = self.resolve_commitish(repo_root, ref)
        if actual != expected_old:
            raise ConcurrentModification(ref, expected_old, actual)
        raise ObjectStoreFailure(f"Failed to update {ref}: {result.stderr.strip()}")
