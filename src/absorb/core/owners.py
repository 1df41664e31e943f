"""Line provenance restricted to the stack.

For every file touched by a staged hunk, the file is followed from the stack
base to the tip, one commit at a time. Each surviving line remembers the last
stack commit that changed it (its owner) and every stack commit that has
changed that region of the file. Lines inherited untouched from the base have
no owner: history outside the stack is never a valid target.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from absorb.core.diff import FileDiff, FileStatus, Hunk, split_lines
from absorb.core.git.abc import Git
from absorb.core.stack import Stack

logger = logging.getLogger(__name__)

CommitDiffs = dict[str, dict[str, FileDiff]]
"""Per stack commit id, the diff against its parent keyed by path."""


@dataclass(frozen=True)
class LineOrigin:
    owner: str | None
    touched: frozenset[str]


UNOWNED = LineOrigin(owner=None, touched=frozenset())


@dataclass(frozen=True)
class OwnerCandidates:
    """Owners of the lines a hunk rewrites, and every commit that touched them."""

    owners: frozenset[str]
    touched: frozenset[str]


@dataclass(frozen=True)
class ProvenanceMap:
    """Origin of every line of one file as it exists at the tip."""

    path: str
    origins: tuple[LineOrigin, ...]

    def candidates(self, hunk: Hunk) -> OwnerCandidates:
        """Collect the candidate owners of the old lines ``hunk`` changes.

        Context lines are not part of the change and are ignored. A pure
        insertion has no old lines; it is attributed to the line it follows,
        and an insertion at the top of the file is unowned.
        """
        lo, hi = hunk.core().old_span()
        if hi > lo:
            region = self.origins[lo:hi]
        elif lo > 0:
            region = self.origins[lo - 1 : lo]
        else:
            region = ()

        owners = frozenset(origin.owner for origin in region if origin.owner is not None)
        touched = frozenset().union(*(origin.touched for origin in region))
        return OwnerCandidates(owners=owners, touched=touched)


def build_provenance(
    path: str,
    base_content: str | None,
    stack: Stack,
    diffs_for_path: Mapping[str, FileDiff],
) -> ProvenanceMap:
    """Fold the stack's diffs for one file into a provenance map.

    Args:
        path: File being tracked
        base_content: The file at the stack base, or None if absent there
        stack: Stack to scan, oldest commit first
        diffs_for_path: Diff of ``path`` keyed by the stack commits that touch it
    """
    origins: list[LineOrigin] = []
    if base_content is not None:
        origins = [UNOWNED] * len(split_lines(base_content))

    for commit in stack.commits:
        file_diff = diffs_for_path.get(commit.commit_id)
        if file_diff is None:
            continue
        if file_diff.status == FileStatus.DELETED:
            origins = []
            continue

        # Highest hunk first so earlier positions stay valid.
        for hunk in sorted(file_diff.hunks, key=lambda h: h.old_span(), reverse=True):
            lo, hi = hunk.old_span()
            touched = frozenset({commit.commit_id}).union(
                *(origin.touched for origin in origins[lo:hi])
            )
            origins[lo:hi] = [LineOrigin(commit.commit_id, touched)] * hunk.new_count

    return ProvenanceMap(path=path, origins=tuple(origins))


def load_commit_diffs(git: Git, repo_root: Path, stack: Stack, paths: Sequence[str]) -> CommitDiffs:
    """Diff every stack commit against its parent, limited to ``paths``."""
    commit_diffs: CommitDiffs = {}
    for i, commit in enumerate(stack.commits):
        diffs = git.read_tree_diff(repo_root, stack.parent_tree(i), commit.tree, paths)
        commit_diffs[commit.commit_id] = {file_diff.path: file_diff for file_diff in diffs}
    return commit_diffs


def resolve_line_owners(
    git: Git,
    repo_root: Path,
    stack: Stack,
    commit_diffs: CommitDiffs,
    paths: Sequence[str],
) -> dict[str, ProvenanceMap]:
    """Build a provenance map for each path. Files are independent of each other."""
    provenance: dict[str, ProvenanceMap] = {}
    for path in paths:
        diffs_for_path = {
            commit_id: diffs[path] for commit_id, diffs in commit_diffs.items() if path in diffs
        }
        base_content = git.read_file(repo_root, stack.base_tree, path)
        provenance[path] = build_provenance(path, base_content, stack, diffs_for_path)
        logger.debug(
            "Provenance for %s: %d lines, touched by %d stack commits",
            path,
            len(provenance[path].origins),
            len(diffs_for_path),
        )
    return provenance
