"""Materialization of an assignment plan as new commits.

Stack commits are regenerated oldest first starting at the oldest target.
Each regenerated commit receives every hunk whose target is at or below it,
applied in that commit's own coordinates, so the new tip tree equals the old
tip tree plus the absorbed hunks. Nothing is visible until the single
compare-and-swap of the branch ref at the end.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from absorb.core.commute import AssignmentPlan, PlacedHunk
from absorb.core.diff import apply_hunks
from absorb.core.errors import HunkApplyError
from absorb.core.git.abc import CommitInfo, Git
from absorb.core.stack import Stack

logger = logging.getLogger(__name__)

FIXUP_PREFIX = "fixup! "


class RewriteMode(Enum):
    """How absorbed hunks are recorded in history."""

    FIXUP = "fixup"  # new "fixup! <sha>" commit right after each target
    SQUASH = "squash"  # fold hunks into the target commit itself


@dataclass(frozen=True)
class RewriteResult:
    """Outcome of a rewrite, keyed by the original commit ids."""

    old_tip: str
    new_tip: str
    rewritten: dict[str, str] = field(default_factory=dict)
    fixups: dict[str, str] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.new_tip != self.old_tip

    @property
    def commits_created(self) -> int:
        return len(self.rewritten) + len(self.fixups)


def fixup_message(target: CommitInfo) -> str:
    """Message of a fixup commit; the subject is what ``rebase --autosquash`` matches."""
    return f"{FIXUP_PREFIX}{target.commit_id}\n\nAbsorbed into: {target.summary}\n"


def parse_fixup_target(message: str) -> str | None:
    """Extract the target commit id from a fixup commit message."""
    subject = message.split("\n", 1)[0]
    if not subject.startswith(FIXUP_PREFIX):
        return None
    target = subject[len(FIXUP_PREFIX) :].strip()
    return target or None


def _tree_with_hunks(
    git: Git, repo_root: Path, commit: CommitInfo, placed: Sequence[PlacedHunk]
) -> str:
    """Tree of ``commit`` with the given hunks applied in its coordinates."""
    if not placed:
        return commit.tree

    by_path: dict[str, list[PlacedHunk]] = {}
    for item in placed:
        by_path.setdefault(item.hunk.path, []).append(item)

    edits: list[tuple[str, str]] = []
    for path in sorted(by_path):
        content = git.read_file(repo_root, commit.tree, path)
        if content is None:
            raise HunkApplyError(f"{path} does not exist in {commit.short_id}")
        hunks = [item.placements[commit.commit_id] for item in by_path[path]]
        edits.append((path, apply_hunks(content, hunks)))

    return git.write_tree(repo_root, commit.tree, edits)


def rewrite_history(
    git: Git,
    repo_root: Path,
    stack: Stack,
    plan: AssignmentPlan,
    *,
    mode: RewriteMode = RewriteMode.FIXUP,
    reflog_message: str = "absorb",
) -> RewriteResult:
    """Write the commits for ``plan`` and move the branch to the new tip.

    Args:
        git: Object store
        repo_root: Path to the repository root
        stack: Stack the plan was computed against
        plan: Hunks to absorb, grouped by target
        mode: Insert fixup commits, or squash into the targets
        reflog_message: Message recorded in the ref's reflog

    Returns:
        Mapping of replaced commits and created fixups

    Raises:
        HunkApplyError: If a hunk does not apply to a commit it was placed in
        ConcurrentModification: If the branch moved since the stack was read
    """
    old_tip = stack.tip.commit_id
    if plan.is_empty:
        logger.debug("Nothing assigned, leaving %s untouched", stack.head_ref)
        return RewriteResult(old_tip=old_tip, new_tip=old_tip)

    first = min(stack.index_of(target) for target in plan.assignments)
    parent = stack.commits[first - 1].commit_id if first > 0 else stack.base_id

    rewritten: dict[str, str] = {}
    fixups: dict[str, str] = {}
    pending: list[PlacedHunk] = []

    for commit in stack.commits[first:]:
        own = plan.assignments.get(commit.commit_id, [])
        if own and mode == RewriteMode.SQUASH:
            pending.extend(own)
            own = []

        tree = _tree_with_hunks(git, repo_root, commit, pending)
        if tree == commit.tree and commit.parents == (parent,):
            new_id = commit.commit_id
        else:
            new_id = git.write_commit(
                repo_root, tree, [parent], commit.author, commit.committer, commit.message
            )
            rewritten[commit.commit_id] = new_id
            logger.debug("Rewrote %s as %s", commit.short_id, new_id[:12])
        parent = new_id

        if own:
            pending.extend(own)
            fixup_tree = _tree_with_hunks(git, repo_root, commit, pending)
            parent = git.write_commit(
                repo_root,
                fixup_tree,
                [new_id],
                commit.author,
                commit.committer,
                fixup_message(commit),
            )
            fixups[commit.commit_id] = parent
            logger.debug("Created fixup %s for %s", parent[:12], commit.short_id)

    git.compare_and_swap_ref(repo_root, stack.head_ref, old_tip, parent, reflog_message)
    logger.debug("Moved %s from %s to %s", stack.head_ref, old_tip[:12], parent[:12])
    return RewriteResult(old_tip=old_tip, new_tip=parent, rewritten=rewritten, fixups=fixups)
