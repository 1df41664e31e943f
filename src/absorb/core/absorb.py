"""End-to-end absorb pipeline.

Stack Builder -> Hunk Extractor -> Line-Owner Resolver -> Commutation Engine
-> History Rewriter. Everything before the rewrite is read-only; the rewrite
ends with the run's only ref update.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from absorb.core.commute import AssignmentPlan, assign_hunks
from absorb.core.config import AbsorbConfig
from absorb.core.git.abc import Git
from absorb.core.hunks import SkippedChange, extract_hunks
from absorb.core.owners import load_commit_diffs, resolve_line_owners
from absorb.core.rewrite import RewriteResult, rewrite_history
from absorb.core.stack import Stack, build_stack

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AbsorbReport:
    """What an absorb run did and what it left staged."""

    stack: Stack
    plan: AssignmentPlan
    skipped: tuple[SkippedChange, ...]
    result: RewriteResult | None

    @property
    def absorbed(self) -> bool:
        return self.result is not None and self.result.changed


def run_absorb(git: Git, repo_root: Path, config: AbsorbConfig) -> AbsorbReport:
    """Absorb the staged changes into the commits of the current stack.

    Raises:
        NoEligibleCommits: If the current branch has no rewritable commits
        ConcurrentModification: If the branch moved while absorbing
        ObjectStoreFailure: If a git command fails
    """
    stack = build_stack(
        git,
        repo_root,
        base=config.base,
        max_stack=config.max_stack,
        force=config.force,
    )

    changes = extract_hunks(git, repo_root, stack.tip.tree, config.context_lines)
    if not changes.hunks:
        logger.debug("No staged hunks to absorb")
        return AbsorbReport(
            stack=stack, plan=AssignmentPlan(), skipped=changes.skipped, result=None
        )

    paths = changes.paths
    commit_diffs = load_commit_diffs(git, repo_root, stack, paths)
    provenance = resolve_line_owners(git, repo_root, stack, commit_diffs, paths)
    plan = assign_hunks(stack, commit_diffs, changes.hunks, provenance, force=config.force)
    skipped = changes.skipped + plan.skipped

    if plan.is_empty:
        return AbsorbReport(stack=stack, plan=plan, skipped=skipped, result=None)

    result = rewrite_history(
        git,
        repo_root,
        stack,
        plan,
        mode=config.rewrite_mode,
        reflog_message=f"absorb: {plan.hunk_count} hunk(s) into {len(plan.assignments)} commit(s)",
    )
    return AbsorbReport(stack=stack, plan=plan, skipped=skipped, result=result)
