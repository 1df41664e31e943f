"""Selection of the commits an absorb is allowed to rewrite.

The stack is the first-parent chain from the branch tip back to the first
boundary commit, which is excluded. Boundaries are merge commits, root
commits, commits already reachable from the upstream branch, commits by
another author (unless forced), an explicit base, or the configured size
limit.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from absorb.core.errors import AbsorbError, NoEligibleCommits
from absorb.core.git.abc import CommitInfo, Git

logger = logging.getLogger(__name__)

DEFAULT_MAX_STACK = 10


@dataclass(frozen=True)
class Stack:
    """Eligible commits, oldest first, plus the boundary they sit on."""

    base_id: str
    base_tree: str
    commits: tuple[CommitInfo, ...]
    head_ref: str

    @property
    def tip(self) -> CommitInfo:
        return self.commits[-1]

    def index_of(self, commit_id: str) -> int:
        for i, commit in enumerate(self.commits):
            if commit.commit_id == commit_id:
                return i
        raise KeyError(commit_id)

    def parent_tree(self, index: int) -> str:
        """Tree of the commit just below ``commits[index]``."""
        if index == 0:
            return self.base_tree
        return self.commits[index - 1].tree


def _boundary_reason(
    git: Git,
    repo_root: Path,
    commit: CommitInfo,
    *,
    base: str | None,
    upstream: str | None,
    user_email: str | None,
    force: bool,
) -> str | None:
    if base is not None and commit.commit_id == base:
        return "reached base commit"
    if len(commit.parents) == 0:
        return "root commit"
    if len(commit.parents) > 1:
        return "merge commit"
    if upstream is not None and git.is_ancestor(repo_root, commit.commit_id, upstream):
        return "reachable from upstream"
    if not force and user_email is not None and commit.author.email != user_email:
        return f"authored by {commit.author.email}"
    return None


def build_stack(
    git: Git,
    repo_root: Path,
    *,
    base: str | None = None,
    max_stack: int = DEFAULT_MAX_STACK,
    force: bool = False,
) -> Stack:
    """Walk back from the tip and collect the commits eligible for rewriting.

    Args:
        git: Object store
        repo_root: Path to the repository root
        base: Optional revision to stop at (exclusive); replaces the upstream
            and size limits
        max_stack: Maximum number of commits to collect without a base
        force: Include commits authored by someone else

    Returns:
        The stack, oldest commit first

    Raises:
        NoEligibleCommits: If not a single commit is eligible
        AbsorbError: If ``base`` does not resolve or is not an ancestor of the tip
    """
    tip_id = git.resolve_branch_tip(repo_root)
    head_ref = git.get_head_ref(repo_root) or "HEAD"

    base_id: str | None = None
    upstream: str | None = None
    if base is not None:
        base_id = git.resolve_commitish(repo_root, base)
        if base_id is None:
            raise AbsorbError(f"Base revision '{base}' does not exist")
        if not git.is_ancestor(repo_root, base_id, tip_id):
            raise AbsorbError(f"Base revision '{base}' is not an ancestor of HEAD")
    else:
        upstream = git.get_upstream_commit(repo_root)

    user_email = git.get_user_email(repo_root)
    logger.debug(
        "Building stack: tip=%s, ref=%s, base=%s, upstream=%s, user=%s",
        tip_id,
        head_ref,
        base_id,
        upstream,
        user_email,
    )

    collected: list[CommitInfo] = []
    current = git.read_commit(repo_root, tip_id)
    while True:
        reason = _boundary_reason(
            git,
            repo_root,
            current,
            base=base_id,
            upstream=upstream,
            user_email=user_email,
            force=force,
        )
        if reason is not None:
            logger.debug("Stack boundary at %s: %s", current.short_id, reason)
            break
        if base_id is None and len(collected) == max_stack:
            logger.warning(
                "Stack limit of %d commits reached; use --base to absorb further back",
                max_stack,
            )
            break
        collected.append(current)
        current = git.read_commit(repo_root, current.parents[0])

    if not collected:
        raise NoEligibleCommits(f"No commits eligible for absorbing ({reason or 'stack limit'})")

    collected.reverse()
    logger.debug("Stack: %s", [commit.short_id for commit in collected])
    return Stack(
        base_id=current.commit_id,
        base_tree=current.tree,
        commits=tuple(collected),
        head_ref=head_ref,
    )
