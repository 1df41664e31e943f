"""Assignment of staged hunks to the stack commits that should absorb them.

Two independent views of a hunk are reconciled here:

- Provenance: the newest commit owning one of the lines the hunk changes is
  the anchor.
- Commutation: starting at the tip, the hunk is moved back one commit at a
  time for as long as each commit's own changes are disjoint from it. The
  first commit it cannot move past is the blocking commit. Commits newer
  than the anchor only block on a real overlap. From the anchor back,
  changes that are merely adjacent to the hunk count as conflicts.

A hunk is assigned when both views agree. Only the changed core of a hunk
takes part; its context lines are dropped before the walk. Everything here
is a pure function of the stack diffs, the provenance maps and the hunks.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from absorb.core.diff import FileStatus, Hunk
from absorb.core.hunks import SkippedChange, SkipReason
from absorb.core.owners import CommitDiffs, ProvenanceMap
from absorb.core.stack import Stack

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacedHunk:
    """A hunk with its target and its coordinates in every rewritten commit.

    ``placements`` maps the target and each later stack commit to the hunk
    expressed against that commit's tree.
    """

    hunk: Hunk
    target: str
    placements: Mapping[str, Hunk]


@dataclass(frozen=True)
class AssignmentPlan:
    """Final assignment: target commit id to the hunks it absorbs."""

    assignments: dict[str, list[PlacedHunk]] = field(default_factory=dict)
    skipped: tuple[SkippedChange, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.assignments

    @property
    def hunk_count(self) -> int:
        return sum(len(placed) for placed in self.assignments.values())


def _overlaps(lo: int, hi: int, c_lo: int, c_hi: int) -> bool:
    """Whether two half-open line ranges share a line, or one splits the other."""
    if lo == hi and c_lo == c_hi:
        return lo == c_lo
    if lo == hi:
        return c_lo < lo < c_hi
    if c_lo == c_hi:
        return lo < c_lo < hi
    return lo < c_hi and c_lo < hi


def commute_before(
    hunk: Hunk, commit_hunks: Sequence[Hunk], *, allow_adjacent: bool = False
) -> Hunk | None:
    """Move ``hunk`` from after a commit's changes to before them.

    Args:
        hunk: Change expressed against the commit's tree
        commit_hunks: The commit's own changes to the same file
        allow_adjacent: Let the hunk move past changes that touch it without
            overlapping it

    Returns:
        The hunk expressed against the commit's parent tree, or None when one
        of the commit's changes overlaps the hunk (or touches it, unless
        ``allow_adjacent`` is set)
    """
    lo, hi = hunk.old_span()
    offset = 0
    for commit_hunk in commit_hunks:
        c_lo, c_hi = commit_hunk.core().new_span()
        if _overlaps(lo, hi, c_lo, c_hi):
            return None
        if not allow_adjacent and lo <= c_hi and c_lo <= hi:
            return None
        if c_hi <= lo:
            offset += commit_hunk.old_count - commit_hunk.new_count
    return hunk.shifted(offset)


@dataclass(frozen=True)
class _Walk:
    blocking: str | None
    placements: dict[str, Hunk]


def _walk_back(hunk: Hunk, stack: Stack, commit_diffs: CommitDiffs, anchor: str) -> _Walk:
    """Commute ``hunk`` from the tip towards the base until something blocks it."""
    placements: dict[str, Hunk] = {}
    current = hunk
    past_anchor = False
    for commit in reversed(stack.commits):
        past_anchor = past_anchor or commit.commit_id == anchor
        placements[commit.commit_id] = current
        file_diff = commit_diffs.get(commit.commit_id, {}).get(hunk.path)
        if file_diff is None:
            continue
        if file_diff.status != FileStatus.MODIFIED:
            logger.debug(
                "Hunk %s blocked by %s: file %s",
                hunk.header,
                commit.short_id,
                file_diff.status.value,
            )
            return _Walk(blocking=commit.commit_id, placements=placements)

        commuted = commute_before(current, file_diff.hunks, allow_adjacent=not past_anchor)
        if commuted is None:
            logger.debug("Hunk %s blocked by %s: overlapping change", hunk.header, commit.short_id)
            return _Walk(blocking=commit.commit_id, placements=placements)
        logger.debug(
            "Commuted hunk %s past %s (offset %d)",
            hunk.header,
            commit.short_id,
            commuted.old_start - current.old_start,
        )
        current = commuted

    return _Walk(blocking=None, placements=placements)


def resolve_target(
    hunk: Hunk,
    stack: Stack,
    commit_diffs: CommitDiffs,
    provenance: ProvenanceMap,
    *,
    force: bool = False,
) -> PlacedHunk | SkippedChange:
    """Decide which commit absorbs ``hunk``.

    Args:
        hunk: Staged hunk in tip coordinates
        stack: Stack being absorbed into
        commit_diffs: Each stack commit's diff against its parent
        provenance: Provenance map for the hunk's file
        force: Assign ambiguous hunks to the commit that blocks them instead
            of skipping them

    Returns:
        The placed hunk, or the reason it is skipped. Placements carry the
        hunk without its context lines, which may differ in older commits.
    """
    position = {commit.commit_id: i for i, commit in enumerate(stack.commits)}
    candidates = provenance.candidates(hunk)
    if not candidates.owners:
        return SkippedChange(
            hunk.path, hunk, SkipReason.NO_OWNER, "lines were not changed by any stack commit"
        )

    anchor = max(candidates.owners, key=position.__getitem__)
    oldest = min(candidates.owners, key=position.__getitem__)
    walk = _walk_back(hunk.core(), stack, commit_diffs, anchor)
    if walk.blocking is None:
        return SkippedChange(
            hunk.path, hunk, SkipReason.NO_OWNER, "commutes with every commit in the stack"
        )

    anchor_at = position[anchor]
    blocking_at = position[walk.blocking]

    ambiguity: str | None = None
    if blocking_at != anchor_at:
        blocker = stack.commits[blocking_at]
        ambiguity = f"overlaps changes from {blocker.short_id} {blocker.summary!r}"
    else:
        intervening = sorted(
            position[commit_id]
            for commit_id in candidates.touched - candidates.owners
            if position[oldest] < position[commit_id] < anchor_at
        )
        if intervening:
            between = stack.commits[intervening[0]]
            ambiguity = f"lines also changed by {between.short_id} {between.summary!r}"

    target = anchor
    if ambiguity is not None:
        if not force:
            logger.debug("Hunk %s in %s is ambiguous: %s", hunk.header, hunk.path, ambiguity)
            return SkippedChange(hunk.path, hunk, SkipReason.AMBIGUOUS_OWNER, ambiguity)
        target = walk.blocking
        logger.debug("Forcing ambiguous hunk %s into %s", hunk.header, target[:12])

    target_at = position[target]
    return PlacedHunk(
        hunk=hunk,
        target=target,
        placements={
            commit_id: placed
            for commit_id, placed in walk.placements.items()
            if position[commit_id] >= target_at
        },
    )


def assign_hunks(
    stack: Stack,
    commit_diffs: CommitDiffs,
    hunks: Sequence[Hunk],
    provenance: Mapping[str, ProvenanceMap],
    *,
    force: bool = False,
) -> AssignmentPlan:
    """Resolve every hunk and group the successful ones by target commit."""
    assignments: dict[str, list[PlacedHunk]] = {}
    skipped: list[SkippedChange] = []

    for hunk in hunks:
        outcome = resolve_target(hunk, stack, commit_diffs, provenance[hunk.path], force=force)
        if isinstance(outcome, SkippedChange):
            skipped.append(outcome)
            continue
        logger.debug("Assigned hunk %s in %s to %s", hunk.header, hunk.path, outcome.target[:12])
        assignments.setdefault(outcome.target, []).append(outcome)

    return AssignmentPlan(assignments=assignments, skipped=tuple(skipped))
