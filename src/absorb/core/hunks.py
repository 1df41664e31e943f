"""Decomposition of the staged changes into absorbable hunks."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from absorb.core.diff import FileStatus, Hunk
from absorb.core.git.abc import Git

logger = logging.getLogger(__name__)


class SkipReason(Enum):
    """Why a staged change was left in the index."""

    NO_OWNER = "no owner"
    AMBIGUOUS_OWNER = "ambiguous owner"


@dataclass(frozen=True)
class SkippedChange:
    """A staged change that will not be absorbed.

    ``hunk`` is None when the whole file was skipped without being split
    (binary files, mode-only changes).
    """

    path: str
    hunk: Hunk | None
    reason: SkipReason
    detail: str


@dataclass(frozen=True)
class IndexChanges:
    """Staged hunks ready for ownership resolution, plus what was set aside."""

    hunks: tuple[Hunk, ...]
    skipped: tuple[SkippedChange, ...]

    @property
    def paths(self) -> list[str]:
        return sorted({hunk.path for hunk in self.hunks})


def extract_hunks(git: Git, repo_root: Path, tree_id: str, context_lines: int = 0) -> IndexChanges:
    """Split the diff between ``tree_id`` and the index into per-file hunks.

    Only modified text files produce hunks. Added files have no history in
    the stack to own them, and deleted, binary or mode-only changes cannot be
    expressed as line hunks; all of them are reported as ``NO_OWNER``.
    """
    hunks: list[Hunk] = []
    skipped: list[SkippedChange] = []

    for file_diff in git.read_index_diff(repo_root, tree_id, context_lines):
        path = file_diff.path
        if file_diff.is_binary:
            detail = "binary file"
        elif file_diff.status == FileStatus.ADDED:
            detail = "new file"
        elif file_diff.status == FileStatus.DELETED:
            detail = "deleted file"
        elif not file_diff.hunks:
            detail = "no line changes"
        else:
            hunks.extend(sorted(file_diff.hunks, key=lambda h: h.old_span()))
            continue

        logger.debug("Skipping staged %s: %s", path, detail)
        if file_diff.hunks:
            for hunk in file_diff.hunks:
                skipped.append(SkippedChange(path, hunk, SkipReason.NO_OWNER, detail))
        else:
            skipped.append(SkippedChange(path, None, SkipReason.NO_OWNER, detail))

    logger.debug("Extracted %d staged hunks, skipped %d", len(hunks), len(skipped))
    return IndexChanges(hunks=tuple(hunks), skipped=tuple(skipped))
