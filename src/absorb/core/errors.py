"""Exception hierarchy for absorb operations.

Whole-run failures are exceptions. Per-hunk outcomes (a hunk with no owner,
or with an ambiguous owner) are not: they are reported as
``absorb.core.hunks.SkipReason`` values and never abort a run.
"""


class AbsorbError(Exception):
    """Base class for every error that aborts an absorb run."""


class NoEligibleCommits(AbsorbError):
    """The stack is empty: the tip itself is a merge, a root, or a boundary."""


class ConcurrentModification(AbsorbError):
    """The branch moved between reading the tip and updating the ref."""

    def __init__(self, ref: str, expected: str, actual: str | None) -> None:
        self.ref = ref
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{ref} moved during absorb (expected {expected[:12]}, "
            f"found {actual[:12] if actual else 'nothing'}); no changes were made"
        )


class ObjectStoreFailure(AbsorbError, RuntimeError):
    """A git command failed while reading or writing repository objects."""


class HunkApplyError(AbsorbError):
    """A hunk no longer matches the content it was computed against."""
