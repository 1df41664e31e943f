"""Git object store subpackage.

This subpackage provides the object store abstraction the absorb engine is
built on, with support for testing via fakes and dry-run via a wrapper.
"""

from absorb.core.git.abc import CommitInfo, Git, Signature
from absorb.core.git.dry_run import DryRunGit
from absorb.core.git.real import RealGit

__all__ = [
    "Git",
    "CommitInfo",
    "Signature",
    "RealGit",
    "DryRunGit",
]
