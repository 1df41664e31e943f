"""CLI error handling utilities with styled output.

This module provides the Ensure class for asserting invariants in CLI commands
with consistent, user-friendly error messages. All errors use red "Error:" prefix
for visual consistency.
"""

from typing import TYPE_CHECKING, NoReturn

import click

from absorb.cli.output import user_output
from absorb.core.repo_discovery import NoRepoSentinel, RepoContext

if TYPE_CHECKING:
    from absorb.core.context import AbsorbContext


class Ensure:
    """Helper class for asserting invariants with consistent error handling."""

    @staticmethod
    def fail(error_message: str) -> NoReturn:
        """Output styled error and exit.

        Raises:
            SystemExit: Always (with exit code 1)
        """
        user_output(click.style("Error: ", fg="red") + error_message)
        raise SystemExit(1)

    @staticmethod
    def invariant(condition: bool, error_message: str) -> None:
        """Ensure condition is true, otherwise output styled error and exit.

        Args:
            condition: Boolean condition to check
            error_message: Error message to display if condition is false.
                          "Error: " prefix will be added automatically in red.

        Raises:
            SystemExit: If condition is false (with exit code 1)
        """
        if not condition:
            Ensure.fail(error_message)

    @staticmethod
    def in_repo(ctx: "AbsorbContext") -> RepoContext:
        """Ensure the command runs inside a git repository.

        Returns:
            The discovered repository context

        Raises:
            SystemExit: If not inside a repository (with exit code 1)
        """
        if isinstance(ctx.repo, NoRepoSentinel):
            Ensure.fail(ctx.repo.message)
        assert isinstance(ctx.repo, RepoContext)
        return ctx.repo

    @staticmethod
    def config_loaded(ctx: "AbsorbContext") -> None:
        """Ensure the configuration files were read without errors.

        Raises:
            SystemExit: If a config file holds an invalid value (with exit code 1)
        """
        if ctx.config_error is not None:
            Ensure.fail(f"{ctx.config_error}\nFix it with: git absorb config set KEY VALUE")
