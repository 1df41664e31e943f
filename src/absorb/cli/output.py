"""Output utilities for CLI commands with clear intent.

user_output() is for messages meant for a human and goes to stderr;
machine_output() is for data meant for scripts and goes to stdout.
"""

import click
from rich.console import Console


def user_output(message: str = "", nl: bool = True) -> None:
    """Write a human-facing message to stderr."""
    click.echo(message, nl=nl, err=True)


def machine_output(message: str = "", nl: bool = True) -> None:
    """Write machine-readable output to stdout."""
    click.echo(message, nl=nl)


def stderr_console() -> Console:
    """Rich console bound to stderr, for tables shown alongside user_output()."""
    return Console(stderr=True, highlight=False)
