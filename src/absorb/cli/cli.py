import logging
import os
from dataclasses import replace

import click

from absorb.cli.commands.absorb import absorb_staged_changes
from absorb.cli.commands.config import config_group
from absorb.core.context import create_context
from absorb.core.rewrite import RewriteMode

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def configure_logging(verbose: bool) -> None:
    """Enable debug logging for --verbose or when ABSORB_DEBUG is set."""
    if verbose or os.getenv("ABSORB_DEBUG"):
        logging.basicConfig(level=logging.DEBUG, format="[DEBUG %(name)s:%(lineno)d] %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="Warning: %(message)s")


@click.group(invoke_without_command=True, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="absorb")
@click.option(
    "-n",
    "--dry-run",
    is_flag=True,
    help="Show what would be absorbed without moving the branch.",
)
@click.option(
    "-f",
    "--force",
    is_flag=True,
    help="Include commits by other authors and absorb ambiguous hunks into the nearest commit.",
)
@click.option(
    "-b",
    "--base",
    metavar="REV",
    help="Absorb into commits after REV (ignores the stack limit).",
)
@click.option(
    "--squash",
    is_flag=True,
    help="Fold changes directly into the target commits instead of adding fixup commits.",
)
@click.option(
    "--max-stack",
    type=click.IntRange(min=1),
    help="Maximum number of commits to consider.",
)
@click.option(
    "--context-lines",
    type=click.IntRange(min=0),
    help="Unchanged lines kept around each staged change (default 0).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log every decision to stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    dry_run: bool,
    force: bool,
    base: str | None,
    squash: bool,
    max_stack: int | None,
    context_lines: int | None,
    verbose: bool,
) -> None:
    """Absorb staged changes into the commits of the current branch they belong to."""
    configure_logging(verbose)

    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        ctx.obj = create_context(dry_run=dry_run)
    elif dry_run:
        ctx.obj = ctx.obj.with_dry_run()

    overrides: dict[str, object] = {}
    if force:
        overrides["force"] = True
    if base is not None:
        overrides["base"] = base
    if squash:
        overrides["rewrite_mode"] = RewriteMode.SQUASH
    if max_stack is not None:
        overrides["max_stack"] = max_stack
    if context_lines is not None:
        overrides["context_lines"] = context_lines
    if overrides:
        ctx.obj = replace(ctx.obj, config=replace(ctx.obj.config, **overrides))

    if ctx.invoked_subcommand is None:
        absorb_staged_changes(ctx.obj)


cli.add_command(config_group)


def main() -> None:
    """CLI entry point used by the `git-absorb` console script."""
    cli()
