"""The default command: absorb staged changes and report what happened."""

import click
from rich.table import Table

from absorb.cli.ensure import Ensure
from absorb.cli.output import stderr_console, user_output
from absorb.core.absorb import AbsorbReport, run_absorb
from absorb.core.context import AbsorbContext
from absorb.core.errors import AbsorbError
from absorb.core.hunks import SkippedChange
from absorb.core.rewrite import RewriteMode


def _format_range(skipped: SkippedChange) -> str:
    if skipped.hunk is None:
        return "-"
    lo, hi = skipped.hunk.old_span()
    if hi <= lo:
        return f"after {lo}"
    if hi - lo == 1:
        return str(lo + 1)
    return f"{lo + 1}-{hi}"


def _render_skipped(skipped: tuple[SkippedChange, ...]) -> None:
    table = Table(title="Left staged", show_header=True, header_style="bold", title_justify="left")
    table.add_column("Path", style="cyan", no_wrap=True)
    table.add_column("Lines", justify="right")
    table.add_column("Reason", style="yellow")
    table.add_column("Detail")
    for item in skipped:
        table.add_row(item.path, _format_range(item), item.reason.value, item.detail)
    stderr_console().print(table)


def render_report(report: AbsorbReport, *, mode: RewriteMode, dry_run: bool) -> None:
    """Describe an absorb run on stderr."""
    if not report.plan.assignments and not report.skipped:
        user_output("Nothing staged to absorb")
        return

    verb = "Would absorb" if dry_run else "Absorbed"
    for commit in report.stack.commits:
        placed = report.plan.assignments.get(commit.commit_id)
        if not placed:
            continue
        noun = "hunk" if len(placed) == 1 else "hunks"
        user_output(
            click.style("✓ ", fg="green")
            + f"{verb} {len(placed)} {noun} into "
            + click.style(commit.short_id, fg="yellow")
            + f" {commit.summary}"
        )

    if report.skipped:
        _render_skipped(report.skipped)

    if report.result is None or not report.result.changed:
        if not report.plan.assignments:
            user_output("No staged changes could be absorbed")
        return

    result = report.result
    moved = "would move" if dry_run else "moved"
    user_output(
        f"{report.stack.head_ref} {moved}: {result.old_tip[:12]} -> {result.new_tip[:12]} "
        f"({result.commits_created} commit(s) written)"
    )
    if mode == RewriteMode.FIXUP and not dry_run:
        user_output(
            "Run "
            + click.style(f"git rebase -i --autosquash {report.stack.base_id[:12]}", bold=True)
            + " to fold the fixup commits"
        )


def absorb_staged_changes(ctx: AbsorbContext) -> None:
    """Run an absorb in the current repository, exiting 1 on failure."""
    repo = Ensure.in_repo(ctx)
    Ensure.config_loaded(ctx)
    try:
        report = run_absorb(ctx.git, repo.root, ctx.config)
    except AbsorbError as e:
        Ensure.fail(str(e))
    render_report(report, mode=ctx.config.rewrite_mode, dry_run=ctx.dry_run)
