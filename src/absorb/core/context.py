"""Application context with dependency injection."""

from dataclasses import dataclass, replace
from pathlib import Path

import click

from absorb.cli.output import user_output
from absorb.core.config import AbsorbConfig, load_config
from absorb.core.git.abc import Git
from absorb.core.git.dry_run import DryRunGit
from absorb.core.git.real import RealGit
from absorb.core.repo_discovery import NoRepoSentinel, RepoContext, discover_repo_or_sentinel


@dataclass(frozen=True)
class AbsorbContext:
    """Immutable context holding all dependencies for absorb operations.

    Created at CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.
    """

    git: Git
    cwd: Path  # Current working directory at CLI invocation
    config: AbsorbConfig
    repo: RepoContext | NoRepoSentinel
    dry_run: bool
    config_error: str | None = None  # Why the config files could not be loaded

    def with_dry_run(self) -> "AbsorbContext":
        """Return a copy whose git wrapper refuses to move refs."""
        if self.dry_run:
            return self
        return replace(self, git=DryRunGit(self.git), dry_run=True)

    @staticmethod
    def for_test(
        git: Git | None = None,
        cwd: Path | None = None,
        config: AbsorbConfig | None = None,
        repo: RepoContext | NoRepoSentinel | None = None,
        dry_run: bool = False,
        config_error: str | None = None,
    ) -> "AbsorbContext":
        """Create test context with optional pre-configured values.

        Args:
            git: Optional Git implementation. If None, creates empty FakeGit.
            cwd: Optional current working directory. If None, uses Path("/test/repo").
            config: Optional AbsorbConfig. If None, uses defaults.
            repo: Optional RepoContext or NoRepoSentinel. If None, uses a RepoContext
                rooted at cwd.
            dry_run: Whether to enable dry-run mode (default False).
            config_error: Optional config loading error to simulate.

        Returns:
            AbsorbContext configured with provided values and test defaults

        Example:
            >>> git = FakeGit(...)
            >>> ctx = AbsorbContext.for_test(git=git)
        """
        from tests.fakes.git import FakeGit

        if git is None:
            git = FakeGit()

        if cwd is None:
            cwd = Path("/test/repo")

        if config is None:
            config = AbsorbConfig()

        if repo is None:
            repo = RepoContext(root=cwd)

        ctx = AbsorbContext(
            git=git, cwd=cwd, config=config, repo=repo, dry_run=False, config_error=config_error
        )
        if dry_run:
            return ctx.with_dry_run()
        return ctx


def safe_cwd() -> tuple[Path | None, str | None]:
    """Get current working directory, detecting if it no longer exists.

    Returns:
        tuple[Path | None, str | None]: (path, error_message)
        - If successful: (Path, None)
        - If directory deleted: (None, error_message)
    """
    try:
        cwd_path = Path.cwd()
        return (cwd_path, None)
    except (FileNotFoundError, OSError):
        return (
            None,
            "Current working directory no longer exists",
        )


def create_context(*, dry_run: bool) -> AbsorbContext:
    """Create production context with real implementations.

    Called at CLI entry point to create the context for the entire
    command execution.

    Args:
        dry_run: If True, wrap git with a wrapper that prints the ref update
                 instead of executing it

    Returns:
        AbsorbContext with real implementations
    """
    # 1. Capture cwd (no deps)
    cwd_result, error_msg = safe_cwd()
    if cwd_result is None:
        assert error_msg is not None
        user_output(click.style("Error: ", fg="red") + error_msg)
        raise SystemExit(1)

    cwd = cwd_result

    # 2. Discover repo (only needs cwd and git)
    git: Git = RealGit()
    repo = discover_repo_or_sentinel(cwd, git)

    # 3. Load config (global file, then the repository's pyproject.toml).
    # Errors are recorded, not raised; `config set` must still work.
    repo_root = None if isinstance(repo, NoRepoSentinel) else repo.root
    config_error: str | None = None
    try:
        config = load_config(repo_root)
    except ValueError as e:
        config = AbsorbConfig()
        config_error = str(e)

    ctx = AbsorbContext(
        git=git, cwd=cwd, config=config, repo=repo, dry_run=False, config_error=config_error
    )

    # 4. Apply dry-run wrapper if needed
    if dry_run:
        return ctx.with_dry_run()
    return ctx
