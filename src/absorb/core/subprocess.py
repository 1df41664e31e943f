"""Subprocess execution with rich error context for git plumbing calls."""

import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from absorb.core.errors import ObjectStoreFailure


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", "surrogateescape")


def run_subprocess_with_context(
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path | None = None,
    input: str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
    **kwargs: Any,
) -> subprocess.CompletedProcess[str]:
    """Execute subprocess with enriched error reporting for the object store layer.

    The child runs in binary mode and output is decoded as UTF-8 with
    ``surrogateescape``: file content (including CRLF line endings and bytes
    that are not valid UTF-8) survives a read/modify/write round trip unchanged.

    Args:
        cmd: Command and arguments to execute
        operation_context: Human-readable description of operation
        cwd: Working directory for command execution
        input: Text passed to the command on stdin
        env: Full environment for the child process (defaults to inheriting)
        check: Whether to raise on non-zero exit (default: True)
        **kwargs: Additional arguments passed to subprocess.run()

    Returns:
        CompletedProcess with decoded stdout and stderr

    Raises:
        ObjectStoreFailure: If command fails or the binary is not found
    """
    try:
        raw = subprocess.run(
            cmd,
            cwd=cwd,
            input=input.encode("utf-8", "surrogateescape") if input is not None else None,
            env=env,
            capture_output=True,
            check=check,
            **kwargs,
        )
        return subprocess.CompletedProcess(
            args=raw.args,
            returncode=raw.returncode,
            stdout=_decode(raw.stdout),
            stderr=_decode(raw.stderr),
        )

    except subprocess.CalledProcessError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Failed to {operation_context}"
        error_msg += f"\nCommand: {cmd_str}"
        error_msg += f"\nExit code: {e.returncode}"

        stdout_stripped = _decode(e.stdout).strip()
        if stdout_stripped:
            error_msg += f"\nstdout: {stdout_stripped}"

        stderr_stripped = _decode(e.stderr).strip()
        if stderr_stripped:
            error_msg += f"\nstderr: {stderr_stripped}"

        raise ObjectStoreFailure(error_msg) from e

    except FileNotFoundError as e:
        cmd_str = " ".join(str(arg) for arg in cmd)
        error_msg = f"Command not found while trying to {operation_context}: {cmd[0]}"
        error_msg += f"\nFull command: {cmd_str}"
        raise ObjectStoreFailure(error_msg) from e
