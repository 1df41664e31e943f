"""Tests for subprocess wrapper with rich error context."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from absorb.core.errors import ObjectStoreFailure
from absorb.core.subprocess import run_subprocess_with_context


def test_success_case_decodes_output() -> None:
    """Test that successful execution returns decoded stdout and stderr."""
    with patch("absorb.core.subprocess.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(
            args=["git", "status"], returncode=0, stdout=b"success output", stderr=b""
        )

        result = run_subprocess_with_context(
            ["git", "status"],
            operation_context="check git status",
            cwd=Path("/repo"),
        )

        assert result.returncode == 0
        assert result.stdout == "success output"
        assert result.stderr == ""

        mock_run.assert_called_once_with(
            ["git", "status"],
            cwd=Path("/repo"),
            input=None,
            env=None,
            capture_output=True,
            check=True,
        )


def test_input_is_encoded_and_crlf_survives() -> None:
    """Test that stdin text is sent as bytes and CRLF output is not translated."""
    with patch("absorb.core.subprocess.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(
            args=["git", "cat-file"], returncode=0, stdout=b"one\r\ntwo\r\n", stderr=b""
        )

        result = run_subprocess_with_context(
            ["git", "cat-file", "blob", "abc"],
            operation_context="read blob",
            input="payload\r\n",
        )

        assert result.stdout == "one\r\ntwo\r\n"
        assert mock_run.call_args.kwargs["input"] == b"payload\r\n"


def test_invalid_utf8_round_trips() -> None:
    """Test that undecodable bytes are preserved through surrogateescape."""
    raw = b"caf\xe9\n"
    with patch("absorb.core.subprocess.subprocess.run") as mock_run:
        mock_run.return_value = subprocess.CompletedProcess(
            args=["git"], returncode=0, stdout=raw, stderr=b""
        )

        result = run_subprocess_with_context(["git"], operation_context="read")

        assert result.stdout.encode("utf-8", "surrogateescape") == raw


def test_failure_with_stderr_includes_stderr_in_error() -> None:
    """Test that subprocess failure with stderr includes stderr in error message."""
    with patch("absorb.core.subprocess.subprocess.run") as mock_run:
        mock_run.side_effect = subprocess.CalledProcessError(
            returncode=128,
            cmd=["git", "cat-file", "commit", "deadbeef"],
            stderr=b"fatal: Not a valid object name deadbeef",
        )

        with pytest.raises(ObjectStoreFailure) as exc_info:
            run_subprocess_with_context(
                ["git", "cat-file", "commit", "deadbeef"],
                operation_context="read commit deadbeef",
                cwd=Path("/repo"),
            )

        error_message = str(exc_info.value)
        assert "Failed to read commit deadbeef" in error_message
        assert "Command: git cat-file commit deadbeef" in error_message
        assert "Exit code: 128" in error_message
        assert "stderr: fatal: Not a valid object name deadbeef" in error_message


def test_failure_without_output_handles_gracefully() -> None:
    """Test that subprocess failure without stdout or stderr still produces useful error."""
    with patch("absorb.core.subprocess.subprocess.run") as mock_run:
        mock_run.side_effect = subprocess.CalledProcessError(
            returncode=1, cmd=["git", "write-tree"], output=None, stderr=None
        )

        with pytest.raises(ObjectStoreFailure) as exc_info:
            run_subprocess_with_context(["git", "write-tree"], operation_context="write tree")

        error_message = str(exc_info.value)
        assert "Failed to write tree" in error_message
        assert "stdout:" not in error_message
        assert "stderr:" not in error_message


def test_exception_chaining_preserved() -> None:
    """Test that the original CalledProcessError is kept as the cause."""
    with patch("absorb.core.subprocess.subprocess.run") as mock_run:
        original = subprocess.CalledProcessError(returncode=1, cmd=["git"], stderr=b"boom")
        mock_run.side_effect = original

        with pytest.raises(ObjectStoreFailure) as exc_info:
            run_subprocess_with_context(["git"], operation_context="run git")

        assert exc_info.value.__cause__ is original


def test_missing_binary_raises_object_store_failure() -> None:
    """Test that a missing executable is reported instead of leaking FileNotFoundError."""
    with patch("absorb.core.subprocess.subprocess.run") as mock_run:
        mock_run.side_effect = FileNotFoundError("git")

        with pytest.raises(ObjectStoreFailure, match="Command not found while trying to run git"):
            run_subprocess_with_context(["git", "status"], operation_context="run git")


def test_object_store_failure_is_runtime_error() -> None:
    """Test that callers catching RuntimeError still see object store failures."""
    assert issubclass(ObjectStoreFailure, RuntimeError)
