"""Tests for configuration loading and saving."""

from pathlib import Path

import pytest

from absorb.core.config import (
    AbsorbConfig,
    load_config,
    parse_config_value,
    read_tool_table_from_pyproject,
    save_config_value,
)
from absorb.core.rewrite import RewriteMode


def test_defaults_without_any_file(tmp_path: Path) -> None:
    config = load_config(None, global_path=tmp_path / "missing.toml")

    assert config == AbsorbConfig()
    assert config.max_stack == 10
    assert config.context_lines == 0
    assert config.rewrite_mode == RewriteMode.FIXUP
    assert config.force is False
    assert config.base is None


def test_repository_table_overrides_global_file(tmp_path: Path) -> None:
    global_path = tmp_path / "config.toml"
    global_path.write_text("max_stack = 20\nforce = true\n", encoding="utf-8")
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "pyproject.toml").write_text(
        '[project]\nname = "demo"\n\n[tool.absorb]\nmax_stack = 5\nrewrite_mode = "squash"\n',
        encoding="utf-8",
    )

    config = load_config(repo, global_path=global_path)

    assert config.max_stack == 5
    assert config.force is True
    assert config.rewrite_mode == RewriteMode.SQUASH


def test_pyproject_without_tool_table(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "demo"\n', encoding="utf-8")

    assert read_tool_table_from_pyproject(tmp_path) == {}


def test_invalid_value_names_its_source(tmp_path: Path) -> None:
    global_path = tmp_path / "config.toml"
    global_path.write_text('context_lines = "lots"\n', encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid integer value for context_lines") as exc_info:
        load_config(None, global_path=global_path)

    assert str(global_path) in str(exc_info.value)


def test_unknown_key_is_rejected(tmp_path: Path) -> None:
    global_path = tmp_path / "config.toml"
    global_path.write_text("colour = true\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Unknown config key: colour"):
        load_config(None, global_path=global_path)


@pytest.mark.parametrize(
    ("key", "raw", "expected"),
    [
        ("max_stack", "15", 15),
        ("context_lines", 3, 3),
        ("force", "TRUE", True),
        ("force", False, False),
        ("rewrite_mode", "squash", RewriteMode.SQUASH),
        ("base", "origin/main", "origin/main"),
        ("base", "", None),
    ],
)
def test_parse_config_value(key: str, raw: object, expected: object) -> None:
    assert parse_config_value(key, raw) == expected


@pytest.mark.parametrize(
    ("key", "raw", "message"),
    [
        ("max_stack", "ten", "Invalid integer value"),
        ("max_stack", True, "Invalid integer value"),
        ("context_lines", "-1", "must not be negative"),
        ("max_stack", 0, "must be at least 1"),
        ("force", "yes", "Invalid boolean value"),
        ("rewrite_mode", "rebase", "expected fixup, squash"),
    ],
)
def test_parse_config_value_errors(key: str, raw: object, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_config_value(key, raw)


def test_save_creates_document_with_header(tmp_path: Path) -> None:
    path = tmp_path / ".absorb" / "config.toml"

    save_config_value("max_stack", "25", path=path)

    content = path.read_text(encoding="utf-8")
    assert content.startswith("# Global absorb configuration")
    assert "max_stack = 25" in content
    assert load_config(None, global_path=path).max_stack == 25


def test_save_preserves_comments_and_other_keys(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("# keep me\nforce = true  # trailing\n", encoding="utf-8")

    save_config_value("rewrite_mode", "squash", path=path)

    content = path.read_text(encoding="utf-8")
    assert "# keep me" in content
    assert "force = true  # trailing" in content
    assert 'rewrite_mode = "squash"' in content


def test_save_empty_base_removes_key(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('base = "main"\nforce = true\n', encoding="utf-8")

    save_config_value("base", "", path=path)

    assert load_config(None, global_path=path) == AbsorbConfig(force=True)


def test_save_rejects_invalid_value(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"

    with pytest.raises(ValueError):
        save_config_value("force", "maybe", path=path)

    assert not path.exists()
