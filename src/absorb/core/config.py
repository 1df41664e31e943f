"""Configuration data structures and loading.

Settings come from, lowest precedence first: built-in defaults, the global
file ~/.absorb/config.toml, the repository's pyproject.toml [tool.absorb]
table, and finally command-line flags (applied by the CLI with
dataclasses.replace).
"""

import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import tomlkit

from absorb.core.rewrite import RewriteMode
from absorb.core.stack import DEFAULT_MAX_STACK


@dataclass(frozen=True)
class AbsorbConfig:
    """Immutable absorb settings.

    Loaded once at CLI entry point and stored in AbsorbContext.
    """

    max_stack: int = DEFAULT_MAX_STACK
    context_lines: int = 0
    rewrite_mode: RewriteMode = RewriteMode.FIXUP
    force: bool = False
    base: str | None = None


CONFIG_KEYS = tuple(f.name for f in fields(AbsorbConfig))


def global_config_path() -> Path:
    """Get the path to the global config file."""
    return Path.home() / ".absorb" / "config.toml"


def parse_config_value(key: str, value: Any) -> Any:
    """Validate one setting, accepting TOML values or strings from the command line.

    Raises:
        ValueError: If the key is unknown or the value is invalid for it
    """
    match key:
        case "max_stack" | "context_lines":
            if isinstance(value, bool):
                raise ValueError(f"Invalid integer value for {key}: {value}")
            try:
                number = int(value)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid integer value for {key}: {value}") from None
            if number < 0:
                raise ValueError(f"{key} must not be negative: {value}")
            if key == "max_stack" and number == 0:
                raise ValueError(f"{key} must be at least 1: {value}")
            return number
        case "force":
            if isinstance(value, bool):
                return value
            if str(value).lower() not in ("true", "false"):
                raise ValueError(f"Invalid boolean value for {key}: {value}")
            return str(value).lower() == "true"
        case "rewrite_mode":
            try:
                return RewriteMode(str(value))
            except ValueError:
                choices = ", ".join(mode.value for mode in RewriteMode)
                raise ValueError(f"Invalid value for {key}: {value} (expected {choices})") from None
        case "base":
            return str(value) if value else None
        case _:
            raise ValueError(f"Unknown config key: {key}")


def _apply_table(config: AbsorbConfig, table: dict[str, Any], source: Path) -> AbsorbConfig:
    updates: dict[str, Any] = {}
    for key, value in table.items():
        try:
            updates[key] = parse_config_value(key, value)
        except ValueError as e:
            raise ValueError(f"{e} (in {source})") from None
    return replace(config, **updates)


def read_tool_table_from_pyproject(repo_root: Path) -> dict[str, Any]:
    """Read the [tool.absorb] table from pyproject.toml, empty if absent."""
    pyproject_path = repo_root / "pyproject.toml"
    if not pyproject_path.exists():
        return {}

    with pyproject_path.open("rb") as f:
        data = tomllib.load(f)

    return data.get("tool", {}).get("absorb", {})


def load_config(repo_root: Path | None, global_path: Path | None = None) -> AbsorbConfig:
    """Load config from the global file and the repository, if present.

    Args:
        repo_root: Repository root, or None when outside a repository
        global_path: Global config file path (defaults to ~/.absorb/config.toml)

    Raises:
        ValueError: If a config file contains an unknown key or invalid value
    """
    config = AbsorbConfig()

    config_path = global_path if global_path is not None else global_config_path()
    if config_path.exists():
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        config = _apply_table(config, data, config_path)

    if repo_root is not None:
        table = read_tool_table_from_pyproject(repo_root)
        if table:
            config = _apply_table(config, table, repo_root / "pyproject.toml")

    return config


def config_to_toml_value(key: str, config: AbsorbConfig) -> Any:
    value = getattr(config, key)
    if isinstance(value, RewriteMode):
        return value.value
    return value


def save_config_value(key: str, value: str, path: Path | None = None) -> None:
    """Set one key in the global config file, preserving formatting and comments.

    Raises:
        ValueError: If the key is unknown or the value is invalid for it
    """
    parsed = parse_config_value(key, value)
    config_path = path if path is not None else global_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    if config_path.exists():
        doc = tomlkit.parse(config_path.read_text(encoding="utf-8"))
    else:
        doc = tomlkit.document()
        doc.add(tomlkit.comment("Global absorb configuration"))

    if parsed is None:
        if key in doc:
            del doc[key]
    elif isinstance(parsed, RewriteMode):
        doc[key] = parsed.value
    else:
        doc[key] = parsed

    config_path.write_text(tomlkit.dumps(doc), encoding="utf-8")
