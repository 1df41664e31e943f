from typing import Any

import click

from absorb.cli.ensure import Ensure
from absorb.cli.output import machine_output, user_output
from absorb.core.config import (
    CONFIG_KEYS,
    config_to_toml_value,
    global_config_path,
    save_config_value,
)
from absorb.core.context import AbsorbContext


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


@click.group("config")
def config_group() -> None:
    """Manage absorb configuration."""


@config_group.command("list")
@click.pass_obj
def config_list(ctx: AbsorbContext) -> None:
    """Print every configuration key with its effective value."""
    Ensure.config_loaded(ctx)
    for key in CONFIG_KEYS:
        machine_output(f"{key}={_format_value(config_to_toml_value(key, ctx.config))}")


@config_group.command("get")
@click.argument("key", metavar="KEY")
@click.pass_obj
def config_get(ctx: AbsorbContext, key: str) -> None:
    """Print the effective value of a configuration key."""
    Ensure.invariant(key in CONFIG_KEYS, f"Unknown config key: {key}")
    Ensure.config_loaded(ctx)
    machine_output(_format_value(config_to_toml_value(key, ctx.config)))


@config_group.command("set")
@click.argument("key", metavar="KEY")
@click.argument("value", metavar="VALUE")
def config_set(key: str, value: str) -> None:
    """Store a value in the global configuration file.

    Works even when the current configuration is invalid, so a bad value can
    be replaced. An empty VALUE for 'base' removes the setting.
    """
    try:
        save_config_value(key, value)
    except ValueError as e:
        Ensure.fail(str(e))
    user_output(f"Set {key}={value} in {global_config_path()}")
