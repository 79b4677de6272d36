"""devstudio status — probe the agent CLI installation."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from devstudio.agent.status import StatusProbe
from devstudio.config.parser import ConfigError, load_config


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to devstudio.yaml (default: ./devstudio.yaml).",
)
@click.option("--json", "as_json", is_flag=True, help="Print the raw status record.")
def status(config_path: Path | None, as_json: bool) -> None:
    """Check whether the agent CLI is installed and usable."""
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    record = asyncio.run(StatusProbe(config.agent).check())

    if as_json:
        click.echo(record.model_dump_json())
    elif record.installed:
        click.echo(click.style("✓ ", fg="green") + f"Agent CLI installed ({record.version})")
        if record.authenticated:
            click.echo(click.style("✓ ", fg="green") + "Authenticated")
    else:
        click.echo(click.style("✗ ", fg="red") + "Agent CLI not found or not working")

    if not record.installed:
        raise SystemExit(1)
