"""devstudio init — scaffold a devstudio.yaml in the current directory."""

from __future__ import annotations

from pathlib import Path

import click

from devstudio.config.parser import DEFAULT_CONFIG_NAME

TEMPLATE_YAML = """\
# DevStudio agent configuration
version: "1"

agent:
  # Explicit path to the agent CLI. Leave unset to search the install
  # locations below and then PATH. DEVSTUDIO_AGENT_BINARY overrides this.
  # binary: /usr/local/bin/claude
  search_paths:
    - /usr/local/bin/claude
    - /opt/homebrew/bin/claude
    - ~/.local/bin/claude
    - ~/.claude/bin/claude

  # Seconds allowed for the status probe steps.
  probe_timeout: 2.0
  version_timeout: 5.0

  # stderr output containing any of these words is reported as an error.
  stderr_error_keywords: [error, failed]

# Override the system prompt of any persona:
# developer, product-owner, tester, security, devops, documentation
# personas:
#   developer: |
#     You are a Developer AI Agent. Keep changes small and focused.
"""


@click.command()
@click.option(
    "--force",
    is_flag=True,
    help=f"Overwrite existing {DEFAULT_CONFIG_NAME} if it exists.",
)
def init(force: bool) -> None:
    """Scaffold a devstudio.yaml in the current directory."""
    config_path = Path.cwd() / DEFAULT_CONFIG_NAME

    # Guard against overwriting an existing config
    if config_path.exists() and not force:
        raise click.ClickException(
            f"{DEFAULT_CONFIG_NAME} already exists. Use --force to overwrite."
        )

    try:
        config_path.write_text(TEMPLATE_YAML, encoding="utf-8")
    except OSError as exc:
        raise click.ClickException(
            f"Cannot write {DEFAULT_CONFIG_NAME}: {exc}"
        ) from exc
    click.echo(f"  Created {DEFAULT_CONFIG_NAME}")

    click.echo()
    click.echo("Next steps:")
    click.echo(f"  1. Edit {DEFAULT_CONFIG_NAME} if the agent CLI lives elsewhere")
    click.echo("  2. Run `devstudio status` to check the installation")
    click.echo('  3. Run `devstudio ask "..."` to talk to an agent')
