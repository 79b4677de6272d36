"""Root CLI group and version flag."""

import logging
import signal

import click

# Ensure SIGPIPE doesn't silently kill the process (e.g. when stdout
# pipe closes while click.echo is writing).
if hasattr(signal, "SIGPIPE"):
    signal.signal(signal.SIGPIPE, signal.SIG_IGN)

from devstudio import __version__
from devstudio.commands.ask import ask
from devstudio.commands.init import init
from devstudio.commands.status import status


@click.group()
@click.version_option(version=__version__, prog_name="devstudio")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """DevStudio — drive a command-line coding agent from your terminal."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(init)
cli.add_command(status)
cli.add_command(ask)
