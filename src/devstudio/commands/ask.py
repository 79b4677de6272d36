"""devstudio ask — send one message to an agent and stream the answer."""

from __future__ import annotations

import asyncio
import contextlib
import json
import signal
from pathlib import Path
from typing import get_args

import click

from devstudio.agent.helpers import new_session_id
from devstudio.agent.supervisor import AgentSupervisor
from devstudio.config.models import DevStudioConfig
from devstudio.config.parser import ConfigError, load_config
from devstudio.constants import AgentType
from devstudio.stream.models import (
    ChunkEvent,
    CompletionRecord,
    ErrorEvent,
    InvocationError,
    InvocationRequest,
    StreamEvent,
    ThinkingEvent,
    TodosEvent,
    ToolCallEvent,
    ToolResultEvent,
)

#: Max characters of a tool result shown in the terminal.
_PREVIEW_LEN = 120

_TODO_MARKERS = {"pending": "○", "in_progress": "◐", "completed": "●"}


class _StreamPrinter:
    """Renders stream events and the completion record to the terminal."""

    def __init__(self, as_json: bool) -> None:
        self._as_json = as_json
        self._printed_text = False
        self._at_line_start = True

    def on_stream(self, event: StreamEvent) -> None:
        if self._as_json:
            click.echo(event.model_dump_json())
            return

        if isinstance(event, ChunkEvent):
            self._write(event.content)
            self._printed_text = True
        elif isinstance(event, ThinkingEvent):
            self._line(click.style(event.thinking, dim=True, italic=True))
        elif isinstance(event, ToolCallEvent):
            args = json.dumps(event.input, ensure_ascii=False)
            self._line(click.style(f"  ⚙ {event.name} ", fg="cyan") + args)
        elif isinstance(event, ToolResultEvent):
            preview = event.content.replace("\n", " ")
            if len(preview) > _PREVIEW_LEN:
                preview = preview[:_PREVIEW_LEN] + "…"
            self._line(click.style(f"    → {preview}", dim=True))
        elif isinstance(event, TodosEvent):
            for item in event.todos:
                marker = _TODO_MARKERS.get(item.status, "○")
                self._line(click.style(f"  {marker} {item.content}", fg="yellow"))
        elif isinstance(event, ErrorEvent):
            self._line(click.style(event.message.rstrip(), fg="red"), err=True)

    def on_complete(self, record: CompletionRecord) -> None:
        if self._as_json:
            click.echo(record.model_dump_json())
            return
        if not self._printed_text and record.content:
            self._write(record.content)
        if not self._at_line_start:
            click.echo()

    def _write(self, text: str) -> None:
        click.echo(text, nl=False)
        if text:
            self._at_line_start = text.endswith("\n")

    def _line(self, text: str, err: bool = False) -> None:
        if not self._at_line_start:
            click.echo(err=err)
        click.echo(text, err=err)
        self._at_line_start = True


async def _run(config: DevStudioConfig, request: InvocationRequest, as_json: bool) -> int:
    supervisor = AgentSupervisor(config)
    printer = _StreamPrinter(as_json)
    done = asyncio.Event()
    exit_code = 0

    def on_complete(record: CompletionRecord) -> None:
        printer.on_complete(record)
        done.set()

    def on_error(failure: InvocationError) -> None:
        nonlocal exit_code
        if failure.context == "stderr":
            # Already rendered from the stream channel.
            return
        exit_code = 1
        if as_json:
            click.echo(failure.model_dump_json())
        else:
            click.echo(click.style(failure.error, fg="red"), err=True)
        if failure.context == "spawn":
            done.set()

    def on_interrupt() -> None:
        nonlocal exit_code
        if supervisor.cancel_current():
            click.echo(click.style("\nCancelled.", fg="yellow"), err=True)
        exit_code = 130
        done.set()

    supervisor.stream.subscribe(printer.on_stream)
    supervisor.complete.once(on_complete)
    supervisor.error.subscribe(on_error)

    loop = asyncio.get_running_loop()
    handles_sigint = False
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
        handles_sigint = True

    try:
        await supervisor.send_message(request)
        await done.wait()
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)
        await supervisor.shutdown()

    return exit_code


@click.command()
@click.argument("message")
@click.option(
    "-a",
    "--agent",
    "agent_type",
    type=click.Choice(get_args(AgentType)),
    default="developer",
    show_default=True,
    help="Agent persona to run as.",
)
@click.option(
    "-p",
    "--project",
    "project_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project directory the agent works in (default: current directory).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to devstudio.yaml (default: ./devstudio.yaml).",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print stream events and the final record as JSON lines.",
)
def ask(
    message: str,
    agent_type: str,
    project_path: Path | None,
    config_path: Path | None,
    as_json: bool,
) -> None:
    """Send MESSAGE to the agent CLI and stream its answer."""
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    request = InvocationRequest(
        session_id=new_session_id(),
        message=message,
        project_path=str(project_path) if project_path is not None else None,
        agent_type=agent_type,  # type: ignore[arg-type]
    )

    exit_code = asyncio.run(_run(config, request, as_json))
    if exit_code:
        raise SystemExit(exit_code)
