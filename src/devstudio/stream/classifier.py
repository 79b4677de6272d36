"""Protocol classifier — maps one stdout line to a typed stream event."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from devstudio.stream.models import (
    ChunkEvent,
    ErrorEvent,
    ResultEvent,
    StreamEvent,
    ThinkingEvent,
    TodoItem,
    TodosEvent,
    ToolCallEvent,
    ToolResultEvent,
)

logger = logging.getLogger(__name__)


def classify_line(line: str) -> StreamEvent:
    """Classify a complete, non-blank line from the agent's stdout.

    Recognised JSON records (by their ``type`` field):

    * ``content``     -> ``ChunkEvent``
    * ``thinking``    -> ``ThinkingEvent``
    * ``tool_use``    -> ``ToolCallEvent``
    * ``tool_result`` -> ``ToolResultEvent``
    * ``todo``        -> ``TodosEvent`` (always a full snapshot)
    * ``result``      -> ``ResultEvent``
    * ``error``       -> ``ErrorEvent``

    Anything else, including text that is not JSON at all, falls back to
    a ``ChunkEvent`` carrying the raw line so nothing is ever dropped.
    """
    record = _parse_record(line)
    if record is not None:
        event = _classify_record(record)
        if event is not None:
            return event
    return ChunkEvent(content=line + "\n")


def _parse_record(line: str) -> dict[str, Any] | None:
    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(record, dict):
        return None
    return record


def _classify_record(record: dict[str, Any]) -> StreamEvent | None:
    """Return the typed event for *record*, or ``None`` when unrecognised."""
    record_type = record.get("type")

    if record_type == "content":
        content = record.get("content")
        if isinstance(content, str):
            return ChunkEvent(content=content)

    elif record_type == "thinking":
        text = record.get("thinking", record.get("content"))
        if isinstance(text, str):
            return ThinkingEvent(thinking=text)

    elif record_type == "tool_use":
        name = record.get("name")
        tool_input = record.get("input", {})
        if not isinstance(tool_input, dict):
            tool_input = {}
        if isinstance(name, str) and name:
            return ToolCallEvent(name=name, input=tool_input)

    elif record_type == "tool_result":
        content = record.get("content", "")
        if not isinstance(content, str):
            content = json.dumps(content)
        return ToolResultEvent(content=content)

    elif record_type == "todo":
        return TodosEvent(todos=_parse_todos(record))

    elif record_type == "result":
        result = record.get("result", record.get("content"))
        if isinstance(result, str):
            return ResultEvent(content=result)

    elif record_type == "error":
        message = record.get("message", record.get("error"))
        if isinstance(message, str) and message:
            return ErrorEvent(message=message)

    logger.debug("unrecognised stream record, showing as text: %s", record_type)
    return None


def _parse_todos(record: dict[str, Any]) -> list[TodoItem]:
    """Extract the task-list snapshot carried by a ``todo`` record."""
    raw_items = record.get("todos")
    if not isinstance(raw_items, list):
        raw_items = [record]

    todos: list[TodoItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        try:
            todos.append(TodoItem.model_validate(raw))
        except ValidationError:
            logger.warning("skipping malformed todo item: %s", str(raw)[:200])
    return todos
