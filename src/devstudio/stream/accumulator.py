"""Response accumulator — folds stream events into a completion record."""

from __future__ import annotations

import logging

from devstudio.stream.models import (
    ChunkEvent,
    CompletionRecord,
    ResultEvent,
    StreamEvent,
    ThinkingEvent,
    TodoItem,
    TodosEvent,
    ToolCallEvent,
    ToolCallRecord,
    ToolResultEvent,
)

logger = logging.getLogger(__name__)


class ResponseAccumulator:
    """Cumulative state of one invocation.

    Text and thinking are append-only, the todo list is replaced by each
    snapshot, and tool results are matched FIFO against open tool calls.
    """

    def __init__(self) -> None:
        self._content: list[str] = []
        self._thinking: list[str] = []
        self._todos: list[TodoItem] | None = None
        self._tool_calls: list[ToolCallRecord] = []
        self._result: str | None = None

    @property
    def content(self) -> str:
        """Concatenation of every chunk so far."""
        return "".join(self._content)

    @property
    def thinking(self) -> str:
        return "".join(self._thinking)

    @property
    def tool_calls(self) -> list[ToolCallRecord]:
        return list(self._tool_calls)

    def apply(self, event: StreamEvent) -> None:
        """Fold a single event into the accumulated state."""
        if isinstance(event, ChunkEvent):
            self._content.append(event.content)

        elif isinstance(event, ThinkingEvent):
            self._thinking.append(event.thinking)

        elif isinstance(event, ToolCallEvent):
            self._tool_calls.append(
                ToolCallRecord(name=event.name, input=dict(event.input))
            )

        elif isinstance(event, ToolResultEvent):
            record = next((r for r in self._tool_calls if r.result is None), None)
            if record is None:
                logger.warning("tool_result with no open tool call, ignoring")
                return
            record.result = event.content

        elif isinstance(event, TodosEvent):
            self._todos = list(event.todos)

        elif isinstance(event, ResultEvent):
            self._result = event.content

        # Error events carry nothing into the completion record.

    def finalize(self, session_id: str) -> CompletionRecord:
        """Build the completion record.

        An explicit ``result`` payload from the agent wins over the
        locally accumulated text.
        """
        thinking = self.thinking
        return CompletionRecord(
            session_id=session_id,
            content=self._result if self._result else self.content,
            thinking=thinking or None,
            todos=list(self._todos) if self._todos is not None else None,
            tool_calls=[r.model_copy() for r in self._tool_calls] or None,
        )
