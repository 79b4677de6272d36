"""Pydantic v2 models for the agent stream, completion and status records."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag

from devstudio.constants import AgentType


class InvocationRequest(BaseModel):
    """One message to run through the agent CLI."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    session_id: str = Field(description="Session the invocation belongs to")
    message: str = Field(description="User message passed as the final argument")
    project_path: str | None = Field(
        default=None,
        description="Working directory for the agent (defaults to the current one)",
    )
    agent_type: AgentType = Field(
        default="developer",
        description="Persona whose system prompt is used",
    )


class SendReceipt(BaseModel):
    """Returned by ``send_message`` once the subprocess has been requested."""

    session_id: str


class TodoItem(BaseModel):
    """A single entry of the agent's self-reported task list."""

    model_config = ConfigDict(populate_by_name=True)

    content: str
    status: Literal["pending", "in_progress", "completed"] = "pending"
    active_form: str = Field(default="", alias="activeForm")


class ToolCallRecord(BaseModel):
    """A tool invocation, completed by the matching ``tool_result``."""

    name: str
    input: dict[str, Any] = Field(default_factory=dict)
    result: str | None = None


# ------------------------------------------------------------------ #
# Stream events
# ------------------------------------------------------------------ #


class _StreamEventBase(BaseModel):
    """Common envelope shared by every stream event."""

    session_id: str = Field(
        default="",
        description="Owning session; stamped by the supervisor before broadcast",
    )


class ChunkEvent(_StreamEventBase):
    """A piece of response text."""

    type: Literal["chunk"] = "chunk"
    content: str


class ThinkingEvent(_StreamEventBase):
    """A piece of the agent's reasoning trace."""

    type: Literal["thinking"] = "thinking"
    thinking: str


class ToolCallEvent(_StreamEventBase):
    """The agent opened a tool call."""

    type: Literal["tool_call"] = "tool_call"
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(_StreamEventBase):
    """Result for the oldest open tool call."""

    type: Literal["tool_result"] = "tool_result"
    content: str


class TodosEvent(_StreamEventBase):
    """Complete current snapshot of the agent's task list."""

    type: Literal["todos"] = "todos"
    todos: list[TodoItem] = Field(default_factory=list)


class ResultEvent(_StreamEventBase):
    """Explicit completion payload emitted by the agent itself."""

    type: Literal["result"] = "result"
    content: str


class ErrorEvent(_StreamEventBase):
    """An error reported by the agent or detected on stderr."""

    type: Literal["error"] = "error"
    message: str


def _stream_discriminator(v: Any) -> str:
    if isinstance(v, dict):
        return str(v.get("type", ""))
    return str(getattr(v, "type", ""))


StreamEvent = Annotated[
    Annotated[ChunkEvent, Tag("chunk")]
    | Annotated[ThinkingEvent, Tag("thinking")]
    | Annotated[ToolCallEvent, Tag("tool_call")]
    | Annotated[ToolResultEvent, Tag("tool_result")]
    | Annotated[TodosEvent, Tag("todos")]
    | Annotated[ResultEvent, Tag("result")]
    | Annotated[ErrorEvent, Tag("error")],
    Discriminator(_stream_discriminator),
]
"""Discriminated union of all stream event types."""


# ------------------------------------------------------------------ #
# Terminal records
# ------------------------------------------------------------------ #


class CompletionRecord(BaseModel):
    """Final fold of everything accumulated during one invocation."""

    session_id: str
    content: str = ""
    thinking: str | None = None
    todos: list[TodoItem] | None = None
    tool_calls: list[ToolCallRecord] | None = None


class InvocationError(BaseModel):
    """Payload of the ``error`` channel."""

    session_id: str
    error: str = Field(description="Human-readable failure message")
    context: Literal["spawn", "stderr", "exit"] = Field(
        description="Where the failure was detected",
    )


class StatusRecord(BaseModel):
    """Result of a status probe. Never cached."""

    installed: bool = False
    authenticated: bool = False
    version: str | None = None
