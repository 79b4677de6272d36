"""Agent output stream — line decoding, classification and accumulation."""

from devstudio.stream.accumulator import ResponseAccumulator
from devstudio.stream.classifier import classify_line
from devstudio.stream.decoder import LineBuffer
from devstudio.stream.models import (
    ChunkEvent,
    CompletionRecord,
    ErrorEvent,
    InvocationError,
    InvocationRequest,
    ResultEvent,
    SendReceipt,
    StatusRecord,
    StreamEvent,
    ThinkingEvent,
    TodoItem,
    TodosEvent,
    ToolCallEvent,
    ToolCallRecord,
    ToolResultEvent,
)

__all__ = [
    "ChunkEvent",
    "CompletionRecord",
    "ErrorEvent",
    "InvocationError",
    "InvocationRequest",
    "LineBuffer",
    "ResponseAccumulator",
    "ResultEvent",
    "SendReceipt",
    "StatusRecord",
    "StreamEvent",
    "ThinkingEvent",
    "TodoItem",
    "TodosEvent",
    "ToolCallEvent",
    "ToolCallRecord",
    "ToolResultEvent",
    "classify_line",
]
