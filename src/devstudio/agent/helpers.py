"""Shared helper functions for the agent supervisor."""

from __future__ import annotations

import time
from collections.abc import Iterable

from devstudio.stream.models import InvocationError

#: Stderr text kept per invocation for exit diagnostics.
_STDERR_TAIL_CHARS = 4096


def format_stderr_preview(stderr_text: str, max_lines: int = 5) -> str:
    """Extract and format the last N non-empty lines from stderr output."""
    lines = [line for line in stderr_text.split("\n") if line.strip()]
    last = lines[-max_lines:] if len(lines) > max_lines else lines
    return "\n  ".join(last)


def looks_like_error(text: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive keyword screen for stderr output."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def append_stderr_tail(tail: str, chunk: str) -> str:
    """Append *chunk* to *tail*, keeping only the most recent characters."""
    combined = tail + chunk
    return combined[-_STDERR_TAIL_CHARS:]


def exit_error(
    session_id: str, returncode: int | None, stderr_tail: str
) -> InvocationError:
    """Build the error payload for a non-zero agent exit."""
    error_msg = f"Agent process exited with code {returncode}."
    preview = format_stderr_preview(stderr_tail)
    if preview:
        error_msg += f" Stderr:\n  {preview}"
    return InvocationError(session_id=session_id, error=error_msg, context="exit")


def new_session_id() -> str:
    """Return a fresh ``session-<epoch-ms>`` identifier."""
    return f"session-{time.time_ns() // 1_000_000}"
