"""Shared constants and type aliases for the DevStudio runtime."""

from __future__ import annotations

from typing import Literal

#: The six agent personas an invocation can run as.
AgentType = Literal[
    "developer",
    "product-owner",
    "tester",
    "security",
    "devops",
    "documentation",
]

#: Default name of the agent CLI binary.
DEFAULT_BINARY_NAME = "claude"

#: Environment overrides so agent output never carries ANSI escapes.
PLAIN_OUTPUT_ENV = {
    "FORCE_COLOR": "0",
    "NO_COLOR": "1",
    "TERM": "dumb",
}
