"""Command builder — argv, environment and cwd for one agent invocation."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from devstudio.agent.personas import system_prompt_for
from devstudio.constants import DEFAULT_BINARY_NAME, PLAIN_OUTPUT_ENV, AgentType

#: Output format selecting line-delimited JSON on stdout.
OUTPUT_FORMAT = "stream-json"


def shell_quote(text: str) -> str:
    """Wrap *text* in single quotes, escaping embedded quotes as ``'\\''``."""
    return "'" + text.replace("'", "'\\''") + "'"


@dataclass(frozen=True)
class Invocation:
    """Everything needed to spawn the agent CLI once."""

    argv: list[str]
    cwd: str
    env: dict[str, str] = field(repr=False)

    @property
    def program(self) -> str:
        return self.argv[0]

    @property
    def args(self) -> list[str]:
        return self.argv[1:]

    @property
    def shell_command(self) -> str:
        """The invocation as one POSIX shell string, every argument quoted."""
        return " ".join(shell_quote(arg) for arg in self.argv)


def build_invocation(
    agent_type: AgentType,
    message: str,
    project_path: str | None = None,
    *,
    binary: str = DEFAULT_BINARY_NAME,
    personas: Mapping[str, str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> Invocation:
    """Build the invocation for *message* under the *agent_type* persona.

    The argument vector is never joined into a shell string for spawning,
    so the message cannot inject shell syntax.
    """
    argv = [
        binary,
        "--print",
        "--verbose",
        "--output-format",
        OUTPUT_FORMAT,
        "--system-prompt",
        system_prompt_for(agent_type, personas),
        message,
    ]

    env = dict(os.environ if base_env is None else base_env)
    env.update(PLAIN_OUTPUT_ENV)

    return Invocation(argv=argv, cwd=project_path or os.getcwd(), env=env)
