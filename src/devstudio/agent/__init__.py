"""Agent CLI orchestration — command building, supervision and status."""

from devstudio.agent.command import Invocation, build_invocation, shell_quote
from devstudio.agent.helpers import new_session_id
from devstudio.agent.personas import AGENT_PROMPTS, system_prompt_for
from devstudio.agent.status import StatusProbe, check_status, find_agent_binary
from devstudio.agent.supervisor import AgentSupervisor

__all__ = [
    "AGENT_PROMPTS",
    "AgentSupervisor",
    "Invocation",
    "StatusProbe",
    "build_invocation",
    "check_status",
    "find_agent_binary",
    "new_session_id",
    "shell_quote",
    "system_prompt_for",
]
