"""Pydantic v2 models for devstudio.yaml configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from devstudio.constants import AgentType

#: Install locations checked before falling back to ``PATH``.
DEFAULT_SEARCH_PATHS = [
    "/usr/local/bin/claude",
    "/opt/homebrew/bin/claude",
    "~/.local/bin/claude",
    "~/.claude/bin/claude",
]


class AgentCLIConfig(BaseModel):
    """How to find and talk to the agent CLI binary."""

    model_config = ConfigDict(extra="forbid")

    binary: str | None = Field(
        default=None,
        description="Explicit path to the agent binary (skips discovery)",
    )
    search_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SEARCH_PATHS),
        description="Candidate install locations, checked in order",
    )
    probe_timeout: float = Field(
        default=2.0,
        gt=0,
        description="Seconds allowed for the binary presence check",
    )
    version_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds allowed for the version query",
    )
    max_line_bytes: int = Field(
        default=1_048_576,
        ge=1024,
        description="Longest stdout line accepted from the agent",
    )
    stderr_error_keywords: list[str] = Field(
        default_factory=lambda: ["error", "failed"],
        description="Case-insensitive stderr keywords reported as errors",
    )

    @field_validator("stderr_error_keywords")
    @classmethod
    def _lowercase_keywords(cls, value: list[str]) -> list[str]:
        keywords = [k.strip().lower() for k in value if k.strip()]
        if not keywords:
            msg = "At least one stderr error keyword is required"
            raise ValueError(msg)
        return keywords


class DevStudioConfig(BaseModel):
    """Top-level devstudio.yaml configuration."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1", description="Config schema version")
    agent: AgentCLIConfig = Field(
        default_factory=AgentCLIConfig,
        description="Agent CLI settings",
    )
    personas: dict[AgentType, str] = Field(
        default_factory=dict,
        description="System prompt overrides keyed by agent type",
    )

    @field_validator("personas")
    @classmethod
    def _non_empty_personas(cls, value: dict[str, str]) -> dict[str, str]:
        empty = sorted(k for k, v in value.items() if not v.strip())
        if empty:
            joined = ", ".join(f"'{k}'" for k in empty)
            msg = f"Persona overrides must not be empty: {joined}"
            raise ValueError(msg)
        return value
