"""Load, validate, and resolve devstudio.yaml configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from devstudio.config.models import DevStudioConfig

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

DEFAULT_CONFIG_NAME = "devstudio.yaml"

#: Environment variable overriding ``agent.binary``.
BINARY_ENV_VAR = "DEVSTUDIO_AGENT_BINARY"


class ConfigError(Exception):
    """User-facing configuration error."""


def load_config(path: Path | None = None) -> DevStudioConfig:
    """Load and validate a devstudio.yaml file.

    Args:
        path: Explicit config file path. If None, looks for
              devstudio.yaml in the current directory and falls back
              to defaults when there is none.

    Returns:
        A validated DevStudioConfig instance.

    Raises:
        ConfigError: On a missing explicit file, bad YAML, or validation failure.
    """
    config_path = _resolve_path(path)
    if config_path is None:
        raw: dict[str, Any] = {}
        _load_env(Path.cwd())
    else:
        raw = _read_yaml(config_path)
        _load_env(config_path.parent)
    _apply_env_overrides(raw)
    return _validate(raw)


def _resolve_path(path: Path | None) -> Path | None:
    if path is not None:
        resolved = Path(path)
        if not resolved.is_file():
            msg = f"Config file not found: {resolved}"
            raise ConfigError(msg)
        return resolved

    default = Path.cwd() / DEFAULT_CONFIG_NAME
    if not default.is_file():
        return None
    return default


def _read_yaml(path: Path) -> dict[str, Any]:
    """Parse *path* into a mapping; an empty file counts as no settings."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        msg = f"Cannot read {path}: {exc}"
        raise ConfigError(msg) from exc
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 1}" if mark is not None else ""
        msg = f"Invalid YAML in {path.name}{where}"
        raise ConfigError(msg) from exc

    if data is None:
        return {}
    if isinstance(data, dict):
        return data
    msg = f"Expected a YAML mapping in {path.name}, got {type(data).__name__}"
    raise ConfigError(msg)


def _load_env(config_dir: Path) -> None:
    # Variables already set in the environment win over the .env file.
    load_dotenv(config_dir / ".env", override=False)


def _apply_env_overrides(raw: dict[str, Any]) -> None:
    binary = os.environ.get(BINARY_ENV_VAR, "").strip()
    if not binary:
        return
    agent = raw.setdefault("agent", {})
    if isinstance(agent, dict):
        agent["binary"] = binary


def _describe_error(error: ErrorDetails) -> str:
    key = ".".join(str(part) for part in error["loc"]) or "(top level)"
    if error["type"] == "extra_forbidden":
        return f"  {key}: unknown setting"
    return f"  {key}: {error['msg']}"


def _validate(raw: dict[str, Any]) -> DevStudioConfig:
    try:
        return DevStudioConfig.model_validate(raw)
    except ValidationError as exc:
        details = "\n".join(_describe_error(err) for err in exc.errors())
        msg = f"Invalid {DEFAULT_CONFIG_NAME} settings:\n{details}"
        raise ConfigError(msg) from exc
