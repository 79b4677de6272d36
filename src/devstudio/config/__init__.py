"""Configuration models and parser for devstudio.yaml."""

from devstudio.config.models import AgentCLIConfig, DevStudioConfig
from devstudio.config.parser import ConfigError, load_config

__all__ = [
    "AgentCLIConfig",
    "ConfigError",
    "DevStudioConfig",
    "load_config",
]
