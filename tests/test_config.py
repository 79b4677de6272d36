"""Tests for devstudio config models and parser."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml
from pydantic import ValidationError

from devstudio.config.models import DEFAULT_SEARCH_PATHS, AgentCLIConfig, DevStudioConfig
from devstudio.config.parser import BINARY_ENV_VAR, ConfigError, load_config

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run every test in an empty directory without the binary override.

    Setting before deleting makes monkeypatch restore the variable's absence
    even when a loaded .env file sets it during the test.
    """
    monkeypatch.setenv(BINARY_ENV_VAR, "unset")
    monkeypatch.delenv(BINARY_ENV_VAR)
    monkeypatch.chdir(tmp_path)


def _write_yaml(path: Path, data: dict[str, Any]) -> Path:
    """Write *data* as YAML and return the file path."""
    path.write_text(yaml.dump(data), encoding="utf-8")
    return path


# ===================================================================
# Model validation tests
# ===================================================================


class TestModels:
    def test_defaults(self) -> None:
        config = DevStudioConfig()
        assert config.version == "1"
        assert config.agent.binary is None
        assert config.agent.search_paths == DEFAULT_SEARCH_PATHS
        assert config.agent.probe_timeout == 2.0
        assert config.agent.version_timeout == 5.0
        assert config.agent.stderr_error_keywords == ["error", "failed"]
        assert config.personas == {}

    def test_search_paths_not_shared(self) -> None:
        a = AgentCLIConfig()
        a.search_paths.append("/elsewhere")
        assert AgentCLIConfig().search_paths == DEFAULT_SEARCH_PATHS

    def test_keywords_lowercased(self) -> None:
        cfg = AgentCLIConfig(stderr_error_keywords=["ERROR", " Fatal ", ""])
        assert cfg.stderr_error_keywords == ["error", "fatal"]

    def test_keywords_required(self) -> None:
        with pytest.raises(ValidationError, match="At least one"):
            AgentCLIConfig(stderr_error_keywords=[" "])

    def test_timeouts_positive(self) -> None:
        with pytest.raises(ValidationError):
            AgentCLIConfig(probe_timeout=0)

    def test_max_line_bytes_floor(self) -> None:
        with pytest.raises(ValidationError):
            AgentCLIConfig(max_line_bytes=10)

    def test_unknown_persona_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DevStudioConfig.model_validate({"personas": {"wizard": "magic"}})

    def test_empty_persona_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            DevStudioConfig.model_validate({"personas": {"tester": "  "}})

    def test_extra_keys_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DevStudioConfig.model_validate({"agents": {}})


# ===================================================================
# Parser tests
# ===================================================================


class TestLoadConfig:
    def test_defaults_without_file(self) -> None:
        config = load_config()
        assert config == DevStudioConfig()

    def test_default_file_in_cwd(self, tmp_path: Path) -> None:
        _write_yaml(tmp_path / "devstudio.yaml", {"agent": {"binary": "/opt/agent"}})
        assert load_config().agent.binary == "/opt/agent"

    def test_explicit_path(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path / "custom.yaml",
            {"version": "1", "personas": {"developer": "Terse."}},
        )
        config = load_config(path)
        assert config.personas == {"developer": "Terse."}

    def test_explicit_path_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "devstudio.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == DevStudioConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "devstudio.yaml"
        path.write_text("agent: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "devstudio.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_config(path)

    def test_validation_error_is_readable(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path / "devstudio.yaml", {"agent": {"probe_timeout": "soon"}}
        )
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        message = str(exc_info.value)
        assert message.startswith("Invalid devstudio.yaml settings:")
        assert "agent.probe_timeout:" in message

    def test_unknown_setting_named(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path / "devstudio.yaml", {"agent": {"binray": "/x"}})
        with pytest.raises(ConfigError, match=r"agent\.binray: unknown setting"):
            load_config(path)

    def test_invalid_yaml_reports_line(self, tmp_path: Path) -> None:
        path = tmp_path / "devstudio.yaml"
        path.write_text("version: '1'\nagent: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match=r"at line \d+"):
            load_config(path)


class TestEnvOverrides:
    def test_env_var_overrides_binary(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_yaml(tmp_path / "devstudio.yaml", {"agent": {"binary": "/from/yaml"}})
        monkeypatch.setenv(BINARY_ENV_VAR, "/from/env")
        assert load_config().agent.binary == "/from/env"

    def test_env_var_without_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(BINARY_ENV_VAR, "/from/env")
        assert load_config().agent.binary == "/from/env"

    def test_blank_env_var_ignored(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write_yaml(tmp_path / "devstudio.yaml", {"agent": {"binary": "/from/yaml"}})
        monkeypatch.setenv(BINARY_ENV_VAR, "   ")
        assert load_config().agent.binary == "/from/yaml"

    def test_dotenv_beside_config(self, tmp_path: Path) -> None:
        project = tmp_path / "project"
        project.mkdir()
        path = _write_yaml(project / "devstudio.yaml", {"version": "1"})
        (project / ".env").write_text(f"{BINARY_ENV_VAR}=/from/dotenv\n", encoding="utf-8")
        assert load_config(path).agent.binary == "/from/dotenv"

    def test_environment_wins_over_dotenv(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / ".env").write_text(f"{BINARY_ENV_VAR}=/from/dotenv\n", encoding="utf-8")
        monkeypatch.setenv(BINARY_ENV_VAR, "/from/env")
        assert load_config().agent.binary == "/from/env"
