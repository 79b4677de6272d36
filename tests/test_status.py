"""Tests for agent binary discovery and the status probe."""

from __future__ import annotations

import asyncio
import stat
import time
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from devstudio.agent.status import StatusProbe, check_status, find_agent_binary
from devstudio.config.models import AgentCLIConfig
from devstudio.stream.models import StatusRecord


def _make_executable(path: Path) -> Path:
    path.write_text("#!/bin/sh\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


def _make_version_process(stdout: bytes = b"1.0.42\n", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(stdout, b""))
    proc.wait = AsyncMock(return_value=returncode)
    proc.kill = MagicMock()
    return proc


# ------------------------------------------------------------------ #
# Binary discovery
# ------------------------------------------------------------------ #


class TestFindAgentBinary:
    def test_explicit_binary_file(self, tmp_path: Path) -> None:
        binary = _make_executable(tmp_path / "agent")
        settings = AgentCLIConfig(binary=str(binary), search_paths=[])
        assert find_agent_binary(settings) == str(binary)

    def test_explicit_command_name_looked_up_on_path(self) -> None:
        settings = AgentCLIConfig(binary="my-agent", search_paths=[])
        with patch("devstudio.agent.status.shutil.which", return_value="/usr/bin/my-agent") as which:
            assert find_agent_binary(settings) == "/usr/bin/my-agent"
        which.assert_called_once_with("my-agent")

    def test_search_paths_in_order(self, tmp_path: Path) -> None:
        first = tmp_path / "missing" / "claude"
        second = _make_executable(tmp_path / "claude")
        settings = AgentCLIConfig(search_paths=[str(first), str(second)])
        assert find_agent_binary(settings) == str(second)

    def test_non_executable_search_path_skipped(self, tmp_path: Path) -> None:
        plain = tmp_path / "claude"
        plain.write_text("", encoding="utf-8")
        plain.chmod(0o644)
        settings = AgentCLIConfig(search_paths=[str(plain)])
        with patch("devstudio.agent.status.shutil.which", return_value=None):
            assert find_agent_binary(settings) is None

    def test_falls_back_to_path(self) -> None:
        settings = AgentCLIConfig(search_paths=[])
        with patch("devstudio.agent.status.shutil.which", return_value="/usr/bin/claude") as which:
            assert find_agent_binary(settings) == "/usr/bin/claude"
        which.assert_called_once_with("claude")


# ------------------------------------------------------------------ #
# Status probe
# ------------------------------------------------------------------ #


class TestStatusProbe:
    async def test_installed(self) -> None:
        proc = _make_version_process(b"1.0.42 (Claude Code)\n")
        with (
            patch("devstudio.agent.status.find_agent_binary", return_value="/bin/agent"),
            patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)) as spawn,
        ):
            record = await StatusProbe().check()

        assert record == StatusRecord(
            installed=True, authenticated=True, version="1.0.42 (Claude Code)"
        )
        assert spawn.call_args.args == ("/bin/agent", "--version")

    async def test_not_found(self) -> None:
        with (
            patch("devstudio.agent.status.find_agent_binary", return_value=None),
            patch("asyncio.create_subprocess_exec", new=AsyncMock()) as spawn,
        ):
            record = await StatusProbe().check()

        assert record == StatusRecord()
        spawn.assert_not_called()

    async def test_lookup_timeout(self) -> None:
        def slow_lookup(_settings: AgentCLIConfig) -> str:
            time.sleep(0.5)
            return "/bin/agent"

        settings = AgentCLIConfig(probe_timeout=0.05)
        with patch("devstudio.agent.status.find_agent_binary", side_effect=slow_lookup):
            record = await StatusProbe(settings).check()

        assert record.installed is False

    async def test_version_timeout_kills_process(self) -> None:
        proc = _make_version_process()

        async def hang() -> tuple[bytes, bytes]:
            await asyncio.sleep(10)
            return b"", b""

        proc.communicate = AsyncMock(side_effect=hang)
        settings = AgentCLIConfig(version_timeout=0.05)
        with (
            patch("devstudio.agent.status.find_agent_binary", return_value="/bin/agent"),
            patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)),
        ):
            record = await StatusProbe(settings).check()

        assert record == StatusRecord()
        proc.kill.assert_called_once()
        proc.wait.assert_awaited()

    async def test_nonzero_exit(self) -> None:
        proc = _make_version_process(b"", returncode=1)
        with (
            patch("devstudio.agent.status.find_agent_binary", return_value="/bin/agent"),
            patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)),
        ):
            record = await StatusProbe().check()

        assert record.installed is False
        assert record.authenticated is False
        assert record.version is None

    async def test_spawn_failure(self) -> None:
        with (
            patch("devstudio.agent.status.find_agent_binary", return_value="/bin/agent"),
            patch(
                "asyncio.create_subprocess_exec",
                new=AsyncMock(side_effect=PermissionError("denied")),
            ),
        ):
            record = await StatusProbe().check()

        assert record == StatusRecord()

    async def test_unexpected_error_never_raises(self) -> None:
        with patch(
            "devstudio.agent.status.find_agent_binary",
            side_effect=RuntimeError("boom"),
        ):
            record = await check_status()

        assert record == StatusRecord()

    async def test_not_cached(self) -> None:
        probe = StatusProbe()
        with patch("devstudio.agent.status.find_agent_binary", return_value=None) as find:
            await probe.check()
            await probe.check()
        assert find.call_count == 2
