"""Status probe — is the agent CLI installed, and which version is it?"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
from pathlib import Path

from devstudio.config.models import AgentCLIConfig
from devstudio.constants import DEFAULT_BINARY_NAME
from devstudio.stream.models import StatusRecord

logger = logging.getLogger(__name__)


def find_agent_binary(settings: AgentCLIConfig) -> str | None:
    """Locate the agent binary: explicit path, known locations, then ``PATH``."""
    if settings.binary:
        candidate = Path(settings.binary).expanduser()
        if candidate.is_file():
            return str(candidate)
        # A bare command name configured as the binary is looked up on PATH.
        return shutil.which(settings.binary)

    for raw in settings.search_paths:
        candidate = Path(raw).expanduser()
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)

    return shutil.which(DEFAULT_BINARY_NAME)


class StatusProbe:
    """Short-lived, time-bounded check of the agent CLI.

    ``check()`` never raises: every failure (missing binary, timeout,
    non-zero exit, unexpected error) becomes the negative record.
    """

    def __init__(self, settings: AgentCLIConfig | None = None) -> None:
        self._settings = settings if settings is not None else AgentCLIConfig()

    async def check(self) -> StatusRecord:
        try:
            return await self._check()
        except Exception as exc:
            logger.warning("status probe failed: %s", exc)
            return StatusRecord()

    async def _check(self) -> StatusRecord:
        try:
            binary = await asyncio.wait_for(
                asyncio.to_thread(find_agent_binary, self._settings),
                timeout=self._settings.probe_timeout,
            )
        except TimeoutError:
            logger.warning(
                "agent binary lookup timed out after %.1fs",
                self._settings.probe_timeout,
            )
            return StatusRecord()

        if binary is None:
            logger.info("agent CLI not found")
            return StatusRecord()

        version = await self._query_version(binary)
        if version is None:
            return StatusRecord()

        # A working version query is taken as proof of authentication;
        # a real auth round-trip through the agent is far too slow.
        return StatusRecord(installed=True, authenticated=True, version=version)

    async def _query_version(self, binary: str) -> str | None:
        try:
            proc = await asyncio.create_subprocess_exec(
                binary,
                "--version",
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.warning("cannot run %s --version: %s", binary, exc)
            return None

        try:
            stdout_bytes, _ = await asyncio.wait_for(
                proc.communicate(),
                timeout=self._settings.version_timeout,
            )
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            logger.warning(
                "%s --version timed out after %.1fs",
                binary,
                self._settings.version_timeout,
            )
            return None

        if proc.returncode != 0:
            logger.warning("%s --version exited with code %s", binary, proc.returncode)
            return None

        return stdout_bytes.decode(errors="replace").strip()


async def check_status(settings: AgentCLIConfig | None = None) -> StatusRecord:
    """Probe the agent CLI once with a fresh ``StatusProbe``."""
    return await StatusProbe(settings).check()
