"""Agent supervisor — owns the single in-flight agent CLI subprocess."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from devstudio.agent.command import build_invocation
from devstudio.agent.helpers import append_stderr_tail, exit_error, looks_like_error
from devstudio.agent.status import find_agent_binary
from devstudio.channels import Channel, EventHub
from devstudio.config.models import DevStudioConfig
from devstudio.stream.accumulator import ResponseAccumulator
from devstudio.stream.classifier import classify_line
from devstudio.stream.decoder import LineBuffer
from devstudio.stream.models import (
    CompletionRecord,
    ErrorEvent,
    InvocationError,
    InvocationRequest,
    SendReceipt,
    StreamEvent,
)

logger = logging.getLogger(__name__)

#: Bytes requested per read from the subprocess pipes.
_READ_CHUNK_BYTES = 65_536

#: Depth of the per-invocation queue between pipe readers and the pump.
_QUEUE_DEPTH = 256

#: Seconds to wait after SIGTERM before SIGKILL during shutdown.
_SIGTERM_WAIT = 3.0


class _ActiveInvocation:
    """Subprocess handle plus the decode/accumulate state of one invocation."""

    def __init__(
        self,
        session_id: str,
        process: asyncio.subprocess.Process,
        max_line_bytes: int,
    ) -> None:
        self.session_id = session_id
        self.process = process
        self.buffer = LineBuffer(max_line_bytes)
        self.accumulator = ResponseAccumulator()
        self.stderr_tail = ""
        self.returncode: int | None = None


class _PendingSpawn:
    """Marks a send request whose subprocess is still being started."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.cancelled = False


class AgentSupervisor:
    """Runs the agent CLI one invocation at a time and broadcasts its output.

    Construct one per application and share it. At most one subprocess
    is ever live: ``send_message`` cancels the current invocation before
    spawning the next one.

    Broadcast channels:

    * ``stream``   — one ``StreamEvent`` per classified stdout line or
      error-looking stderr write, stamped with the session id.
    * ``complete`` — one ``CompletionRecord`` per invocation that exits
      on its own; always the last event of that invocation.
    * ``error``    — ``InvocationError`` for spawn failures, stderr errors
      and non-zero exits.

    Output of an invocation that was cancelled or replaced is drained
    and discarded.
    """

    def __init__(
        self,
        config: DevStudioConfig | None = None,
        *,
        binary: str | None = None,
    ) -> None:
        self._config = config if config is not None else DevStudioConfig()
        self._binary = binary
        self._hub = EventHub()

        # The Active Invocation slot.
        self._active: _ActiveInvocation | None = None
        self._pending: _PendingSpawn | None = None
        self._spawn_lock = asyncio.Lock()

        # Pump tasks still draining a subprocess, including cancelled ones.
        self._pumps: dict[asyncio.Task[None], asyncio.subprocess.Process] = {}

    # ------------------------------------------------------------------ #
    # Channels
    # ------------------------------------------------------------------ #

    @property
    def events(self) -> EventHub:
        return self._hub

    @property
    def stream(self) -> Channel[StreamEvent]:
        return self._hub.stream

    @property
    def complete(self) -> Channel[CompletionRecord]:
        return self._hub.complete

    @property
    def error(self) -> Channel[InvocationError]:
        return self._hub.error

    @property
    def active_session_id(self) -> str | None:
        """Session of the in-flight invocation, or ``None`` when idle."""
        if self._active is not None:
            return self._active.session_id
        if self._pending is not None and not self._pending.cancelled:
            return self._pending.session_id
        return None

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    async def send_message(self, request: InvocationRequest) -> SendReceipt:
        """Start a new invocation for *request*.

        Resolves once the subprocess has been requested, not when the
        agent answers. Never raises: spawn failures are broadcast on the
        ``error`` channel and no ``complete`` follows them.
        """
        async with self._spawn_lock:
            failure = await self._spawn(request)

        # Published outside the lock so a listener may send again.
        if failure is not None:
            await self._hub.error.publish(failure)
        return SendReceipt(session_id=request.session_id)

    async def _spawn(self, request: InvocationRequest) -> InvocationError | None:
        session_id = request.session_id

        # Replace-before-start: the old child is signalled first.
        self.cancel_current()

        pending = _PendingSpawn(session_id)
        self._pending = pending
        try:
            binary = await self._resolve_binary()
            if binary is None:
                logger.error("%s: agent CLI not found", session_id)
                return InvocationError(
                    session_id=session_id,
                    error=(
                        "Agent CLI not found. Make sure it is installed and on "
                        "your PATH, or set agent.binary in devstudio.yaml."
                    ),
                    context="spawn",
                )
            if pending.cancelled:
                logger.info("%s: cancelled before spawning", session_id)
                return None

            invocation = build_invocation(
                request.agent_type,
                request.message,
                request.project_path,
                binary=binary,
                personas=self._config.personas,
            )
            logger.info(
                "%s: spawning %s (agent=%s, cwd=%s)",
                session_id,
                invocation.program,
                request.agent_type,
                invocation.cwd,
            )

            proc = await asyncio.create_subprocess_exec(
                *invocation.argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=invocation.cwd,
                env=invocation.env,
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            # ValueError: a NUL byte in argv, cwd or env.
            logger.error("%s: failed to spawn agent CLI: %s", session_id, exc)
            return InvocationError(session_id=session_id, error=str(exc), context="spawn")
        finally:
            self._pending = None

        # The prompt travels in argv; stdin is never read.
        if proc.stdin is not None:
            proc.stdin.close()

        active = _ActiveInvocation(session_id, proc, self._config.agent.max_line_bytes)
        if pending.cancelled:
            logger.info("%s: cancelled while spawning", session_id)
            self._terminate(proc)
        else:
            self._active = active
        self._start_pump(active)
        return None

    def cancel_current(self) -> bool:
        """Signal the in-flight subprocess and forget it.

        Returns ``True`` if there was something to cancel. Does not wait
        for the process to die; its late output and exit are absorbed.
        """
        pending = self._pending
        if pending is not None and not pending.cancelled:
            pending.cancelled = True
            return True

        active = self._active
        if active is None:
            return False

        self._active = None
        self._terminate(active.process)
        logger.info("%s: invocation cancelled", active.session_id)
        return True

    def cleanup(self) -> None:
        """Cancel any invocation and drop every listener. Idempotent."""
        self.cancel_current()
        self._hub.remove_all()

    async def shutdown(self, timeout: float = _SIGTERM_WAIT) -> None:
        """``cleanup()``, then wait for children to exit, SIGKILL stragglers."""
        self.cleanup()
        if not self._pumps:
            return

        _done, pending = await asyncio.wait(set(self._pumps), timeout=timeout)
        if not pending:
            return

        for task in pending:
            proc = self._pumps.get(task)
            if proc is not None:
                logger.warning("agent process %s ignored SIGTERM, killing", proc.pid)
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()

        _done, pending = await asyncio.wait(pending, timeout=timeout)
        for task in pending:
            task.cancel()

    # ------------------------------------------------------------------ #
    # Subprocess pump
    # ------------------------------------------------------------------ #

    async def _resolve_binary(self) -> str | None:
        if self._binary:
            return self._binary
        # Filesystem probes and the PATH scan stay off the event loop.
        return await asyncio.to_thread(find_agent_binary, self._config.agent)

    def _is_current(self, active: _ActiveInvocation) -> bool:
        return self._active is active

    def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()

    def _start_pump(self, active: _ActiveInvocation) -> None:
        task = asyncio.create_task(self._pump(active))
        self._pumps[task] = active.process
        task.add_done_callback(self._pump_done)

    def _pump_done(self, task: asyncio.Task[None]) -> None:
        self._pumps.pop(task, None)
        if not task.cancelled():
            exc = task.exception()
            if exc is not None:
                logger.error("agent output pump failed: %s", exc)

    async def _pump(self, active: _ActiveInvocation) -> None:
        """Consume one invocation's stdout, stderr and exit, in arrival order."""
        proc = active.process
        queue: asyncio.Queue[tuple[str, bytes]] = asyncio.Queue(
            maxsize=_QUEUE_DEPTH
        )
        readers = [
            asyncio.create_task(self._read_pipe(proc.stdout, "stdout", queue)),
            asyncio.create_task(self._read_pipe(proc.stderr, "stderr", queue)),
        ]
        waiter = asyncio.create_task(self._wait_exit(active, readers, queue))

        try:
            while True:
                kind, payload = await queue.get()
                if kind == "stdout":
                    await self._on_stdout(active, payload)
                elif kind == "stderr":
                    await self._on_stderr(active, payload)
                else:
                    await self._on_exit(active)
                    break
        finally:
            for task in (*readers, waiter):
                if not task.done():
                    task.cancel()

    async def _read_pipe(
        self,
        stream: asyncio.StreamReader | None,
        kind: str,
        queue: asyncio.Queue[tuple[str, bytes]],
    ) -> None:
        if stream is None:
            return
        while True:
            try:
                chunk = await stream.read(_READ_CHUNK_BYTES)
            except (OSError, ValueError) as exc:
                logger.error("error reading agent %s: %s", kind, exc)
                return
            if not chunk:
                # EOF
                return
            await queue.put((kind, chunk))

    async def _wait_exit(
        self,
        active: _ActiveInvocation,
        readers: list[asyncio.Task[None]],
        queue: asyncio.Queue[tuple[str, bytes]],
    ) -> None:
        await asyncio.gather(*readers, return_exceptions=True)
        active.returncode = await active.process.wait()
        await queue.put(("exit", b""))

    async def _on_stdout(self, active: _ActiveInvocation, chunk: bytes) -> None:
        for line in active.buffer.feed(chunk):
            await self._emit_line(active, line)

    async def _emit_line(self, active: _ActiveInvocation, line: str) -> None:
        if not self._is_current(active):
            return
        event = classify_line(line)
        event.session_id = active.session_id
        active.accumulator.apply(event)
        await self._hub.stream.publish(event)

    async def _on_stderr(self, active: _ActiveInvocation, chunk: bytes) -> None:
        text = chunk.decode(errors="replace")
        active.stderr_tail = append_stderr_tail(active.stderr_tail, text)
        logger.debug("%s: stderr: %s", active.session_id, text[:200])

        if not self._is_current(active):
            return
        if not looks_like_error(text, self._config.agent.stderr_error_keywords):
            return

        event = ErrorEvent(session_id=active.session_id, message=text)
        active.accumulator.apply(event)
        await self._hub.stream.publish(event)
        await self._hub.error.publish(
            InvocationError(session_id=active.session_id, error=text, context="stderr")
        )

    async def _on_exit(self, active: _ActiveInvocation) -> None:
        returncode = active.returncode
        for line in active.buffer.flush():
            await self._emit_line(active, line)

        if not self._is_current(active):
            logger.debug(
                "%s: ignoring exit (code %s) of cancelled invocation",
                active.session_id,
                returncode,
            )
            return

        # Clear the slot first so listeners may start the next invocation.
        self._active = None
        logger.info("%s: agent exited with code %s", active.session_id, returncode)

        if returncode != 0:
            await self._hub.error.publish(
                exit_error(active.session_id, returncode, active.stderr_tail)
            )

        record = active.accumulator.finalize(active.session_id)
        await self._hub.complete.publish(record)
