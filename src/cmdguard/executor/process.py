"""
Subprocess-based command executor.

Spawns the platform shell with asyncio.subprocess, reads both output pipes
incrementally, and enforces a wall-clock budget per call. Each call owns its
process, buffers and timer, so concurrent calls never share mutable state.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import sys
from typing import TextIO

from cmdguard._types import ExecutionResult
from cmdguard.config import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT
from cmdguard.errors import CommandCancelled, CommandTimeout, ExecutionError, SpawnError
from cmdguard.executor._base import Executor
from cmdguard.platform import PlatformShell, current_shell

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 4096


class _Capture:
    """Accumulates one output stream, keeping at most ``limit`` bytes."""

    def __init__(self, limit: int, echo: TextIO | None = None) -> None:
        self._limit = limit
        self._echo = echo
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._chunks: list[bytes] = []
        self._size = 0
        self._dropped = 0

    def feed(self, chunk: bytes) -> None:
        if self._echo is not None:
            self._echo.write(self._decoder.decode(chunk))
            self._echo.flush()

        room = max(self._limit - self._size, 0)
        kept = chunk[:room]
        if kept:
            self._chunks.append(kept)
            self._size += len(kept)
        self._dropped += len(chunk) - len(kept)

    @property
    def truncated(self) -> bool:
        return self._dropped > 0

    def text(self) -> str:
        text = b"".join(self._chunks).decode("utf-8", errors="replace").strip()
        if self._dropped:
            text += f"\n\n[Truncated: {self._dropped} bytes removed]"
        return text


class ProcessExecutor(Executor):
    """
    Runs commands through the platform shell with a bounded lifetime.

    Security features:
    - Standard input is closed, so commands cannot block waiting for input
    - Timeout enforcement, terminating the whole process group
    - Output truncation to prevent memory exhaustion

    Example:
        >>> executor = ProcessExecutor()
        >>> result = await executor.execute("echo hello")
        >>> print(result.stdout)
    """

    def __init__(
        self,
        shell: PlatformShell | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        kill_grace: float = 2.0,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        echo_stdout: TextIO | None = None,
        echo_stderr: TextIO | None = None,
    ) -> None:
        """
        Initialize a process executor.

        Args:
            shell: Shell to run commands with. Defaults to the detected platform shell.
            timeout: Default seconds before a command is terminated.
            kill_grace: Seconds between SIGTERM and SIGKILL when stopping a command.
            max_output_bytes: Maximum bytes kept per stream before truncation.
            echo_stdout: Where ``debug_echo`` mirrors stdout. Defaults to ``sys.stdout``.
            echo_stderr: Where ``debug_echo`` mirrors stderr. Defaults to ``sys.stderr``.
        """
        self._shell = shell or current_shell()
        self._timeout = timeout
        self._kill_grace = kill_grace
        self._max_output_bytes = max_output_bytes
        self._echo_stdout = echo_stdout
        self._echo_stderr = echo_stderr
        self._closed = False

    @property
    def shell(self) -> PlatformShell:
        return self._shell

    @property
    def timeout(self) -> float:
        return self._timeout

    async def execute(
        self,
        command: str,
        *,
        timeout: float | None = None,
        debug_echo: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> ExecutionResult:
        """
        Execute a shell command.

        Args:
            command: The shell command to execute.
            timeout: Maximum seconds to wait before killing the process.
            debug_echo: Mirror each output chunk to the echo streams as it arrives.
            cancel: Setting this event terminates the command early.

        Returns:
            ExecutionResult with trimmed stdout, stderr and exit_code.

        Raises:
            ExecutionError: If the executor has been closed.
            SpawnError: If the shell cannot be started.
            CommandTimeout: If the command outlives ``timeout``.
            CommandCancelled: If ``cancel`` was set first.
        """
        if self._closed:
            raise ExecutionError("Executor is closed")

        timeout_val = timeout if timeout is not None else self._timeout
        proc = await self._spawn(command)
        logger.debug("Spawned pid %d: %s", proc.pid, command)

        stdout = _Capture(self._max_output_bytes, (self._echo_stdout or sys.stdout) if debug_echo else None)
        stderr = _Capture(self._max_output_bytes, (self._echo_stderr or sys.stderr) if debug_echo else None)

        collector = asyncio.ensure_future(self._collect(proc, stdout, stderr))
        canceller = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        waiters = {collector} if canceller is None else {collector, canceller}

        try:
            done, _ = await asyncio.wait(waiters, timeout=timeout_val, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            logger.warning("Task cancelled, terminating pid %d", proc.pid)
            await self._stop(proc, collector)
            raise
        finally:
            if canceller is not None:
                canceller.cancel()

        if collector in done:
            exit_code = collector.result()
            logger.debug("pid %d exited with code %d", proc.pid, exit_code)
            return ExecutionResult(
                command=command,
                stdout=stdout.text(),
                stderr=stderr.text(),
                exit_code=exit_code,
                truncated=stdout.truncated or stderr.truncated,
            )

        await self._stop(proc, collector)
        if canceller is not None and canceller in done:
            logger.warning("Command cancelled: %s", command)
            raise CommandCancelled()

        logger.warning("Command timed out after %gs: %s", timeout_val, command)
        raise CommandTimeout(timeout_val)

    async def _spawn(self, command: str) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                *self._shell.argv(command),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                **self._shell.spawn_options(),
            )
        except OSError as exc:
            raise SpawnError(f"Failed to execute command: {exc}") from exc

    async def _collect(self, proc: asyncio.subprocess.Process, stdout: _Capture, stderr: _Capture) -> int:
        assert proc.stdout is not None and proc.stderr is not None
        await asyncio.gather(self._pump(proc.stdout, stdout), self._pump(proc.stderr, stderr))
        return await proc.wait()

    @staticmethod
    async def _pump(stream: asyncio.StreamReader, capture: _Capture) -> None:
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            capture.feed(chunk)

    async def _stop(self, proc: asyncio.subprocess.Process, collector: asyncio.Future[int]) -> None:
        """Terminate the process group, escalating to kill, and reap everything."""
        collector.cancel()
        self._shell.terminate(proc)
        try:
            await asyncio.wait_for(proc.wait(), timeout=self._kill_grace)
        except asyncio.TimeoutError:
            logger.warning("pid %d ignored termination, killing", proc.pid)
            self._shell.kill(proc)
            await proc.wait()
        await asyncio.gather(collector, return_exceptions=True)

    async def close(self) -> None:
        """Mark the executor closed. Safe to call multiple times."""
        self._closed = True
