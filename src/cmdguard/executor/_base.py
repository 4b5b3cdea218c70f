"""
Abstract base class for command executors.

The façade depends only on this interface, so tests and hosts can swap in
their own executor.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cmdguard._types import ExecutionResult


class Executor(ABC):
    """Runs an already-approved command and reports its outcome."""

    @abstractmethod
    async def execute(
        self,
        command: str,
        *,
        timeout: float | None = None,
        debug_echo: bool = False,
        cancel: asyncio.Event | None = None,
    ) -> ExecutionResult:
        """
        Execute a shell command and return the result.

        Args:
            command: The shell command to execute.
            timeout: Maximum seconds before the process is terminated.
                Defaults to the executor's own budget.
            debug_echo: Mirror output to the caller's stdout/stderr as it arrives.
            cancel: Setting this event aborts the command.

        Returns:
            ExecutionResult with stdout, stderr and exit_code.

        Raises:
            SpawnError: If the shell cannot be started.
            CommandTimeout: If the command exceeds its budget.
            CommandCancelled: If ``cancel`` is set before the command exits.
        """
        ...

    async def close(self) -> None:
        """
        Release executor resources.

        Idempotent - safe to call multiple times.
        """

    async def __aenter__(self) -> Executor:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
