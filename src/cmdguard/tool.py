"""
The ``run_safe_command`` tool exposed to agents.

Composes the policy engine and the executor, and normalises every outcome
(blocked, non-zero exit, spawn failure, timeout) into one result shape so
nothing but task cancellation escapes to the agent loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from cmdguard._types import CommandRequest, ExecutionResult
from cmdguard.config import GuardConfig
from cmdguard.errors import ConfigurationError, ExecutionError
from cmdguard.executor import Executor, ProcessExecutor
from cmdguard.security.policy import PolicyEngine

logger = logging.getLogger(__name__)

TOOL_NAME = "run_safe_command"
TOOL_DESCRIPTION = (
    "Execute a shell command safely with built-in safety checks and allowlist validation"
)
BLOCKED_MESSAGE = "Command blocked by safety filters"


def tool_schema() -> dict[str, Any]:
    """JSON-schema tool definition for function-calling LLM APIs."""
    return {
        "name": TOOL_NAME,
        "description": TOOL_DESCRIPTION,
        "parameters": {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "The shell command to execute",
                },
            },
            "required": ["command"],
        },
    }


def render_result(result: Mapping[str, Any]) -> str:
    """Render a tool result as text for frameworks whose tools return strings."""
    if result.get("success"):
        return result.get("output") or "(no output)"
    if result.get("exitCode") is not None:
        return f"Error (exit {result['exitCode']}): {result.get('stderr') or result.get('output')}"
    reason = result.get("reason")
    return f"Error: {result.get('error')}" + (f" ({reason})" if reason else "")


class CommandTool:
    """
    Policy-checked shell command tool for AI agents.

    Example:
        >>> tool = CommandTool()
        >>> await tool.run_safe_command("echo hello")
        {'success': True, 'exitCode': 0, 'output': 'hello', 'stderr': '', 'command': 'echo hello'}
        >>> (await tool.run_safe_command("rm -rf /"))["error"]
        'Command blocked by safety filters'
    """

    name = TOOL_NAME
    description = TOOL_DESCRIPTION

    def __init__(
        self,
        config: GuardConfig | None = None,
        *,
        policy: PolicyEngine | None = None,
        executor: Executor | None = None,
    ) -> None:
        """
        Args:
            config: Tool settings. Defaults to ``GuardConfig()``.
            policy: Policy engine. Defaults to the standard policy.
            executor: Executor for allowed commands. Defaults to a
                ``ProcessExecutor`` honouring ``config``.
        """
        self.config = config or GuardConfig()
        self.policy = policy or PolicyEngine()
        self.executor = executor or ProcessExecutor(
            timeout=self.config.timeout,
            max_output_bytes=self.config.max_output_bytes,
        )

    async def run_safe_command(self, command: str, *, cancel: asyncio.Event | None = None) -> dict[str, Any]:
        """
        Check ``command`` against the policy and run it if allowed.

        Args:
            command: The shell command proposed by the agent.
            cancel: Setting this event aborts a running command.

        Returns:
            ``{success, exitCode, output, stderr, command}`` for commands that
            ran, or ``{success: False, error, output, stderr, command}`` when
            the command was blocked or could not produce an exit code.
        """
        try:
            request = CommandRequest.from_tool_input({"command": command})
        except ConfigurationError as exc:
            return ExecutionResult.failed("", str(exc)).to_tool_output()

        verdict = self.policy.evaluate(request.command)
        if not verdict.allowed:
            return {
                "success": False,
                "error": BLOCKED_MESSAGE,
                "reason": verdict.reason,
                "output": "",
                "stderr": "",
                "command": command,
            }

        result = await self._execute(request, cancel)
        return result.to_tool_output()

    async def invoke(self, tool_input: Mapping[str, Any]) -> dict[str, Any]:
        """Run a raw tool-call payload. Malformed payloads become a failure result."""
        try:
            request = CommandRequest.from_tool_input(tool_input)
        except ConfigurationError as exc:
            return ExecutionResult.failed("", str(exc)).to_tool_output()
        return await self.run_safe_command(request.command)

    async def _execute(self, request: CommandRequest, cancel: asyncio.Event | None) -> ExecutionResult:
        logger.debug("Executing: %s", request.command)
        try:
            result = await self.executor.execute(
                request.command,
                debug_echo=self.config.debug,
                cancel=cancel,
            )
        except ExecutionError as exc:
            return ExecutionResult.failed(request.command, str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure running %r", request.command)
            return ExecutionResult.failed(request.command, f"Failed to execute command: {exc}")

        logger.debug("Command completed with exit code: %s", result.exit_code)
        return result

    async def __call__(self, command: str) -> dict[str, Any]:
        return await self.run_safe_command(command)

    async def close(self) -> None:
        await self.executor.close()

    async def __aenter__(self) -> CommandTool:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


async def run_safe_command(command: str, config: GuardConfig | None = None) -> dict[str, Any]:
    """One-shot helper: run ``command`` through a fresh ``CommandTool``."""
    async with CommandTool(config) as tool:
        return await tool.run_safe_command(command)
