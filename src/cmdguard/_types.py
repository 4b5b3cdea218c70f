"""
Core type definitions for cmdguard.

Uses frozen dataclasses and enums for lightweight, typed values that are
safe to share between concurrent tool invocations.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from cmdguard.errors import ConfigurationError, SecurityViolation


@dataclass(frozen=True, slots=True)
class CommandRequest:
    """A single shell command proposed by the agent."""

    command: str

    @property
    def base_command(self) -> str:
        """First whitespace-delimited token of the stripped command."""
        parts = self.command.split(maxsplit=1)
        return parts[0] if parts else ""

    @classmethod
    def from_tool_input(cls, payload: Mapping[str, Any]) -> CommandRequest:
        """
        Build a request from a tool-call payload of the form ``{"command": str}``.

        Raises:
            ConfigurationError: If ``command`` is missing or not a string.
        """
        command = payload.get("command") if isinstance(payload, Mapping) else None
        if not isinstance(command, str):
            raise ConfigurationError("Tool input must contain a string 'command' field")
        return cls(command)


class Verdict(Enum):
    """Outcome of policy evaluation."""

    ALLOWED = "allowed"
    BLOCKED = "blocked"


@dataclass(frozen=True, slots=True)
class PolicyVerdict:
    """Immutable result of evaluating a command against the policy."""

    verdict: Verdict
    command: str
    reason: str | None = None
    segment: str | None = None  # offending segment of a compound command

    @classmethod
    def allow(cls, command: str) -> PolicyVerdict:
        return cls(Verdict.ALLOWED, command)

    @classmethod
    def blocked(cls, command: str, reason: str, *, segment: str | None = None) -> PolicyVerdict:
        return cls(Verdict.BLOCKED, command, reason, segment)

    @property
    def allowed(self) -> bool:
        """Return True if the command may run."""
        return self.verdict is Verdict.ALLOWED

    def raise_if_blocked(self) -> None:
        """Raise SecurityViolation if the verdict is BLOCKED."""
        if not self.allowed:
            raise SecurityViolation(self.reason or "blocked", self.command)


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Immutable result from command execution."""

    command: str
    stdout: str
    stderr: str
    exit_code: int | None
    error: str | None = None
    truncated: bool = False

    @classmethod
    def failed(cls, command: str, error: str) -> ExecutionResult:
        """Result for a command that never produced an exit code."""
        return cls(command=command, stdout="", stderr=error, exit_code=None, error=error)

    @property
    def success(self) -> bool:
        """Return True if the command exited with code 0."""
        return self.error is None and self.exit_code == 0

    def to_tool_output(self) -> dict[str, Any]:
        """Map to the ``run_safe_command`` wire shape returned to the agent."""
        if self.error is not None:
            return {
                "success": False,
                "error": self.error,
                "output": "",
                "stderr": self.stderr,
                "command": self.command,
            }
        output: dict[str, Any] = {
            "success": self.success,
            "exitCode": self.exit_code,
            "output": self.stdout,
            "stderr": self.stderr,
            "command": self.command,
        }
        if self.truncated:
            output["truncated"] = True
        return output
