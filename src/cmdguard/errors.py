"""
Exception hierarchy for cmdguard.
"""

from __future__ import annotations


class CmdGuardError(Exception):
    """Base class for all cmdguard errors."""


class ConfigurationError(CmdGuardError):
    """Raised for invalid configuration values or malformed tool input."""


class SecurityViolation(CmdGuardError):
    """
    Raised when a command violates the security policy.

    Only the strict ``PolicyEngine.check`` API raises this; ``evaluate``
    reports the same outcome as a BLOCKED verdict.

    Attributes:
        command: The command that was blocked.
        reason: Why the command was blocked.
    """

    def __init__(self, reason: str, command: str = "") -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Security violation: {reason}")


class ExecutionError(CmdGuardError):
    """Raised when a command could not run to an exit code."""


class SpawnError(ExecutionError):
    """The shell could not be started (missing executable, permission denied)."""


class CommandTimeout(ExecutionError):
    """The command exceeded its wall-clock budget and was terminated."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Command timed out after {timeout:g} seconds")


class CommandCancelled(ExecutionError):
    """The caller aborted the command before it exited."""

    def __init__(self) -> None:
        super().__init__("Command cancelled by caller")
