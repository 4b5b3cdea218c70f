"""
Top-level facade for cmdguard.
"""

from cmdguard._types import CommandRequest, ExecutionResult, PolicyVerdict, Verdict
from cmdguard.api import create_command_tool
from cmdguard.config import GuardConfig, configure_logging
from cmdguard.errors import (
    CmdGuardError,
    CommandCancelled,
    CommandTimeout,
    ConfigurationError,
    ExecutionError,
    SecurityViolation,
    SpawnError,
)
from cmdguard.executor import Executor, ProcessExecutor
from cmdguard.platform import PlatformShell, ShellFlavor, current_shell
from cmdguard.security.policy import CompoundPolicy, PolicyConfig, PolicyEngine
from cmdguard.tool import TOOL_NAME, CommandTool, run_safe_command, tool_schema

__all__ = [
    "create_command_tool",
    "run_safe_command",
    "tool_schema",
    "TOOL_NAME",
    "CommandTool",
    "CommandRequest",
    "ExecutionResult",
    "PolicyVerdict",
    "Verdict",
    "PolicyConfig",
    "PolicyEngine",
    "CompoundPolicy",
    "Executor",
    "ProcessExecutor",
    "PlatformShell",
    "ShellFlavor",
    "current_shell",
    "GuardConfig",
    "configure_logging",
    "CmdGuardError",
    "ConfigurationError",
    "SecurityViolation",
    "ExecutionError",
    "SpawnError",
    "CommandTimeout",
    "CommandCancelled",
]
