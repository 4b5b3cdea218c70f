"""
Main entry point: create_command_tool factory function.

This is the primary API for creating the guarded command tool for AI agents.
"""

from __future__ import annotations

import os
from collections.abc import Iterable

from cmdguard.config import GuardConfig
from cmdguard.executor import Executor, ProcessExecutor
from cmdguard.security.policy import PolicyConfig, PolicyEngine
from cmdguard.tool import CommandTool


def create_command_tool(
    *,
    config: GuardConfig | None = None,
    policy: PolicyEngine | PolicyConfig | None = None,
    allowed: Iterable[str] | None = None,
    executor: Executor | None = None,
    env_file: str | os.PathLike[str] | None = None,
) -> CommandTool:
    """
    Create the ``run_safe_command`` tool for an agent.

    Args:
        config: Tool settings. Loaded from the environment (and ``env_file``)
                when omitted.
        policy: Policy engine or configuration. Defaults to the standard policy.
        allowed: Shortcut for a policy that allows exactly these base commands
                 under the default denylist. Cannot be combined with ``policy``.
        executor: Executor for allowed commands. Defaults to a ProcessExecutor
                  using the config's timeout and output limit.
        env_file: Env file consulted when ``config`` is omitted.

    Returns:
        A CommandTool, usable as an async context manager.

    Example:
        >>> tool = create_command_tool()
        >>> result = await tool.run_safe_command("ls -la")
        >>> print(result["output"])

    Example with a narrow allowlist:
        >>> tool = create_command_tool(allowed={"ls", "cat", "grep"})
    """
    # Resolve configuration
    resolved_config = config if config is not None else GuardConfig.from_env(env_file)

    # Resolve security policy
    engine: PolicyEngine
    if allowed is not None:
        if policy is not None:
            raise ValueError("Pass either 'policy' or 'allowed', not both.")
        engine = PolicyEngine(PolicyConfig.allowing(*allowed))
    elif policy is None:
        engine = PolicyEngine()
    elif isinstance(policy, PolicyConfig):
        engine = PolicyEngine(policy)
    elif isinstance(policy, PolicyEngine):
        engine = policy
    else:
        raise ValueError(
            f"Unknown policy type: {type(policy).__name__}. Use PolicyConfig or PolicyEngine."
        )

    # Create executor
    if executor is None:
        executor = ProcessExecutor(
            timeout=resolved_config.timeout,
            max_output_bytes=resolved_config.max_output_bytes,
        )

    return CommandTool(resolved_config, policy=engine, executor=executor)
