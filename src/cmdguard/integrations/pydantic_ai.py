"""
PydanticAI integration for cmdguard.

Provides a helper to register the command tool with a PydanticAI agent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

try:
    from pydantic_ai import Tool
except ImportError:
    raise ImportError(
        "PydanticAI integration requires 'pydantic-ai'. "
        "Install with `pip install cmdguard[pydantic-ai]`"
    )

from cmdguard.tool import TOOL_DESCRIPTION, TOOL_NAME, render_result

if TYPE_CHECKING:
    from cmdguard.tool import CommandTool


def create_pydantic_ai_tool(tool: CommandTool) -> Tool:
    """
    Create a PydanticAI tool for guarded shell execution.

    Example:
        >>> from pydantic_ai import Agent
        >>> agent = Agent("openai:gpt-4o", tools=[create_pydantic_ai_tool(create_command_tool())])
    """

    async def run_safe_command(command: str) -> str:
        """
        Execute a shell command safely.
        Only allowlisted commands that match no dangerous pattern will run.

        Args:
            command: The shell command to execute.
        """
        return render_result(await tool.run_safe_command(command))

    return Tool(run_safe_command, takes_ctx=False, name=TOOL_NAME, description=TOOL_DESCRIPTION)
