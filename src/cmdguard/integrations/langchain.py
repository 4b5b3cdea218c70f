"""LangChain integration for cmdguard."""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import TYPE_CHECKING, Any

from cmdguard.tool import TOOL_DESCRIPTION, TOOL_NAME, render_result

if TYPE_CHECKING:
    from cmdguard.tool import CommandTool

HAS_LANGCHAIN = False
_StructuredTool: Any = None

try:
    import langchain_core.tools

    _StructuredTool = langchain_core.tools.StructuredTool
    HAS_LANGCHAIN = True
except ImportError:
    pass


def create_langchain_tools(tool: CommandTool) -> dict[str, Any]:
    """
    Create LangChain tools from a CommandTool.

    Args:
        tool: The command tool to wrap.

    Returns:
        Dictionary mapping ``run_safe_command`` to a StructuredTool.

    Raises:
        ImportError: If langchain-core is not installed.

    Example:
        >>> tools = create_langchain_tools(create_command_tool())
        >>> agent = create_react_agent(llm, list(tools.values()))
    """
    if not HAS_LANGCHAIN:
        raise ImportError(
            "LangChain integration requires langchain-core. "
            "Install with: pip install cmdguard[langchain]"
        )

    async def arun_safe_command(command: str) -> str:
        """Execute a shell command after safety checks."""
        return render_result(await tool.run_safe_command(command))

    def run_safe_command(command: str) -> str:
        """Execute a shell command after safety checks."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(arun_safe_command(command))
        # asyncio.run cannot nest inside a running loop.
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, arun_safe_command(command)).result()

    structured = _StructuredTool.from_function(
        func=run_safe_command,
        coroutine=arun_safe_command,
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
    )
    return {TOOL_NAME: structured}
