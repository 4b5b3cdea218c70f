"""Pytest configuration and fixtures for cmdguard tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio

from cmdguard import CommandTool, GuardConfig, PolicyConfig, PolicyEngine, ProcessExecutor


def _process_gone(pid: int) -> bool:
    """True if ``pid`` no longer exists or is a zombie awaiting its reaper."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except (FileNotFoundError, ProcessLookupError):
        return True
    # Field 3, after the parenthesised command name, is the state.
    return stat.rsplit(")", 1)[1].split()[0] == "Z"


@pytest.fixture
def wait_until_gone() -> Callable[[int], Awaitable[bool]]:
    """Poll until a process disappears; returns False if it is still alive after 3s."""
    if not Path("/proc").is_dir():
        pytest.skip("needs /proc to inspect processes")

    async def wait(pid: int) -> bool:
        for _ in range(60):
            if _process_gone(pid):
                return True
            await asyncio.sleep(0.05)
        return False

    return wait


@pytest.fixture
def engine() -> PolicyEngine:
    """Create the standard policy engine."""
    return PolicyEngine()


@pytest_asyncio.fixture
async def executor() -> AsyncGenerator[ProcessExecutor, None]:
    """Create a ProcessExecutor with a short budget."""
    executor = ProcessExecutor(timeout=5.0, kill_grace=1.0)
    try:
        yield executor
    finally:
        await executor.close()


@pytest_asyncio.fixture
async def tool() -> AsyncGenerator[CommandTool, None]:
    """Create a CommandTool that also allows sleep, for timeout tests."""
    policy = PolicyEngine(PolicyConfig.default().extended(allowed={"sleep"}))
    tool = CommandTool(GuardConfig(timeout=5.0), policy=policy)
    try:
        yield tool
    finally:
        await tool.close()
