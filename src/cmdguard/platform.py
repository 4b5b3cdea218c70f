"""
Platform shell detection.

The shell and its "run this string" flag are resolved once per process and
injected into the executor, so nothing else branches on the operating system.
"""

from __future__ import annotations

import asyncio
import functools
import os
import signal
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class ShellFlavor(Enum):
    """Supported shell families."""

    POSIX = auto()
    WINDOWS = auto()


@dataclass(frozen=True)
class PlatformShell:
    """How to launch and stop a shell on this platform."""

    flavor: ShellFlavor
    executable: str
    flag: str

    def argv(self, command: str) -> list[str]:
        return [self.executable, self.flag, command]

    def spawn_options(self) -> dict[str, Any]:
        """Extra keyword arguments for ``asyncio.create_subprocess_exec``."""
        if self.flavor is ShellFlavor.POSIX:
            # Own session, so the whole process group can be signalled on timeout.
            return {"start_new_session": True}
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}

    def terminate(self, proc: asyncio.subprocess.Process) -> None:
        """Ask the command (and its children on POSIX) to stop."""
        try:
            if self.flavor is ShellFlavor.POSIX:
                # The group outlives the shell if it left background children.
                os.killpg(proc.pid, signal.SIGTERM)
            elif proc.returncode is None:
                proc.terminate()
        except (ProcessLookupError, PermissionError):
            pass  # Already gone (macOS reports EPERM for a group of zombies)

    def kill(self, proc: asyncio.subprocess.Process) -> None:
        """Forcefully stop the command (and its children on POSIX)."""
        try:
            if self.flavor is ShellFlavor.POSIX:
                os.killpg(proc.pid, signal.SIGKILL)
            elif proc.returncode is None:
                proc.kill()
        except (ProcessLookupError, PermissionError):
            pass


def detect_shell() -> PlatformShell:
    """Detect the platform command shell."""
    if sys.platform == "win32":
        return PlatformShell(ShellFlavor.WINDOWS, os.environ.get("COMSPEC", "cmd.exe"), "/c")
    return PlatformShell(ShellFlavor.POSIX, "/bin/sh", "-c")


@functools.lru_cache(maxsize=1)
def current_shell() -> PlatformShell:
    """The shell for this process, detected on first use."""
    return detect_shell()
