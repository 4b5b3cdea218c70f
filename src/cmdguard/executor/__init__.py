"""
Command executors.
"""

from cmdguard.executor._base import Executor
from cmdguard.executor.process import ProcessExecutor

__all__ = ["Executor", "ProcessExecutor"]
