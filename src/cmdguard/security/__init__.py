"""Security module for cmdguard."""

from cmdguard.errors import SecurityViolation
from cmdguard.security.policy import (
    DANGEROUS_PATTERNS,
    DEFAULT_ALLOWED_COMMANDS,
    CompoundPolicy,
    PolicyConfig,
    PolicyEngine,
)
from cmdguard.security.segments import Segments, split_segments

__all__ = [
    "DANGEROUS_PATTERNS",
    "DEFAULT_ALLOWED_COMMANDS",
    "CompoundPolicy",
    "PolicyConfig",
    "PolicyEngine",
    "Segments",
    "SecurityViolation",
    "split_segments",
]
