"""
Security policy with pattern-based command blocking and a base-command allowlist.

This is the core decision layer: every command an agent proposes goes through
``PolicyEngine.evaluate`` before anything is spawned.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

from cmdguard._types import PolicyVerdict
from cmdguard.errors import ConfigurationError
from cmdguard.security.segments import split_segments

logger = logging.getLogger(__name__)

PatternSpec = Union[re.Pattern[str], str]

# End of a shell word, including the closing quote of an inner command string.
_END = r"(?=$|[\s;&|)'\"`])"
# "/", "/*", "~", "~/", "~/*", "$HOME", "$HOME/*"
_ROOT_OR_HOME = r"(?:/\*?|~/?\*?|\$HOME/?\*?)"
# Any words up to the next control operator, ending in whitespace.
_ARGS = r"(?:[^;&|\n]*\s)?"

# Dangerous command patterns - compiled regex with human-readable descriptions.
# Checked in order against the whole command string; the first match wins.
DANGEROUS_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    # Filesystem destruction
    (
        re.compile(rf"\brm\s+{_ARGS}-[a-zA-Z]*[rRf][a-zA-Z]*\s+{_ARGS}{_ROOT_OR_HOME}{_END}"),
        "Recursive delete of root or home directory",
    ),
    (
        re.compile(rf"\brm\s+{_ARGS}--(?:recursive|force|no-preserve-root)\s+{_ARGS}{_ROOT_OR_HOME}{_END}"),
        "Recursive delete of root or home directory",
    ),
    # Fork bombs
    (re.compile(r"([\w:.]+)\s*\(\s*\)\s*\{[^}]*\1\s*\|\s*\1\s*&"), "Fork bomb pattern"),
    # Direct disk access
    (re.compile(r">\s*/dev/(?:[shv]d[a-z]|xvd[a-z]|nvme\d|mmcblk\d|disk\d)"), "Direct write to block device"),
    (re.compile(r"\bdd\b[^;&|\n]*\bof=/dev/(?!null\b)"), "Direct disk write via dd"),
    (re.compile(r"\bmkfs(?:\.\w+)?\b"), "Filesystem creation"),
    (re.compile(r"\b(?:fdisk|sfdisk|cfdisk|gdisk|sgdisk|parted|wipefs)\b"), "Disk partitioning"),
    (re.compile(r"(?<![-=.\w])format\b"), "Disk formatting"),
    (re.compile(r"(?<![-\w])del\s+[^;&|\n]*/[sSqQ]\b"), "Forced recursive delete"),
    # System termination
    (re.compile(r"\b(?:shutdown|reboot|halt|poweroff)\b"), "System shutdown or reboot"),
    (re.compile(r"\b(?:tel)?init\s+[06]\b"), "System shutdown via init"),
    (re.compile(rf"\bkill\s+(?:-(?:s\s+)?\w+\s+)*-?1{_END}"), "Killing init or every process"),
    (re.compile(r"\bkillall\s+(?:[^;&|\n]*\s)?-(?:9|KILL|SIGKILL|s\s+(?:9|KILL|SIGKILL))\b"), "Mass process termination"),
    (re.compile(r"\bpkill\s+(?:[^;&|\n]*\s)?-(?:9|KILL|SIGKILL)\b"), "Forceful process termination"),
    # Remote code execution
    (re.compile(r"\b(?:curl|wget)\b.*\|\s*(?:ba|z|da|k)?sh\b"), "Remote code execution via download piped to shell"),
    (re.compile(r"\b(?:curl|wget)\b.*\|\s*python[\d.]*\b"), "Remote code execution via download piped to python"),
    # Permission changes on root
    (re.compile(rf"\bchmod\s+(?:-\w+\s+)*(?:[0-7]*777|a?\+rwx)\s+/{_END}"), "Dangerous permission change on root"),
    (re.compile(rf"\bchown\s+-R\s+\S+\s+/{_END}"), "Recursive ownership change on root"),
)

# Base commands an agent may run.
DEFAULT_ALLOWED_COMMANDS: frozenset[str] = frozenset({
    # Read-only inspection
    "ls", "dir", "pwd", "cd", "cat", "head", "tail", "grep", "find", "which", "whereis",
    "echo", "date", "whoami", "id", "uname", "df", "du", "free", "ps", "top", "htop",
    # Network
    "curl", "wget", "ping", "nslookup", "dig", "ssh", "scp", "rsync",
    # VCS, runtimes and package managers
    "git", "npm", "yarn", "bun", "node", "python", "python3", "pip", "pip3",
    # Containers
    "docker", "docker-compose", "kubectl", "helm",
    # File manipulation
    "mkdir", "touch", "cp", "mv", "ln", "chmod", "chown",
    "tar", "zip", "unzip", "gzip", "gunzip",
    # Editors
    "vim", "nano", "emacs", "code", "subl",
})


class CompoundPolicy(Enum):
    """How commands joined by shell control operators are checked against the allowlist."""

    FIRST_TOKEN = "first_token"  # Only the first token of the whole string
    EACH_SEGMENT = "each_segment"  # Every simple command must be allowlisted
    REJECT = "reject"  # Control operators and substitutions are refused outright


def compile_patterns(
    patterns: Iterable[tuple[PatternSpec, str]],
) -> tuple[tuple[re.Pattern[str], str], ...]:
    """
    Normalise ``(pattern, description)`` pairs, compiling string patterns.

    Raises:
        ConfigurationError: If a pattern is not a valid regular expression.
    """
    compiled: list[tuple[re.Pattern[str], str]] = []
    for pattern, description in patterns:
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern)
            except re.error as exc:
                raise ConfigurationError(f"Invalid blocked pattern {pattern!r}: {exc}") from exc
        compiled.append((pattern, description))
    return tuple(compiled)


@dataclass(frozen=True)
class PolicyConfig:
    """
    Immutable policy configuration.

    Built once and shared by every evaluation; "modifying" methods return a
    new instance. Allowlist membership is a case-sensitive exact match on the
    raw base token, so ``/usr/bin/ls`` and ``FOO=1 ls`` are not members.
    """

    allowed_commands: frozenset[str] = DEFAULT_ALLOWED_COMMANDS
    blocked_patterns: tuple[tuple[re.Pattern[str], str], ...] = DANGEROUS_PATTERNS
    compound: CompoundPolicy = CompoundPolicy.EACH_SEGMENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_commands", frozenset(self.allowed_commands))
        object.__setattr__(self, "blocked_patterns", compile_patterns(self.blocked_patterns))

    @classmethod
    def default(cls) -> PolicyConfig:
        """The standard policy (recommended)."""
        return cls()

    @classmethod
    def allowing(cls, *commands: str, compound: CompoundPolicy = CompoundPolicy.EACH_SEGMENT) -> PolicyConfig:
        """
        Create a policy that only allows the given base commands.

        The default denylist still applies.

        Args:
            commands: Command names that are allowed (e.g. "ls", "cat", "grep").
            compound: How compound commands are checked.
        """
        return cls(allowed_commands=frozenset(commands), compound=compound)

    def extended(
        self,
        *,
        allowed: Iterable[str] = (),
        patterns: Iterable[tuple[PatternSpec, str]] = (),
    ) -> PolicyConfig:
        """
        Return a copy with extra allowed commands and blocked patterns.

        Args:
            allowed: Command names to add to the allowlist.
            patterns: ``(regex, description)`` pairs appended to the denylist.
        """
        return replace(
            self,
            allowed_commands=self.allowed_commands | frozenset(allowed),
            blocked_patterns=self.blocked_patterns + compile_patterns(patterns),
        )


class PolicyEngine:
    """
    Classifies command strings as ALLOWED or BLOCKED.

    Evaluation is a pure function of the command and the immutable
    ``PolicyConfig``, so one engine can serve concurrent tool calls.

    Example:
        >>> engine = PolicyEngine()
        >>> engine.evaluate("git status").allowed
        True
        >>> engine.evaluate("rm -rf /").reason
        'matches dangerous pattern: Recursive delete of root or home directory'
    """

    def __init__(self, config: PolicyConfig | None = None) -> None:
        self._config = config or PolicyConfig.default()

    @property
    def config(self) -> PolicyConfig:
        return self._config

    def evaluate(self, command: str) -> PolicyVerdict:
        """
        Decide whether ``command`` may run.

        The denylist is checked against the whole string first and cannot be
        overridden by an allowlisted base command. Only then is the allowlist
        consulted.

        Args:
            command: The command string proposed by the agent.

        Returns:
            PolicyVerdict, carrying a reason when BLOCKED.
        """
        verdict = self._evaluate(command)
        if verdict.allowed:
            logger.debug("Allowed command: %s", command)
        else:
            logger.warning("Blocked command %r: %s", command, verdict.reason)
        return verdict

    def check(self, command: str) -> str:
        """
        Validate command against the security policy.

        Returns:
            The command, unchanged.

        Raises:
            SecurityViolation: If the command is blocked.
        """
        self.evaluate(command).raise_if_blocked()
        return command

    def is_allowed(self, command: str) -> bool:
        return self.evaluate(command).allowed

    def _evaluate(self, command: str) -> PolicyVerdict:
        stripped = command.strip()
        if not stripped:
            return PolicyVerdict.blocked(command, "empty command")

        for pattern, description in self._config.blocked_patterns:
            if pattern.search(stripped):
                return PolicyVerdict.blocked(command, f"matches dangerous pattern: {description}")

        scan = split_segments(stripped)
        if self._config.compound is CompoundPolicy.FIRST_TOKEN:
            # "ls; sudo x" has base command "ls", not "ls;".
            if not scan.segments:
                return PolicyVerdict.blocked(command, "empty command")
            return self._check_base(command, scan.base_commands[0])

        if not scan.balanced:
            return PolicyVerdict.blocked(command, "unbalanced quotes")
        if self._config.compound is CompoundPolicy.REJECT and (scan.has_operators or scan.has_substitution):
            return PolicyVerdict.blocked(command, "shell control operators are not allowed")
        if scan.has_substitution:
            return PolicyVerdict.blocked(command, "command substitution is not allowed")
        if not scan.segments:
            return PolicyVerdict.blocked(command, "empty command")

        for segment, base in zip(scan.segments, scan.base_commands):
            verdict = self._check_base(command, base, segment=segment if scan.has_operators else None)
            if not verdict.allowed:
                return verdict
        return PolicyVerdict.allow(command)

    def _check_base(self, command: str, base: str, *, segment: str | None = None) -> PolicyVerdict:
        if base not in self._config.allowed_commands:
            return PolicyVerdict.blocked(command, f"command not in allowlist: '{base}'", segment=segment)
        return PolicyVerdict.allow(command)
