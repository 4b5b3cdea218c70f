"""
Quote-aware splitting of compound shell commands.

The scanner only understands enough shell syntax to find the places where a
new command can start: control operators (``;``, ``&``, ``&&``, ``|``,
``||``, ``|&``, newlines) and substitutions (``$(...)``, backticks,
``<(...)``, ``>(...)``). Anything inside single quotes is literal; backslash
escapes are honoured outside single quotes.
"""

from __future__ import annotations

from dataclasses import dataclass

# Longest first so "&&" wins over "&".
CONTROL_OPERATORS: tuple[str, ...] = ("&&", "||", "|&", ";;", ";", "&", "|", "\n")

_SUBSTITUTION_OPENERS: tuple[str, ...] = ("$(", "<(", ">(")


@dataclass(frozen=True, slots=True)
class Segments:
    """Result of scanning a command string."""

    segments: tuple[str, ...]
    has_operators: bool
    has_substitution: bool
    balanced: bool

    @property
    def base_commands(self) -> tuple[str, ...]:
        """First whitespace-delimited token of every segment."""
        return tuple(segment.split(maxsplit=1)[0] for segment in self.segments)


def _is_redirection(command: str, i: int) -> bool:
    """True if the operator character at ``i`` belongs to a redirection (2>&1, &>, >|)."""
    ch = command[i]
    prev = command[i - 1] if i > 0 else ""
    nxt = command[i + 1] if i + 1 < len(command) else ""
    if ch == "&":
        return prev in "<>" or nxt == ">"
    if ch == "|":
        return prev == ">"
    return False


def _match_operator(command: str, i: int) -> str | None:
    if _is_redirection(command, i):
        return None
    for op in CONTROL_OPERATORS:
        if command.startswith(op, i):
            return op
    return None


def split_segments(command: str) -> Segments:
    """
    Split ``command`` into the simple commands a shell would run.

    Args:
        command: Raw command string.

    Returns:
        Segments with empty pieces dropped and each piece stripped.
    """
    pieces: list[str] = []
    current: list[str] = []
    quote: str | None = None
    has_operators = False
    has_substitution = False

    i = 0
    n = len(command)
    while i < n:
        ch = command[i]

        if quote == "'":
            current.append(ch)
            if ch == "'":
                quote = None
            i += 1
            continue

        if ch == "\\" and i + 1 < n:
            current.append(command[i : i + 2])
            i += 2
            continue

        if quote == '"':
            if ch == '"':
                quote = None
            elif ch == "`" or command.startswith("$(", i):
                has_substitution = True
            current.append(ch)
            i += 1
            continue

        if ch in ("'", '"'):
            quote = ch
            current.append(ch)
            i += 1
            continue

        if ch == "`" or command.startswith(_SUBSTITUTION_OPENERS, i):
            has_substitution = True
            current.append(ch)
            i += 1
            continue

        op = _match_operator(command, i)
        if op is not None:
            has_operators = True
            pieces.append("".join(current))
            current = []
            i += len(op)
            continue

        current.append(ch)
        i += 1

    pieces.append("".join(current))
    segments = tuple(p.strip() for p in pieces if p.strip())
    return Segments(
        segments=segments,
        has_operators=has_operators,
        has_substitution=has_substitution,
        balanced=quote is None,
    )
