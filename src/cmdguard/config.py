"""
Runtime configuration.

Values come from, in increasing priority: a ``.env`` file in the working
directory, an explicitly named env file, then the process environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

from cmdguard.errors import ConfigurationError

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_OUTPUT_BYTES = 30_000

ENV_DEBUG = "CMDGUARD_DEBUG"
ENV_TIMEOUT = "CMDGUARD_TIMEOUT"
ENV_MAX_OUTPUT_BYTES = "CMDGUARD_MAX_OUTPUT_BYTES"

_TRUE_VALUES = {"1", "true", "yes"}


@dataclass(frozen=True)
class GuardConfig:
    """
    Settings for the command tool.

    Attributes:
        debug: Mirror command output to the host's stdout/stderr while it runs.
        timeout: Seconds before a running command is terminated.
        max_output_bytes: Bytes kept per output stream before truncation.
    """

    debug: bool = False
    timeout: float = DEFAULT_TIMEOUT
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout}")
        if self.max_output_bytes <= 0:
            raise ConfigurationError(f"max_output_bytes must be positive, got {self.max_output_bytes}")

    @classmethod
    def from_env(
        cls,
        env_file: str | os.PathLike[str] | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
    ) -> GuardConfig:
        """
        Load configuration from env files and the environment.

        Args:
            env_file: Optional env file overriding ``.env``. Ignored if missing.
            environ: Environment to read instead of ``os.environ``.
            cwd: Directory searched for ``.env``. Defaults to the working directory.

        Raises:
            ConfigurationError: If a numeric setting cannot be parsed.
        """
        values = load_environment(env_file, environ=environ, cwd=cwd)

        timeout = _parse_number(values, ENV_TIMEOUT, float, DEFAULT_TIMEOUT)
        max_output_bytes = _parse_number(values, ENV_MAX_OUTPUT_BYTES, int, DEFAULT_MAX_OUTPUT_BYTES)
        return cls(debug=_debug_enabled(values), timeout=timeout, max_output_bytes=max_output_bytes)


def load_environment(
    env_file: str | os.PathLike[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    cwd: str | os.PathLike[str] | None = None,
) -> dict[str, str]:
    """Merge ``.env``, ``env_file`` and the environment without touching ``os.environ``."""
    merged: dict[str, str] = {}

    local = Path(cwd) if cwd is not None else Path.cwd()
    for path in (local / ".env", Path(env_file) if env_file is not None else None):
        if path is not None and path.is_file():
            merged.update({k: v for k, v in dotenv_values(path).items() if v is not None})

    merged.update(os.environ if environ is None else environ)
    return merged


def _debug_enabled(values: Mapping[str, str]) -> bool:
    if values.get(ENV_DEBUG, "").strip().lower() in _TRUE_VALUES:
        return True
    try:
        return int(values.get("DEBUG", "0")) != 0
    except ValueError:
        return False


def _parse_number(values, name, kind, default):
    raw = values.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def configure_logging(debug: bool = False) -> logging.Logger:
    """
    Attach a console handler to the ``cmdguard`` logger.

    The library never configures logging on import; hosts call this once.
    Calling it again only updates the level.
    """
    logger = logging.getLogger("cmdguard")
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)

    if getattr(logger, "_cmdguard_configured", False):
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    )
    logger.addHandler(handler)
    logger._cmdguard_configured = True  # type: ignore[attr-defined]
    return logger
