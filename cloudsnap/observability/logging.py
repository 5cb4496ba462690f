"""Logging configuration for cloudsnap.

Structured logging via loguru. Library code logs through
``logger.bind(component=...)``; build steps log through the bound logger
carried in the build state, which doubles as the operator-facing output.

Logging is disabled by default (library behavior) and enabled by
``setup_logging``.

Example:
    from cloudsnap.observability.logging import LogConfig, setup_logging, teardown_logging

    ids = setup_logging(LogConfig(level="DEBUG", file="cloudsnap.log"))
    try:
        ...
    finally:
        teardown_logging(ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from loguru import logger

logger.disable("cloudsnap")

type LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]

REDACTED = "<redacted>"

_CONTEXT_KEYS = ("component", "build", "step", "datacenter_id", "request")

_secrets: set[str] = set()


def redact(*secrets: str | None) -> None:
    """Register values that must never reach a log sink."""
    _secrets.update(s for s in secrets if s)


def _scrub(text: str) -> str:
    for secret in _secrets:
        text = text.replace(secret, REDACTED)
    return text


def _format_context(record: Any) -> str:
    extra = record.get("extra", {})
    parts = [f"{k}={extra[k]}" for k in _CONTEXT_KEYS if k in extra]
    return f" [{' '.join(parts)}]" if parts else ""


def _patch(record: Any) -> None:
    build = record["extra"].get("build")
    record["extra"]["_prefix"] = f"{build}: " if build else ""
    record["extra"]["_ctx"] = _format_context(record)
    if _secrets:
        record["message"] = _scrub(record["message"])


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>==></level> "
    "<bold>{extra[_prefix]}</bold><level>{message}</level>"
    "<dim>{extra[_ctx]}</dim>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DDTHH:mm:ss.SSSZZ} {level} "
    "{name}:{line} {message}{extra[_ctx]}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Logging configuration for a build.

    Attributes:
        level: Minimum console log level.
        file: Optional path to a log file (always written at DEBUG).
        console: Whether to log to stderr.
        rotation: File rotation policy (e.g., "50 MB").
        retention: Number of old log files to keep.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True
    rotation: str = "50 MB"
    retention: int = 10


def setup_logging(config: LogConfig) -> list[int]:
    """Configure logging and return handler IDs for cleanup."""
    logger.remove()
    logger.enable("cloudsnap")
    logger.configure(patcher=_patch)

    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(logger.add(
            sys.stderr,
            level=config.level,
            format=CONSOLE_FORMAT,
            colorize=True,
            filter="cloudsnap",
        ))

    if config.file:
        Path(config.file).parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(logger.add(
            config.file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation=config.rotation,
            retention=config.retention,
            diagnose=False,
            enqueue=False,
        ))

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove handlers and disable logging."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("cloudsnap")
