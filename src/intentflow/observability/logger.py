"""
observability/logger.py — IntentFlow Structured Logger

Sets up structlog with:
  - JSON output to a rotating log file
  - Human-readable console output (dev mode) or JSON (prod mode)
  - Consistent fields on every line: timestamp, level, event, identity

Usage:
    from intentflow.observability.logger import get_logger, setup_logging

    setup_logging(level="INFO", log_dir="./data/logs")   # once at startup
    log = get_logger(__name__)
    log.info("coordinator.step_dispatch", action="get_balance", deadline_ms=5000)
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path = "./data/logs",
    json_format: bool = True,
    console_output: bool = True,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure structlog and stdlib logging. Call once at application startup.

    Args:
        level:          DEBUG | INFO | WARNING | ERROR | CRITICAL
        log_dir:        Directory for the rotating log file.
        json_format:    Console emits JSON when True, coloured text otherwise.
        console_output: Whether to log to stderr at all.
        max_bytes:      Max size of each log file before rotation.
        backup_count:   Number of rotated files to keep.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    handlers: list[logging.Handler] = []

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / "intentflow.log",
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(numeric_level)
    handlers.append(file_handler)

    # stderr, so CLI output on stdout stays clean
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        handlers.append(console_handler)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        handlers=handlers,
        force=True,
    )

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    for handler in handlers:
        handler.setFormatter(formatter)


def get_logger(name: str = "intentflow", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a bound logger with optional initial context values.

    Example:
        log = get_logger(__name__, component="tool_registry")
        log.info("tool.registered", tool="get_balance")
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def bind_identity(identity: str, trace_id: str = "") -> None:
    """
    Bind the caller identity to every log line in this async context.

    structlog's contextvars integration attaches the values to every log call
    in the current coroutine and its children.
    """
    if trace_id:
        structlog.contextvars.bind_contextvars(identity=identity, trace_id=trace_id)
    else:
        structlog.contextvars.bind_contextvars(identity=identity)


def clear_identity() -> None:
    """Clear identity context vars at the end of a request."""
    structlog.contextvars.clear_contextvars()
