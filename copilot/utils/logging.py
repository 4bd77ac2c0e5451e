"""
Logging configuration for the copilot pipeline.

Colored console output for terminals, plain file output for log files.
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

# Module-level logger cache
_loggers: dict[str, logging.Logger] = {}

ROOT_LOGGER_NAME = "copilot"


# ============================================================================
# Custom Formatter
# ============================================================================


class CopilotFormatter(logging.Formatter):
    """Formatter with optional ANSI colors and a shortened logger name."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(
        self,
        use_colors: bool = True,
        include_timestamp: bool = True,
    ):
        self.use_colors = use_colors
        self.include_timestamp = include_timestamp
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        parts = []

        if self.include_timestamp:
            timestamp = datetime.fromtimestamp(record.created, UTC).strftime(
                "%Y-%m-%d %H:%M:%S"
            )
            parts.append(f"[{timestamp}]")

        level = record.levelname
        if self.use_colors:
            color = self.COLORS.get(level, "")
            reset = self.COLORS["RESET"]
            parts.append(f"{color}{level:8}{reset}")
        else:
            parts.append(f"{level:8}")

        name = record.name
        prefix = f"{ROOT_LOGGER_NAME}."
        if name.startswith(prefix):
            name = name[len(prefix):]
        parts.append(f"[{name:24}]")

        parts.append(record.getMessage())

        if record.exc_info:
            parts.append(self.formatException(record.exc_info))

        return " ".join(parts)


# ============================================================================
# Setup Functions
# ============================================================================


def setup_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    log_dir: str | Path | None = None,
    console_output: bool = True,
    file_output: bool = True,
    log_filename: str = "copilot.log",
) -> None:
    """Configure the ``copilot`` logger hierarchy.

    Args:
        level: Minimum log level to capture
        log_dir: Directory for log files (required if file_output=True)
        console_output: Whether to log to console
        file_output: Whether to log to file
        log_filename: Name of the log file

    Usage:
        setup_logging(level="DEBUG", log_dir="./logs")
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level))

    root_logger.handlers = []

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, level))
        console_handler.setFormatter(CopilotFormatter(use_colors=sys.stderr.isatty()))
        root_logger.addHandler(console_handler)

    if file_output and log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_path / log_filename,
            encoding="utf-8",
        )
        file_handler.setLevel(getattr(logging, level))
        file_handler.setFormatter(CopilotFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    root_logger.propagate = False

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get or create a logger under the ``copilot`` namespace.

    Usage:
        logger = get_logger("extraction")
        logger.info("Starting extraction")
    """
    prefix = f"{ROOT_LOGGER_NAME}."
    full_name = name if name.startswith(prefix) else f"{prefix}{name}"

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)

    return _loggers[full_name]


# ============================================================================
# Convenience Functions
# ============================================================================


def log_operation(
    logger: logging.Logger,
    operation: str,
    details: dict | None = None,
) -> None:
    """Log an operation with key=value details; ``None`` values are left out."""
    details = {k: v for k, v in (details or {}).items() if v is not None}
    if details:
        detail_str = ", ".join(f"{k}={v}" for k, v in details.items())
        logger.info(f"{operation}: {detail_str}")
    else:
        logger.info(operation)


def log_error(
    logger: logging.Logger,
    operation: str,
    error: Exception,
    context: dict | None = None,
    traceback: bool = True,
) -> None:
    """Log a failed operation with its context.

    Provider and backend errors carry an HTTP ``status_code``; it is added to
    the context. Pass ``traceback=False`` for failures the backend reported,
    where the stack adds nothing.
    """
    context = dict(context or {})
    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        context["status"] = status_code
    msg = f"FAILED {operation}: {type(error).__name__}: {error}"
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        msg = f"{msg} | Context: {context_str}"
    logger.error(msg, exc_info=error if traceback else None)
