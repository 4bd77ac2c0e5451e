"""Shared utilities: logging setup and local ID generation."""

from copilot.utils.ids import (
    generate_id,
    generate_session_id,
    generate_staging_id,
    split_numeric_suffix,
)
from copilot.utils.logging import get_logger, setup_logging

__all__ = [
    "generate_id",
    "generate_session_id",
    "generate_staging_id",
    "split_numeric_suffix",
    "get_logger",
    "setup_logging",
]
