"""Exception hierarchy shared across the pipeline."""

from __future__ import annotations


class CopilotError(Exception):
    """Base exception for copilot pipeline errors."""


class ConfigurationError(CopilotError, ValueError):
    """Missing or invalid configuration (API keys, backend URL, provider)."""


def describe_error(exc: BaseException) -> str:
    """Return the user-facing message for an exception.

    Prefers the backend-provided message when the error carries one.
    """
    message = getattr(exc, "message", None) or str(exc)
    return message or "Unknown error"
