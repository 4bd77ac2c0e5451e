"""Closed-set validation with a deterministic fallback."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Collection, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E", bound=Enum)


def validate(
    value: T,
    allowed: Collection[T],
    fallback: T,
    field: Optional[str] = None,
) -> T:
    """Return ``value`` if it belongs to ``allowed``, otherwise ``fallback``.

    Never raises; a substitution is logged as a warning.
    """
    try:
        if value in allowed:
            return value
    except TypeError:
        # Unhashable values are never members of a set
        pass
    logger.warning(f"Invalid value {value!r}{f' for {field}' if field else ''}, using fallback {fallback!r}")
    return fallback


def validate_enum(enum_cls: type[E], value: object, fallback: E, field: Optional[str] = None) -> E:
    """Validate a raw value against an enum's values and return the member."""
    allowed = {member.value for member in enum_cls}
    return enum_cls(validate(value, allowed, fallback.value, field=field or enum_cls.__name__))
