"""
ID generation utilities.

Local identifiers for generation sessions and staged items. They are
independent of backend ids and only need to be unique within the process.
"""

from __future__ import annotations

import re
import threading
import time


# ============================================================================
# Thread-Safe Counter
# ============================================================================


class _ThreadSafeCounter:
    """Thread-safe incrementing counter."""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


_counter = _ThreadSafeCounter()

_suffix_pattern = re.compile(r"^(?P<base>.+?)_(?P<num>\d+)$")


# ============================================================================
# ID Generation Functions
# ============================================================================


def generate_id(prefix: str = "") -> str:
    """Generate a unique identifier.

    Format: {prefix}_{timestamp}_{counter}

    Example:
        >>> generate_id("STG")
        "STG_1704067200_001"
    """
    timestamp = int(time.time())
    count = _counter.next()

    if prefix:
        return f"{prefix}_{timestamp}_{count:03d}"
    return f"{timestamp}_{count:03d}"


def generate_session_id() -> str:
    """Generate an ID for a generation session."""
    return generate_id("GEN")


def generate_staging_id() -> str:
    """Generate a local ID for a staged item."""
    return generate_id("STG")


def split_numeric_suffix(identifier: str) -> tuple[str, int]:
    """Split ``name_<n>`` into ``("name", n)``.

    Identifiers without a trailing integer suffix return ``(identifier, 0)``.

    Example:
        >>> split_numeric_suffix("greeting_3")
        ("greeting", 3)
    """
    match = _suffix_pattern.match(identifier)
    if not match:
        return identifier, 0
    return match.group("base"), int(match.group("num"))
