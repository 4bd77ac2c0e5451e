"""
Generation session state.

A GenerationSession is one live or completed streaming exchange with the
language model. Sessions are owned by a StreamConsumer; at most one is active
per consumer.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from copilot.utils.ids import generate_session_id


class SessionStatus(str, Enum):
    """Lifecycle status of a generation session."""
    SUBMITTED = "submitted"
    STREAMING = "streaming"
    READY = "ready"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        return self in (SessionStatus.SUBMITTED, SessionStatus.STREAMING)


class CancellationToken:
    """Cooperative cancellation flag shared between consumer and transport."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class GenerationSession:
    """One streaming exchange: prompt in, accumulated text out."""

    prompt: str
    model: Optional[str] = None
    id: str = field(default_factory=generate_session_id)
    status: SessionStatus = SessionStatus.SUBMITTED
    text: str = ""
    cancelled: bool = False
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    token: CancellationToken = field(default_factory=CancellationToken, repr=False)
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def append(self, chunk: str) -> str:
        """Append a chunk and return the full accumulated text."""
        self.text += chunk
        return self.text

    async def wait(self) -> "GenerationSession":
        """Wait for the reader task to finish."""
        if self.task is not None:
            # The reader handles its own errors; shield waiters from its cancellation
            await asyncio.gather(self.task, return_exceptions=True)
        return self
