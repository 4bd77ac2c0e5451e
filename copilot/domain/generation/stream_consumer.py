"""
Stream consumer and cancellation controller.

Owns the network stream of one generation at a time: accumulates chunks into
the session text, hands the full text to a callback after every chunk, tracks
the session status and supports cooperative cancellation that keeps the text
received so far.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

import httpx

from copilot.core import events
from copilot.core.errors import describe_error
from copilot.core.event_bus import EventBus
from copilot.core.models.generation import GenerationSession, SessionStatus
from copilot.core.notifications import Notifier
from copilot.infrastructure.llm.base import LLMError
from copilot.infrastructure.llm.models import Conversation, LLMMessage
from copilot.infrastructure.llm.transport import TextStreamTransport
from copilot.utils.logging import log_error

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[GenerationSession, str], Awaitable[None]]

DEFAULT_STOP_MARKER = "\n\n_Generation stopped by user._"

TRANSPORT_ERRORS = (LLMError, httpx.HTTPError, OSError)


class StreamConsumer:
    """Runs generations against a text stream transport, one at a time.

    Args:
        transport: Source of text chunks
        notifier: Receives user-facing status messages
        event_bus: Receives ``session.status`` events when given
        slow_response_warning: Seconds before a "still processing" advisory (0 disables)
        stop_marker: Appended to the text of a cancelled session
    """

    def __init__(
        self,
        transport: TextStreamTransport,
        notifier: Optional[Notifier] = None,
        event_bus: Optional[EventBus] = None,
        slow_response_warning: float = 15.0,
        stop_marker: str = DEFAULT_STOP_MARKER,
    ):
        self.transport = transport
        self.notifier = notifier or Notifier()
        self.event_bus = event_bus
        self.slow_response_warning = slow_response_warning
        self.stop_marker = stop_marker
        self.history = Conversation()
        self.active: Optional[GenerationSession] = None
        self._in_callback: set[str] = set()

    @property
    def is_busy(self) -> bool:
        return self.active is not None and self.active.is_active

    async def start(
        self,
        prompt: str,
        on_chunk: ChunkCallback,
        *,
        model: str | None = None,
        history: Sequence[LLMMessage] | None = None,
    ) -> GenerationSession:
        """Start a generation and return its handle without waiting for it.

        A generation still running is cancelled (and awaited) first.

        Args:
            prompt: User message sent to the model
            on_chunk: Awaited with (session, full accumulated text) after every chunk
            model: Model id, provider default when omitted
            history: Context messages, the consumer's own history when omitted
        """
        previous = self.active
        if previous is not None and previous.is_active:
            logger.info(f"Cancelling active session {previous.id} before starting a new one")
            self.cancel(previous)
            await previous.wait()

        session = GenerationSession(prompt=prompt, model=model)
        self.active = session
        self._publish_status(session)
        context = list(history) if history is not None else list(self.history.messages)
        session.task = asyncio.create_task(
            self._run(session, on_chunk, context),
            name=f"generation-{session.id}",
        )
        logger.info(f"Session {session.id} submitted (model={model or 'default'})")
        return session

    async def wait(self, session: GenerationSession | None = None) -> GenerationSession | None:
        session = session or self.active
        if session is None:
            return None
        return await session.wait()

    def cancel(self, session: GenerationSession | None = None) -> bool:
        """Stop a running generation, keeping what was received.

        Returns False when there was nothing to cancel.
        """
        session = session or self.active
        if session is None or not session.is_active or session.cancelled:
            return False

        session.cancelled = True
        session.token.cancel()

        if session.status == SessionStatus.SUBMITTED:
            # Reader has not started yet; it exits on the token
            self._finish_cancelled(session)
        elif (
            session.task is not None
            and session.id not in self._in_callback
            and session.task is not asyncio.current_task()
        ):
            session.task.cancel()
        # Inside the callback: it completes, then the reader sees the token

        logger.info(f"Session {session.id} cancelled by user")
        self.notifier.info("Generation stopped")
        return True

    def reset(self) -> None:
        """Cancel any active generation and forget the conversation history."""
        self.cancel()
        self.history.clear()

    async def _run(
        self,
        session: GenerationSession,
        on_chunk: ChunkCallback,
        history: list[LLMMessage],
    ) -> None:
        if session.token.cancelled:
            return

        self._set_status(session, SessionStatus.STREAMING)
        watchdog = None
        if self.slow_response_warning > 0:
            watchdog = asyncio.create_task(self._watch_slow_response(session))

        try:
            stream = self.transport.open(session.prompt, history, session.model, session.token)
            try:
                async for chunk in stream:
                    if session.token.cancelled:
                        break
                    text = session.append(chunk)
                    self._in_callback.add(session.id)
                    try:
                        await on_chunk(session, text)
                    finally:
                        self._in_callback.discard(session.id)
                    if session.token.cancelled:
                        break
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()
        except asyncio.CancelledError:
            if not session.token.cancelled:
                raise
        except TRANSPORT_ERRORS as e:
            log_error(logger, "generation stream", e, self._log_context(session), traceback=False)
            self._fail(session, e)
            return
        except Exception as e:
            log_error(logger, "generation stream", e, self._log_context(session))
            self._fail(session, e)
            return
        finally:
            if watchdog is not None:
                watchdog.cancel()

        if session.token.cancelled:
            self._finish_cancelled(session)
            return

        self._set_status(session, SessionStatus.READY)
        if not session.text.strip():
            self.notifier.warning("Empty response", "The model returned no content")
            return
        self.history.add_exchange(session.prompt, session.text, model=session.model)
        logger.info(f"Session {session.id} completed ({len(session.text)} chars)")

    async def _watch_slow_response(self, session: GenerationSession) -> None:
        await asyncio.sleep(self.slow_response_warning)
        if session.is_active and not session.cancelled:
            self.notifier.warning(
                "Still processing...",
                "The model is taking longer than usual to respond",
            )

    def _finish_cancelled(self, session: GenerationSession) -> None:
        if not session.is_active:
            return
        session.append(self.stop_marker)
        self._set_status(session, SessionStatus.READY)

    @staticmethod
    def _log_context(session: GenerationSession) -> dict:
        return {"session": session.id, "model": session.model, "received": len(session.text)}

    def _fail(self, session: GenerationSession, exc: BaseException) -> None:
        session.error = describe_error(exc)
        self._set_status(session, SessionStatus.ERROR)
        self.notifier.error("Generation failed", session.error)

    def _set_status(self, session: GenerationSession, status: SessionStatus) -> None:
        session.status = status
        logger.debug(f"Session {session.id} -> {status.value}")
        self._publish_status(session)

    def _publish_status(self, session: GenerationSession) -> None:
        if self.event_bus is None:
            return
        self.event_bus.publish_nowait(
            events.TOPIC_SESSION_STATUS,
            events.create_session_status_event(session.id, session.status.value, session.error),
        )
