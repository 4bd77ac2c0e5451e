import asyncio
import unittest

from copilot.core import events
from copilot.core.event_bus import EventBus
from copilot.core.models import SessionStatus
from copilot.domain.generation import DEFAULT_STOP_MARKER, StreamConsumer
from copilot.infrastructure.llm.base import RateLimitError

from tests.fakes import FakeTransport, RecordingNotifier


class StreamConsumerTest(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.notifier = RecordingNotifier()
        self.texts = []

    def _consumer(self, transport, **kwargs) -> StreamConsumer:
        kwargs.setdefault("slow_response_warning", 0)
        return StreamConsumer(transport, notifier=self.notifier, **kwargs)

    async def _collect(self, session, text) -> None:
        self.texts.append(text)

    async def test_chunks_accumulate_and_session_completes(self) -> None:
        consumer = self._consumer(FakeTransport(["Hel", "lo"]))

        session = await consumer.start("greet me", self._collect, model="test/model")
        await consumer.wait(session)

        self.assertEqual(self.texts, ["Hel", "Hello"])
        self.assertEqual(session.text, "Hello")
        self.assertEqual(session.status, SessionStatus.READY)
        self.assertFalse(consumer.is_busy)
        self.assertEqual(len(consumer.history), 2)

    async def test_history_sent_with_next_prompt(self) -> None:
        transport = FakeTransport(["answer"])
        consumer = self._consumer(transport)

        await consumer.wait(await consumer.start("first", self._collect))
        await consumer.wait(await consumer.start("second", self._collect, model="m"))

        prompt, history, model = transport.calls[1]
        self.assertEqual(prompt, "second")
        self.assertEqual([m.content for m in history], ["first", "answer"])
        self.assertEqual(model, "m")

    async def test_explicit_history_overrides_own(self) -> None:
        transport = FakeTransport(["answer"])
        consumer = self._consumer(transport)
        await consumer.wait(await consumer.start("first", self._collect))

        await consumer.wait(await consumer.start("second", self._collect, history=[]))

        self.assertEqual(transport.calls[1][1], [])

    async def test_transport_error_sets_error_status(self) -> None:
        transport = FakeTransport(["partial"], error=RateLimitError("Rate limit exceeded", status_code=429))
        consumer = self._consumer(transport)

        session = await consumer.wait(await consumer.start("go", self._collect))

        self.assertEqual(session.status, SessionStatus.ERROR)
        self.assertEqual(session.error, "Rate limit exceeded")
        self.assertEqual(session.text, "partial")
        self.assertEqual(len(consumer.history), 0)
        self.assertIn(("error", "Generation failed", "Rate limit exceeded"), self.notifier.records)

    async def test_empty_response_not_added_to_history(self) -> None:
        consumer = self._consumer(FakeTransport([]))

        session = await consumer.wait(await consumer.start("go", self._collect))

        self.assertEqual(session.status, SessionStatus.READY)
        self.assertEqual(len(consumer.history), 0)
        self.assertIn("Empty response", self.notifier.messages("warning"))

    async def test_cancel_while_waiting_keeps_text(self) -> None:
        gate = asyncio.Event()
        transport = FakeTransport(["Hello ", "world"], gate=gate)
        consumer = self._consumer(transport)
        first_chunk = asyncio.Event()

        async def on_chunk(session, text):
            first_chunk.set()

        session = await consumer.start("go", on_chunk)
        gate.set()
        await first_chunk.wait()

        self.assertTrue(consumer.cancel(session))
        await consumer.wait(session)

        self.assertEqual(session.text, "Hello " + DEFAULT_STOP_MARKER)
        self.assertEqual(session.status, SessionStatus.READY)
        self.assertTrue(session.cancelled)
        self.assertEqual(transport.sent, 1)
        self.assertEqual(len(consumer.history), 0)
        self.assertIn("Generation stopped", self.notifier.messages("info"))

    async def test_cancel_from_inside_callback(self) -> None:
        transport = FakeTransport(["one ", "two ", "three"])
        consumer = self._consumer(transport)

        async def on_chunk(session, text):
            consumer.cancel(session)

        session = await consumer.wait(await consumer.start("go", on_chunk))

        self.assertEqual(session.text, "one " + DEFAULT_STOP_MARKER)
        self.assertEqual(transport.sent, 1)
        self.assertEqual(session.status, SessionStatus.READY)

    async def test_cancel_before_first_chunk(self) -> None:
        consumer = self._consumer(FakeTransport(["never"]))

        session = await consumer.start("go", self._collect)
        consumer.cancel(session)
        await consumer.wait(session)

        self.assertEqual(session.text, DEFAULT_STOP_MARKER)
        self.assertEqual(session.status, SessionStatus.READY)
        self.assertEqual(self.texts, [])

    async def test_cancel_without_active_session(self) -> None:
        consumer = self._consumer(FakeTransport(["a"]))

        self.assertFalse(consumer.cancel())
        session = await consumer.wait(await consumer.start("go", self._collect))
        self.assertFalse(consumer.cancel(session))

    async def test_new_start_cancels_previous(self) -> None:
        gate = asyncio.Event()
        consumer = self._consumer(FakeTransport(["ok"], gate=gate))

        first = await consumer.start("first", self._collect)
        await asyncio.sleep(0)
        self.assertEqual(first.status, SessionStatus.STREAMING)

        second = await consumer.start("second", self._collect)
        self.assertTrue(first.cancelled)
        self.assertEqual(first.status, SessionStatus.READY)
        self.assertEqual(first.text, DEFAULT_STOP_MARKER)

        gate.set()
        await consumer.wait(second)
        self.assertEqual(second.text, "ok")
        self.assertIs(consumer.active, second)

    async def test_custom_stop_marker(self) -> None:
        consumer = self._consumer(FakeTransport(["x"]), stop_marker=" [stopped]")

        session = await consumer.start("go", self._collect)
        consumer.cancel(session)
        await consumer.wait(session)

        self.assertEqual(session.text, " [stopped]")

    async def test_slow_response_warning(self) -> None:
        gate = asyncio.Event()
        consumer = self._consumer(FakeTransport(["late"], gate=gate), slow_response_warning=0.01)

        session = await consumer.start("go", self._collect)
        await asyncio.sleep(0.05)
        gate.set()
        await consumer.wait(session)

        self.assertIn("Still processing...", self.notifier.messages("warning"))
        self.assertEqual(session.text, "late")

    async def test_reset_clears_history(self) -> None:
        consumer = self._consumer(FakeTransport(["a"]))
        await consumer.wait(await consumer.start("go", self._collect))

        consumer.reset()

        self.assertEqual(len(consumer.history), 0)

    async def test_status_events(self) -> None:
        bus = EventBus()
        statuses = []

        async def handler(payload):
            statuses.append(payload["status"])

        await bus.subscribe(events.TOPIC_SESSION_STATUS, handler)
        consumer = self._consumer(FakeTransport(["a"]), event_bus=bus)

        await consumer.wait(await consumer.start("go", self._collect))
        await bus.drain()

        self.assertEqual(statuses, ["submitted", "streaming", "ready"])


if __name__ == "__main__":
    unittest.main()
