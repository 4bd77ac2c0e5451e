import asyncio
import unittest

from copilot.app.config import CopilotConfig, PersistenceConfig, StreamConfig
from copilot.core.models import Agent, SessionStatus, StagingStatus
from copilot.domain.generation import AgentGenerationTool, IntentGenerationTool
from copilot.domain.generation.tools import OMITTED_PLACEHOLDER
from copilot.domain.persistence import IntentPersister
from copilot.domain.resolution import TagIndex
from copilot.domain.session import CopilotSession

from tests.fakes import FakeResourceClient, FakeTransport, RecordingNotifier, agent_json, fenced, intent_json


def _config(tmp: str = "/tmp/copilot-test") -> CopilotConfig:
    return CopilotConfig(
        data_dir=tmp,
        stream=StreamConfig(slow_response_warning=0),
        persistence=PersistenceConfig(before_item=0, after_success=0, after_link=0, between_items=0),
    )


class CopilotSessionTest(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.notifier = RecordingNotifier()
        self.backend = FakeResourceClient("tag", existing=["greeting"])
        self.staged = []

    def _session(self, transport, tool=None, **kwargs) -> CopilotSession:
        return CopilotSession(
            tool or IntentGenerationTool(),
            transport,
            notifier=self.notifier,
            tag_index=TagIndex(self.backend),
            config=_config(),
            on_object_extracted=self.staged.append,
            **kwargs,
        )

    async def test_objects_staged_as_they_complete(self) -> None:
        text = "Here they are:\n" + fenced(intent_json("greeting")) + fenced(intent_json("hours"))
        chunks = [text[i:i + 25] for i in range(0, len(text), 25)]
        session = self._session(FakeTransport(chunks))

        await session.submit("museum intents")
        generation = await session.wait()

        self.assertEqual(generation.status, SessionStatus.READY)
        self.assertEqual([item.payload.tag for item in session.items], ["greeting_1", "hours"])
        self.assertEqual([item.payload.tag for item in self.staged], ["greeting_1", "hours"])
        self.assertTrue(all(item.status == StagingStatus.PENDING for item in session.items))
        self.assertIn(("info", "Tag adjusted", "'greeting' was renamed to 'greeting_1'"), self.notifier.records)

    async def test_message_carries_generation_parameters(self) -> None:
        transport = FakeTransport(["ok"])
        session = self._session(transport)

        await session.submit("museum intents", model="test/model")
        await session.wait()

        prompt, history, model = transport.calls[0]
        self.assertTrue(prompt.startswith("GENERATION PARAMETERS\n"))
        self.assertTrue(prompt.endswith("USER REQUEST\nmuseum intents"))
        self.assertEqual(history, [])
        self.assertEqual(model, "test/model")

    async def test_fenced_json_stripped_from_history(self) -> None:
        transport = FakeTransport([fenced(intent_json("hours"))])
        session = self._session(transport)

        await session.submit("first")
        await session.wait()
        await session.submit("second")
        await session.wait()

        history = transport.calls[1][1]
        self.assertEqual(history[1].content, OMITTED_PLACEHOLDER)
        # The consumer keeps the full answer
        self.assertIn("```json", session.consumer.history.messages[1].content)

    async def test_invalid_animation_repaired_when_staged(self) -> None:
        session = self._session(FakeTransport([fenced(intent_json("hours", face="GRUMPY"))]))

        await session.submit("go")
        await session.wait()

        self.assertEqual(session.items[0].payload.visual_cue.face.id, "FRIENDLY")

    async def test_async_extraction_callback(self) -> None:
        seen = []

        async def on_extracted(item):
            await asyncio.sleep(0)
            seen.append(item.label)

        session = self._session(FakeTransport([fenced(intent_json("hours"))]))
        session.on_object_extracted = on_extracted

        await session.submit("go")
        await session.wait()

        self.assertEqual(seen, ["hours"])

    async def test_stop_keeps_staged_objects(self) -> None:
        gate = asyncio.Event()
        first_staged = asyncio.Event()
        chunks = [fenced(intent_json("hours")), fenced(intent_json("prices"))]
        session = self._session(FakeTransport(chunks, gate=gate))
        session.on_object_extracted = lambda item: first_staged.set()

        await session.submit("go")
        gate.set()
        await first_staged.wait()

        self.assertTrue(await session.stop())

        self.assertEqual([item.label for item in session.items], ["hours"])
        self.assertEqual(session.status, SessionStatus.READY)
        self.assertTrue(session.generation.text.endswith("_Generation stopped by user._"))

    async def test_same_object_not_staged_twice_across_chunks(self) -> None:
        block = fenced(intent_json("hours"))
        session = self._session(FakeTransport([block, "\nmore prose", "\n"]))

        await session.submit("go")
        await session.wait()

        self.assertEqual(len(session.items), 1)

    async def test_reset_forgets_state(self) -> None:
        session = self._session(FakeTransport([fenced(intent_json("hours"))]))
        await session.submit("go")
        await session.wait()

        await session.reset()

        self.assertEqual(len(session.consumer.history), 0)
        self.assertEqual(session.extractor.seen_count, 0)
        self.assertEqual(len(session.tag_index), 0)
        # Staged items survive a reset
        self.assertEqual(len(session.items), 1)

    async def test_save_clears_buffer_after_full_success(self) -> None:
        session = self._session(FakeTransport([fenced(intent_json("hours")) + fenced(intent_json("prices"))]))
        await session.submit("go")
        await session.wait()

        result = await session.save(IntentPersister(self.backend, self.notifier))

        self.assertTrue(result.ok)
        self.assertEqual(result.saved, 2)
        self.assertEqual(session.items, ())
        self.assertEqual([r["tag"] for r in self.backend.created], ["hours", "prices"])

    async def test_failed_save_then_resume(self) -> None:
        session = self._session(FakeTransport([fenced(intent_json("hours")) + fenced(intent_json("prices"))]))
        await session.submit("go")
        await session.wait()
        self.backend.fail_on = {"prices"}
        persist = IntentPersister(self.backend, self.notifier)

        first = await session.save(persist)

        self.assertEqual(first.saved, 1)
        self.assertEqual([item.label for item in session.items], ["prices"])
        self.assertEqual(session.items[0].status, StagingStatus.FAILED)

        self.backend.fail_on = set()
        second = await session.resume()

        self.assertTrue(second.ok)
        self.assertEqual(session.items, ())
        self.assertIs(session.last_result, second)

    async def test_resume_without_save(self) -> None:
        session = self._session(FakeTransport([]))

        result = await session.resume()

        self.assertEqual(result.setup_error, "Nothing to resume")

    async def test_agents_session(self) -> None:
        backend = FakeResourceClient("name", existing=["Museum Guide"])
        session = CopilotSession(
            AgentGenerationTool(),
            FakeTransport([fenced(agent_json("Museum Guide"))]),
            notifier=self.notifier,
            tag_index=TagIndex(backend),
            config=_config(),
        )

        await session.submit("a guide")
        await session.wait()

        (item,) = session.items
        self.assertIsInstance(item.payload, Agent)
        self.assertEqual(item.label, "Museum Guide_1")
        self.assertIn("Name adjusted", self.notifier.messages("info"))


if __name__ == "__main__":
    unittest.main()
