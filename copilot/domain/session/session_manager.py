"""
Copilot session: one conversation with one generation tool.

Wires the stream consumer, extractor, resolver, validator, staging buffer and
persistence orchestrator together. Every piece of per-conversation state
(active stream, dedup sets, Tag Index, history) lives on this object.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from copilot.app.config import CopilotConfig, get_config
from copilot.core import events
from copilot.core.event_bus import EventBus
from copilot.core.models.extraction import ExtractedObject, ObjectKind
from copilot.core.models.generation import GenerationSession, SessionStatus
from copilot.core.models.staging import (
    DatasetLink,
    PersistFn,
    SaveBatchResult,
    SaveOptions,
    StagingItem,
)
from copilot.core.notifications import Notifier
from copilot.domain.extraction.extractor import IncrementalExtractor
from copilot.domain.generation.stream_consumer import StreamConsumer
from copilot.domain.generation.tools import GenerationTool
from copilot.domain.persistence.linking import DatasetLinker
from copilot.domain.persistence.orchestrator import BatchPersistenceOrchestrator
from copilot.domain.resolution.conflict_resolver import IdentityConflictResolver
from copilot.domain.resolution.tag_index import TagIndex
from copilot.domain.staging.buffer import StagingBuffer
from copilot.domain.validation.intent_fixer import find_dangling_option_tags, fix_intent
from copilot.infrastructure.llm.base import LLMProvider
from copilot.infrastructure.llm.transport import ProviderTransport, TextStreamTransport
from copilot.utils.logging import log_operation

logger = logging.getLogger(__name__)

ExtractedCallback = Callable[[StagingItem], Union[None, Awaitable[None]]]


class CopilotSession:
    """Session owner for generate -> extract -> stage -> persist.

    Args:
        tool: Generation tool (intents or agents)
        transport: Text stream source
        buffer: Staging buffer (a new one when omitted)
        notifier: User-facing notifications
        tag_index: Namespace cache for identity reservation during streaming
        config: Settings, the global config when omitted
        on_object_extracted: Called with each staged item in generation order
        event_bus: Receives status, extraction and save progress events
        linker: Dataset linker for saves with a dataset link
    """

    def __init__(
        self,
        tool: GenerationTool,
        transport: TextStreamTransport,
        buffer: Optional[StagingBuffer] = None,
        notifier: Optional[Notifier] = None,
        tag_index: Optional[TagIndex] = None,
        config: Optional[CopilotConfig] = None,
        on_object_extracted: Optional[ExtractedCallback] = None,
        event_bus: Optional[EventBus] = None,
        linker: Optional[DatasetLinker] = None,
    ):
        self.config = config or get_config()
        self.tool = tool
        self.event_bus = event_bus
        self.notifier = notifier or Notifier(event_bus)
        self.buffer = buffer if buffer is not None else StagingBuffer()
        self.tag_index = tag_index or TagIndex(seed_limit=self.config.persistence.seed_limit)
        self.on_object_extracted = on_object_extracted

        label = "Tag" if tool.kind == ObjectKind.INTENT else "Name"
        self.resolver = IdentityConflictResolver(self.tag_index, self.notifier, label=label)
        self.extractor = IncrementalExtractor(
            kinds=(tool.kind,),
            fence_language=self.config.extraction.fence_language,
            fingerprint_length=self.config.extraction.fingerprint_length,
        )
        self.consumer = StreamConsumer(
            transport,
            notifier=self.notifier,
            event_bus=event_bus,
            slow_response_warning=self.config.stream.slow_response_warning,
            stop_marker=self.config.stream.stop_marker,
        )
        self.orchestrator = BatchPersistenceOrchestrator(
            self.buffer,
            notifier=self.notifier,
            pacing=self.config.persistence.to_pacing(),
            linker=linker,
            event_bus=event_bus,
        )
        self.last_result: Optional[SaveBatchResult] = None

    @classmethod
    def from_provider(
        cls,
        tool: GenerationTool,
        provider: LLMProvider,
        config: Optional[CopilotConfig] = None,
        **kwargs: Any,
    ) -> "CopilotSession":
        """Build a session streaming from ``provider`` with the tool's system prompt."""
        config = config or get_config()
        transport = ProviderTransport(
            provider,
            system_prompt=tool.system_prompt(),
            temperature=config.llm.temperature,
            max_tokens=config.llm.max_tokens,
        )
        return cls(tool, transport, config=config, **kwargs)

    # ========== Generation ==========

    @property
    def generation(self) -> Optional[GenerationSession]:
        return self.consumer.active

    @property
    def status(self) -> Optional[SessionStatus]:
        active = self.consumer.active
        return active.status if active is not None else None

    @property
    def items(self) -> tuple[StagingItem, ...]:
        return self.buffer.snapshot()

    async def submit(self, prompt: str, model: Optional[str] = None) -> GenerationSession:
        """Send a request; objects are staged as they complete in the stream."""
        log_operation(logger, "Submit", {"tool": self.tool.name, "model": model or self.config.llm.model or "default"})
        message = self.tool.build_message(prompt)
        history = self.tool.filter_history(self.consumer.history.messages)
        return await self.consumer.start(
            message,
            self._on_chunk,
            model=model or self.config.llm.model,
            history=history,
        )

    async def wait(self) -> Optional[GenerationSession]:
        return await self.consumer.wait()

    async def stop(self) -> bool:
        """Stop the running generation; already staged objects are kept."""
        stopped = self.consumer.cancel()
        await self.consumer.wait()
        return stopped

    async def reset(self) -> None:
        """Start over: stop streaming and forget history, dedup state and the Tag Index."""
        await self.stop()
        self.consumer.history.clear()
        self.extractor.reset()
        self.tag_index.clear()
        logger.info("Copilot session reset")

    async def _on_chunk(self, session: GenerationSession, text: str) -> None:
        for obj in self.extractor.extract(text):
            await self._stage(session, obj)

    async def _stage(self, session: GenerationSession, obj: ExtractedObject) -> StagingItem:
        payload = obj.payload
        identity = await self.resolver.reserve(payload.identity)
        if identity != payload.identity:
            payload = payload.with_identity(identity)
        if obj.kind == ObjectKind.INTENT:
            payload = fix_intent(payload)

        item = self.buffer.add(payload)
        logger.info(f"Extracted {obj.kind.value} '{identity}' from session {session.id}")

        if self.on_object_extracted is not None:
            result = self.on_object_extracted(item)
            if inspect.isawaitable(result):
                await result
        if self.event_bus is not None:
            self.event_bus.publish_nowait(
                events.TOPIC_OBJECT_EXTRACTED,
                events.create_object_extracted_event(
                    session.id, item.model_dump(mode="json", by_alias=True)
                ),
            )
        return item

    # ========== Persistence ==========

    async def save(
        self,
        persist_fn: PersistFn,
        link: Optional[DatasetLink] = None,
        items: Optional[Iterable[Union[StagingItem, str]]] = None,
    ) -> SaveBatchResult:
        """Persist staged items (all of them by default).

        After a fully successful save of the whole buffer the buffer is cleared.
        """
        whole_buffer = items is None
        items = list(items) if items is not None else list(self.buffer.snapshot())

        if self.tool.kind == ObjectKind.INTENT:
            staged = [item.payload for item in self.buffer.snapshot() if item.kind == ObjectKind.INTENT]
            find_dangling_option_tags(staged)

        result = await self.orchestrator.save_all(items, persist_fn, SaveOptions(link=link))
        self.last_result = result
        if result.ok and whole_buffer:
            self.buffer.clear()
        return result

    async def resume(self, result: Optional[SaveBatchResult] = None) -> SaveBatchResult:
        """Retry the failed items of ``result`` (the last save by default)."""
        result = result or self.last_result
        if result is None:
            return SaveBatchResult(setup_error="Nothing to resume")
        resumed = await self.orchestrator.resume(result)
        self.last_result = resumed
        return resumed
