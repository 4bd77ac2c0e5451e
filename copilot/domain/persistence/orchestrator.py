"""
Batch persistence orchestrator.

Saves staged items one at a time. Each item gets its own outcome: a failure
marks that item and the loop moves on. Successful items leave the buffer,
failed ones stay for a later ``resume``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Union

from copilot.core import events
from copilot.core.errors import describe_error
from copilot.core.event_bus import EventBus
from copilot.core.models.extraction import ObjectKind
from copilot.core.models.staging import (
    DatasetLink,
    PersistFn,
    SaveBatchResult,
    SaveOptions,
    StagingItem,
    StagingStatus,
)
from copilot.core.notifications import Notifier
from copilot.domain.persistence.linking import DatasetLinker
from copilot.domain.staging.buffer import StagingBuffer
from copilot.infrastructure.resources.base import ResourceError
from copilot.utils.logging import log_error, log_operation

logger = logging.getLogger(__name__)


@dataclass
class PacingConfig:
    """Delays (seconds) between backend calls; all may be zero."""

    before_item: float = 0.8
    after_success: float = 0.6
    after_link: float = 0.4
    between_items: float = 0.5

    @classmethod
    def immediate(cls) -> "PacingConfig":
        return cls(before_item=0, after_success=0, after_link=0, between_items=0)


class BatchPersistenceOrchestrator:
    """Drives persistence of staged items with resumable partial failure.

    Args:
        buffer: The staging buffer items are read from and removed from
        notifier: Receives per-item and summary notifications
        pacing: Delays between calls
        linker: Needed when a pass carries a dataset link
        event_bus: Receives ``staging.*`` progress events when given
    """

    def __init__(
        self,
        buffer: StagingBuffer,
        notifier: Optional[Notifier] = None,
        pacing: Optional[PacingConfig] = None,
        linker: Optional[DatasetLinker] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.buffer = buffer
        self.notifier = notifier or Notifier()
        self.pacing = pacing or PacingConfig()
        self.linker = linker
        self.event_bus = event_bus

    async def save_all(
        self,
        items: Iterable[Union[StagingItem, str]],
        persist_fn: PersistFn,
        options: Optional[SaveOptions] = None,
    ) -> SaveBatchResult:
        """Persist ``items`` (items or local ids) in order."""
        options = replace(options) if options is not None else SaveOptions()
        result = SaveBatchResult(options=options, persist_fn=persist_fn)
        item_ids = [item.id if isinstance(item, StagingItem) else item for item in items]

        if options.link is not None:
            if not await self._prepare_link(result):
                return result

        begin_pass = getattr(persist_fn, "begin_pass", None)
        if begin_pass is not None:
            await begin_pass()

        total = len(item_ids)
        log_operation(logger, "Save pass", {"items": total, "link": options.link.label if options.link else None})
        for index, item_id in enumerate(item_ids):
            item = self.buffer.get(item_id)
            if item is None:
                logger.info(f"Item {item_id} left the buffer before its turn, skipping")
                result.skipped.append(item_id)
                continue

            await self._save_one(item, persist_fn, result, index, total)
            if index < total - 1:
                await self._pause(self.pacing.between_items)

        self._finish(result)
        return result

    async def resume(self, last_result: SaveBatchResult) -> SaveBatchResult:
        """Retry the items that failed in ``last_result`` and are still staged and failed.

        Uses the same persist function and options (including the resolved
        dataset link) as the original pass.
        """
        if last_result.persist_fn is None:
            logger.warning("Resume requested without a previous save pass")
            return SaveBatchResult(setup_error="Nothing to resume")

        retry_ids = []
        for item_id in last_result.failed:
            item = self.buffer.get(item_id)
            if item is not None and item.status == StagingStatus.FAILED:
                retry_ids.append(item_id)

        logger.info(f"Resuming save of {len(retry_ids)} failed item(s)")
        return await self.save_all(retry_ids, last_result.persist_fn, last_result.options)

    async def save_buffer(
        self,
        persisters: Mapping[ObjectKind, PersistFn],
        link: Optional[DatasetLink] = None,
    ) -> list[SaveBatchResult]:
        """Save everything in the buffer, one pass per kind and dataset link.

        Items use the link recorded on them unless ``link`` is given; only
        intents are linked. Failed items remember the resolved link, so a
        dataset created by one pass is not created again by the next.
        """
        groups: dict[tuple[ObjectKind, Optional[str]], tuple[Optional[DatasetLink], list[str]]] = {}
        for item in self.buffer.snapshot():
            item_link = (link or item.link) if item.kind == ObjectKind.INTENT else None
            key = (item.kind, item_link.model_dump_json() if item_link else None)
            groups.setdefault(key, (item_link, []))[1].append(item.id)
        log_operation(
            logger,
            "Save staged buffer",
            {"items": len(self.buffer), "passes": len(groups), "link": link.label if link else None},
        )

        results = []
        for (kind, _), (group_link, item_ids) in groups.items():
            persist_fn = persisters.get(kind)
            if persist_fn is None:
                logger.warning(f"No persister for {kind.value}; {len(item_ids)} item(s) left staged")
                continue
            result = await self.save_all(item_ids, persist_fn, SaveOptions(link=group_link))
            if result.options.link is not None:
                for item_id in result.failed:
                    self.buffer.set_link(item_id, result.options.link)
            results.append(result)
        return results

    async def _prepare_link(self, result: SaveBatchResult) -> bool:
        if self.linker is None:
            result.setup_error = "No dataset client configured"
        else:
            try:
                result.options.link = await self.linker.prepare(result.options.link)
                return True
            except (ResourceError, ValueError) as e:
                result.setup_error = describe_error(e)
        logger.error(f"Dataset preparation failed: {result.setup_error}")
        self.notifier.error("Failed to prepare dataset", result.setup_error)
        return False

    async def _save_one(
        self,
        item: StagingItem,
        persist_fn: PersistFn,
        result: SaveBatchResult,
        index: int,
        total: int,
    ) -> None:
        kind = item.kind.value.capitalize()
        self.buffer.set_status(item.id, StagingStatus.SAVING)
        self._publish(events.TOPIC_ITEM_SAVING, events.create_item_saving_event(item.id, index, total))
        await self._pause(self.pacing.before_item)

        try:
            created = await persist_fn(item) or {}
        except Exception as e:
            message = describe_error(e)
            log_error(
                logger,
                f"save {item.kind.value} {item.label!r}",
                e,
                {"item": item.id, "position": f"{index + 1}/{total}"},
                traceback=not isinstance(e, ResourceError),
            )
            if not self.buffer.set_status(item.id, StagingStatus.FAILED, error=message):
                logger.info(f"Item {item.id} was removed while saving; failure not recorded")
                result.skipped.append(item.id)
                return
            result.failed[item.id] = message
            self.notifier.error(f"Failed to save {kind.lower()}", f"{item.label}: {message}")
            return

        label = self._created_label(created, item)
        if not self.buffer.set_status(item.id, StagingStatus.SAVED):
            logger.info(f"Item {item.id} was removed while saving; outcome not recorded")
        self.notifier.success(f"{kind} saved", label)

        link = result.options.link
        if link is not None and item.kind == ObjectKind.INTENT:
            await self._pause(self.pacing.after_link)
            await self._link(item, created, label, result)
            await self._pause(self.pacing.after_link)
        else:
            await self._pause(self.pacing.after_success)

        self.buffer.remove(item.id)
        result.saved += 1

    async def _link(
        self,
        item: StagingItem,
        created: dict[str, Any],
        label: str,
        result: SaveBatchResult,
    ) -> None:
        link = result.options.link
        resource_id = created.get("id")
        try:
            if not resource_id:
                raise ValueError("backend returned no id")
            await self.linker.attach(link, resource_id)
        except Exception as e:
            message = describe_error(e)
            logger.warning(f"Saved {label} but could not add it to {link.label}: {message}")
            result.link_warnings[item.id] = message
            self.notifier.warning(
                "Saved but dataset update failed",
                f"{label} was saved but couldn't be added to dataset: {message}",
            )
            return
        self.notifier.success("Dataset updated", f"Added '{label}' to {link.label}")

    def _finish(self, result: SaveBatchResult) -> None:
        self._publish(
            events.TOPIC_BATCH_COMPLETED,
            events.create_batch_completed_event(result.saved, result.failed),
        )
        if result.failed:
            logger.warning(f"Save pass finished: {result.saved} saved, {len(result.failed)} failed")
            self.notifier.warning(
                f"{len(result.failed)} item(s) failed to save",
                "Fix them and resume to retry",
            )
            return
        logger.info(f"Save pass finished: {result.saved} saved")
        if result.saved:
            target = f" to {result.options.link.label}" if result.options.link else ""
            self.notifier.success("All items saved!", f"Successfully saved {result.saved} item(s){target}")

    @staticmethod
    def _created_label(created: dict[str, Any], item: StagingItem) -> str:
        field = type(item.payload).IDENTITY_FIELD
        return str(created.get(field) or item.label)

    def _publish(self, topic: str, payload: dict[str, Any]) -> None:
        if self.event_bus is not None:
            self.event_bus.publish_nowait(topic, payload)

    @staticmethod
    async def _pause(seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
