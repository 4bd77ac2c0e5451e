"""
Staging buffer: generated objects awaiting human confirmation.

Items keep insertion order. Callers see copies; only the persistence
orchestrator changes an item's status.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from copilot.core.models.agent import Agent
from copilot.core.models.extraction import ObjectKind, Payload
from copilot.core.models.intent import Intent
from copilot.core.models.staging import DatasetLink, StagingItem, StagingStatus
from copilot.domain.extraction.shapes import get_shape

logger = logging.getLogger(__name__)


def kind_of(payload: Payload) -> ObjectKind:
    if isinstance(payload, Intent):
        return ObjectKind.INTENT
    if isinstance(payload, Agent):
        return ObjectKind.AGENT
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


class StagingBuffer:
    """Ordered, mutable collection of staged items keyed by local id."""

    def __init__(self) -> None:
        self._items: dict[str, StagingItem] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def add(
        self,
        payload_or_item: Union[Payload, StagingItem],
        link: Optional[DatasetLink] = None,
    ) -> StagingItem:
        """Append a payload (or a ready item) and return a copy of the new item."""
        if isinstance(payload_or_item, StagingItem):
            item = payload_or_item.model_copy(deep=True)
            if link is not None:
                item.link = link
        else:
            item = StagingItem(kind=kind_of(payload_or_item), payload=payload_or_item, link=link)
        self._items[item.id] = item
        logger.debug(f"Staged {item}")
        return item.model_copy(deep=True)

    def get(self, item_id: str) -> Optional[StagingItem]:
        item = self._items.get(item_id)
        return item.model_copy(deep=True) if item is not None else None

    def remove(self, item_id: str) -> bool:
        removed = self._items.pop(item_id, None)
        if removed is not None:
            logger.debug(f"Removed {removed}")
        return removed is not None

    def update(self, item_id: str, payload: Payload) -> Optional[StagingItem]:
        """Replace an item's payload.

        Status and error are kept: a failed item stays failed until it is
        saved again.
        """
        item = self._items.get(item_id)
        if item is None:
            return None
        if kind_of(payload) != item.kind:
            raise ValueError(f"Cannot replace a {item.kind.value} with a {kind_of(payload).value}")
        item.payload = payload
        return item.model_copy(deep=True)

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> tuple[StagingItem, ...]:
        """Copies of all items in insertion order."""
        return tuple(item.model_copy(deep=True) for item in self._items.values())

    def failed_ids(self) -> list[str]:
        return [item.id for item in self._items.values() if item.status == StagingStatus.FAILED]

    def set_status(
        self,
        item_id: str,
        status: StagingStatus,
        error: Optional[str] = None,
    ) -> bool:
        """Record a persistence outcome. Missing ids are ignored (returns False)."""
        item = self._items.get(item_id)
        if item is None:
            return False
        item.status = status
        item.error = error if status == StagingStatus.FAILED else None
        return True

    def set_link(self, item_id: str, link: Optional[DatasetLink]) -> bool:
        """Record the dataset an item should be added to when it is saved."""
        item = self._items.get(item_id)
        if item is None:
            return False
        item.link = link.model_copy() if link is not None else None
        return True

    # ========== Export / Import ==========

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.model_dump(mode="json", by_alias=True) for item in self._items.values()],
        }

    def save(self, path: Path) -> None:
        """Write the staged items to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Saved {len(self)} staged item(s) to {path}")

    @classmethod
    def load(cls, path: Path) -> "StagingBuffer":
        """Read a buffer written by ``save``; unreadable entries are skipped."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        buffer = cls()
        for raw in data.get("items", []):
            try:
                kind = ObjectKind(raw["kind"])
                payload = get_shape(kind).model.model_validate(raw["payload"])
                item = StagingItem(
                    id=raw["id"],
                    kind=kind,
                    payload=payload,
                    status=StagingStatus(raw.get("status", StagingStatus.PENDING.value)),
                    error=raw.get("error"),
                    link=DatasetLink.model_validate(raw["link"]) if raw.get("link") else None,
                )
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping unreadable staged item: {e}")
                continue
            buffer._items[item.id] = item
        logger.info(f"Loaded {len(buffer)} staged item(s) from {path}")
        return buffer
