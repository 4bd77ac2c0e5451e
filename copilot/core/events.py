"""Canonical event definitions for the copilot pipeline."""

from __future__ import annotations

import time
from typing import Any, Dict, Literal

from .event_bus import EventPayload

NotificationLevel = Literal["info", "success", "warning", "error"]

# Event Topics
TOPIC_NOTIFICATION = "notification"
TOPIC_SESSION_STATUS = "session.status"
TOPIC_OBJECT_EXTRACTED = "object.extracted"
TOPIC_ITEM_SAVING = "staging.item_saving"
TOPIC_BATCH_COMPLETED = "staging.batch_completed"


def create_notification_event(
    message: str,
    level: NotificationLevel = "info",
    description: str | None = None,
) -> EventPayload:
    """Create a transient user-facing notification event."""
    return {
        "message": message,
        "level": level,
        "description": description,
        "ts": time.time(),
    }


def create_session_status_event(session_id: str, status: str, error: str | None = None) -> EventPayload:
    """Create a generation session status change event."""
    event: EventPayload = {
        "session_id": session_id,
        "status": status,
    }
    if error:
        event["error"] = error
    return event


def create_object_extracted_event(session_id: str, item: Dict[str, Any]) -> EventPayload:
    """Create an event for a newly staged extracted object."""
    return {
        "session_id": session_id,
        "item": item,
    }


def create_item_saving_event(item_id: str, index: int, total: int) -> EventPayload:
    """Create a progress event for the item currently being persisted."""
    return {
        "item_id": item_id,
        "index": index,
        "total": total,
    }


def create_batch_completed_event(saved: int, failed: Dict[str, str]) -> EventPayload:
    """Create a summary event at the end of a persistence pass."""
    return {
        "saved": saved,
        "failed": dict(failed),
        "ok": not failed,
    }
