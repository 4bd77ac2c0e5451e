"""Fire-and-forget user notifications published on the event bus."""

from __future__ import annotations

import logging
from typing import Optional

from copilot.core import events
from copilot.core.event_bus import EventBus

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notifier:
    """Publishes transient status messages (info/success/warning/error).

    Pipeline code never awaits a notification; without a bus the message is
    only logged.
    """

    def __init__(self, event_bus: Optional[EventBus] = None):
        self.event_bus = event_bus

    def notify(
        self,
        level: events.NotificationLevel,
        message: str,
        description: str | None = None,
    ) -> None:
        text = f"{message}: {description}" if description else message
        logger.log(_LOG_LEVELS.get(level, logging.INFO), text)
        if self.event_bus is None:
            return
        self.event_bus.publish_nowait(
            events.TOPIC_NOTIFICATION,
            events.create_notification_event(message, level=level, description=description),
        )

    def info(self, message: str, description: str | None = None) -> None:
        self.notify("info", message, description)

    def success(self, message: str, description: str | None = None) -> None:
        self.notify("success", message, description)

    def warning(self, message: str, description: str | None = None) -> None:
        self.notify("warning", message, description)

    def error(self, message: str, description: str | None = None) -> None:
        self.notify("error", message, description)
