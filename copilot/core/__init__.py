"""Core: event bus, events, notifications, errors and domain models."""

from copilot.core.event_bus import EventBus, EventPayload
from copilot.core.notifications import Notifier

__all__ = ["EventBus", "EventPayload", "Notifier"]
