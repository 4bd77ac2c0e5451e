"""
Data models for LLM interactions.

Defines chat messages, the conversation history sent as generation context,
and model information returned by providers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class MessageRole(str, Enum):
    """Message role in conversation."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class LLMMessage:
    """A single chat message."""

    role: MessageRole = MessageRole.USER
    content: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    model: str | None = None

    def to_api_format(self) -> dict[str, str]:
        """Convert to OpenAI-compatible API format."""
        return {
            "role": self.role.value,
            "content": self.content,
        }


@dataclass
class Conversation:
    """Prior exchanges of one copilot session, oldest first."""

    messages: list[LLMMessage] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def add_message(self, message: LLMMessage) -> None:
        self.messages.append(message)
        self.updated_at = datetime.now(UTC)

    def add_exchange(self, prompt: str, answer: str, model: str | None = None) -> None:
        """Record one user prompt and the assistant's final answer."""
        self.add_message(LLMMessage(role=MessageRole.USER, content=prompt))
        self.add_message(LLMMessage(role=MessageRole.ASSISTANT, content=answer, model=model))

    def get_messages_for_api(self) -> list[dict[str, str]]:
        return [m.to_api_format() for m in self.messages]

    def clear(self) -> None:
        self.messages.clear()
        self.updated_at = datetime.now(UTC)

    def __len__(self) -> int:
        return len(self.messages)


@dataclass
class ModelInfo:
    """LLM model information."""

    id: str = ""
    name: str = ""
    description: str = ""
    context_length: int = 0

    @property
    def provider(self) -> str:
        """Extract provider from model ID."""
        if "/" in self.id:
            return self.id.split("/")[0]
        return ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "ModelInfo":
        """Create from an OpenAI-compatible ``/models`` entry."""
        return cls(
            id=data.get("id", ""),
            name=data.get("name", data.get("id", "")),
            description=data.get("description", "") or "",
            context_length=data.get("context_length", 0) or 0,
        )
