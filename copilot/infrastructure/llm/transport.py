"""
Text stream transports.

A transport turns (prompt, history, model) into an async stream of text
chunks and aborts promptly once the cancellation token is set.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Protocol, Sequence, runtime_checkable

from copilot.core.models.generation import CancellationToken
from copilot.infrastructure.llm.base import LLMProvider
from copilot.infrastructure.llm.models import LLMMessage

logger = logging.getLogger(__name__)


@runtime_checkable
class TextStreamTransport(Protocol):
    """Anything that can stream generated text for a prompt."""

    def open(
        self,
        prompt: str,
        history: Sequence[LLMMessage],
        model_id: str | None,
        token: CancellationToken,
    ) -> AsyncIterator[str]:
        ...


class ProviderTransport:
    """Streams completions from an LLMProvider.

    Args:
        provider: The chat-completion provider
        system_prompt: Prepended as the system message of every request
        temperature: Sampling temperature
    """

    def __init__(
        self,
        provider: LLMProvider,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ):
        self.provider = provider
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.max_tokens = max_tokens

    def build_messages(self, prompt: str, history: Sequence[LLMMessage]) -> list[dict[str, str]]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend(m.to_api_format() for m in history)
        messages.append({"role": "user", "content": prompt})
        return messages

    async def open(
        self,
        prompt: str,
        history: Sequence[LLMMessage],
        model_id: str | None,
        token: CancellationToken,
    ) -> AsyncIterator[str]:
        model = self.provider.resolve_model(model_id)
        stream = self.provider.stream_complete(
            self.build_messages(prompt, history),
            model=model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        try:
            async for chunk in stream:
                if token.cancelled:
                    logger.debug("ProviderTransport: cancellation requested, closing stream")
                    break
                yield chunk
        finally:
            await stream.aclose()
