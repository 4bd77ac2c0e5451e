"""
Base classes for LLM providers.

Defines the abstract LLMProvider class and its error types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator

from copilot.core.errors import CopilotError
from copilot.infrastructure.llm.models import ModelInfo


# ============================================================================
# Exceptions
# ============================================================================


class LLMError(CopilotError):
    """Base exception for LLM provider errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class AuthenticationError(LLMError):
    """Authentication failed."""
    pass


class RateLimitError(LLMError):
    """Rate limit exceeded."""
    pass


class ModelNotFoundError(LLMError):
    """Requested model not found."""
    pass


# ============================================================================
# Abstract Provider
# ============================================================================


class LLMProvider(ABC):
    """Abstract base class for chat-completion providers.

    Providers implement streaming completion plus model listing for their API.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 60.0,
        app_name: str = "Copilot",
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.app_name = app_name
        self.default_model: str | None = None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'openrouter', 'lm_studio')."""
        ...

    # ========== Chat Completion ==========

    @abstractmethod
    async def complete(
        self,
        messages: list[dict],
        model: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> dict:
        """Create a chat completion."""
        ...

    @abstractmethod
    def stream_complete(
        self,
        messages: list[dict],
        model: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> AsyncGenerator[str, None]:
        """Stream a chat completion, yielding content chunks."""
        ...

    def resolve_model(self, model: str | None) -> str:
        """Return ``model`` or the provider default.

        Raises:
            ModelNotFoundError: If neither is set
        """
        model = model or self.default_model
        if not model:
            raise ModelNotFoundError("No model specified and no default model set")
        return model

    # ========== Model Registry ==========

    @abstractmethod
    async def list_models(self, force_refresh: bool = False) -> list[ModelInfo]:
        """List available models."""
        ...

    async def get_model(self, model_id: str) -> ModelInfo | None:
        """Get a specific model by ID."""
        for model in await self.list_models():
            if model.id == model_id:
                return model
        return None

    # ========== Lifecycle ==========

    @abstractmethod
    async def close(self) -> None:
        """Close the provider and release resources."""
        ...

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
