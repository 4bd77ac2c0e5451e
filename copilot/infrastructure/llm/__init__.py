"""
LLM Interface - Provider abstraction layer.

Supports OpenRouter and local OpenAI-compatible servers (LM Studio, proxies).
"""

from copilot.infrastructure.llm.base import (
    LLMProvider,
    LLMError,
    AuthenticationError,
    RateLimitError,
    ModelNotFoundError,
)
from copilot.infrastructure.llm.models import (
    Conversation,
    LLMMessage,
    MessageRole,
    ModelInfo,
)
from copilot.infrastructure.llm.openrouter_provider import OpenRouterProvider
from copilot.infrastructure.llm.provider_factory import (
    ProviderFactory,
    ProviderType,
    get_provider,
)
from copilot.infrastructure.llm.transport import ProviderTransport, TextStreamTransport

__all__ = [
    # Base
    "LLMProvider",
    "LLMError",
    "AuthenticationError",
    "RateLimitError",
    "ModelNotFoundError",
    # Models
    "Conversation",
    "LLMMessage",
    "MessageRole",
    "ModelInfo",
    # Providers
    "OpenRouterProvider",
    "ProviderFactory",
    "ProviderType",
    "get_provider",
    # Transports
    "ProviderTransport",
    "TextStreamTransport",
]
