"""
Provider factory for LLM providers.

Centralizes provider creation and environment-driven configuration.
"""

from __future__ import annotations

import logging
import os
from enum import Enum

from dotenv import load_dotenv

from copilot.core.errors import ConfigurationError
from copilot.infrastructure.llm.base import LLMProvider
from copilot.infrastructure.llm.openrouter_provider import OpenRouterProvider

load_dotenv()

logger = logging.getLogger(__name__)


class ProviderType(str, Enum):
    """Supported LLM provider types."""
    OPENROUTER = "openrouter"
    LM_PROXY = "lm_proxy"
    LM_STUDIO = "lm_studio"


# Environment variable mapping per provider
PROVIDER_ENV_MAP: dict[str, dict[str, str]] = {
    ProviderType.OPENROUTER.value: {
        "api_key": "OPENROUTER_API_KEY",
        "base_url": "OPENROUTER_BASE_URL",
        "model": "OPENROUTER_MODEL",
    },
    ProviderType.LM_PROXY.value: {
        "api_key": "LM_PROXY_API_KEY",
        "base_url": "LM_PROXY_BASE_URL",
        "model": "LM_PROXY_MODEL",
    },
    ProviderType.LM_STUDIO.value: {
        "api_key": "LM_STUDIO_API_KEY",
        "base_url": "LM_STUDIO_BASE_URL",
        "model": "LM_STUDIO_MODEL",
    },
}

LOCAL_BASE_URLS: dict[ProviderType, str] = {
    ProviderType.LM_PROXY: "http://localhost:4000/openai/v1",
    ProviderType.LM_STUDIO: "http://localhost:1234/v1",
}


def normalize_provider_name(name: str) -> str:
    return name.strip().lower().replace("-", "_")


class ProviderFactory:
    """Factory for creating LLM provider instances."""

    @staticmethod
    def get_default_provider_name() -> str:
        """Get the default provider name from environment."""
        env_name = os.getenv("DEFAULT_PROVIDER")
        if not env_name:
            return ProviderType.OPENROUTER.value
        return normalize_provider_name(env_name)

    @staticmethod
    def get_default_model(provider_name: str | None = None) -> str | None:
        """Get the default model for a provider (the configured one if omitted)."""
        provider_name = provider_name or ProviderFactory.get_default_provider_name()
        if provider_name == ProviderType.OPENROUTER.value:
            # OPENROUTER_DEFAULT_MODEL kept for older .env files
            return os.getenv("OPENROUTER_MODEL") or os.getenv("OPENROUTER_DEFAULT_MODEL")
        env_map = PROVIDER_ENV_MAP.get(provider_name, {})
        model_var = env_map.get("model")
        return os.getenv(model_var) if model_var else None

    @staticmethod
    def create(
        provider_type: ProviderType | str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        app_name: str = "Copilot",
        default_model: str | None = None,
    ) -> LLMProvider:
        """Create an LLM provider instance.

        Args:
            provider_type: Type of provider to create
            api_key: API key (loaded from env if not provided)
            base_url: Base URL (uses provider default if not provided)
            timeout: Request timeout in seconds
            app_name: Application name for API headers
            default_model: Model used when a request names none

        Returns:
            LLMProvider instance

        Raises:
            ConfigurationError: If provider_type is not supported
        """
        if isinstance(provider_type, str):
            try:
                provider_type = ProviderType(normalize_provider_name(provider_type))
            except ValueError:
                raise ConfigurationError(
                    f"Unsupported provider type: {provider_type}. "
                    f"Supported: {[p.value for p in ProviderType]}"
                ) from None

        if provider_type == ProviderType.OPENROUTER:
            return OpenRouterProvider(
                api_key=api_key,
                base_url=base_url or OpenRouterProvider.DEFAULT_BASE_URL,
                timeout=timeout,
                app_name=app_name,
                default_model=default_model,
            )

        # Local OpenAI-compatible servers
        return OpenRouterProvider(
            api_key=api_key or "not-needed",
            base_url=base_url or LOCAL_BASE_URLS[provider_type],
            timeout=timeout,
            app_name=app_name,
            default_model=default_model or ProviderFactory.get_default_model(provider_type.value),
        )

    @staticmethod
    def create_from_env(
        timeout: float = 60.0,
        app_name: str = "Copilot",
    ) -> tuple[LLMProvider, str | None]:
        """Create provider from environment, falling back to SECONDARY_PROVIDER."""
        provider_name = ProviderFactory.get_default_provider_name()
        candidates = [provider_name]
        secondary = os.getenv("SECONDARY_PROVIDER")
        if secondary and normalize_provider_name(secondary) != provider_name:
            candidates.append(normalize_provider_name(secondary))

        for prov in candidates:
            env_map = PROVIDER_ENV_MAP.get(prov)
            if env_map is None:
                logger.warning(f"ProviderFactory: Unknown provider '{prov}' in environment")
                continue
            model = ProviderFactory.get_default_model(prov)
            try:
                provider = ProviderFactory.create(
                    prov,
                    api_key=os.getenv(env_map["api_key"]),
                    base_url=os.getenv(env_map["base_url"]),
                    timeout=timeout,
                    app_name=app_name,
                    default_model=model,
                )
            except ConfigurationError as e:
                logger.warning(f"ProviderFactory: Failed to initialize provider '{prov}': {e}")
                continue
            logger.info(f"ProviderFactory: Using provider '{prov}' with default_model '{provider.default_model}'")
            return provider, model

        raise ConfigurationError(
            f"No valid LLM provider could be initialized. Tried: {candidates}"
        )


def get_provider(
    provider_type: ProviderType | str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
    timeout: float = 60.0,
) -> LLMProvider:
    """Get an LLM provider instance.

    If provider_type is None, uses the default from environment.
    """
    if provider_type is None:
        provider, _ = ProviderFactory.create_from_env(timeout=timeout)
        return provider

    return ProviderFactory.create(
        provider_type,
        api_key=api_key,
        base_url=base_url,
        timeout=timeout,
    )
