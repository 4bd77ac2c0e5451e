"""
Test Suite: Provider Factory

Tests for provider selection from arguments and environment.
"""

import pytest

from copilot.core.errors import ConfigurationError
from copilot.infrastructure.llm import OpenRouterProvider, ProviderFactory, ProviderType, get_provider
from copilot.infrastructure.llm.provider_factory import LOCAL_BASE_URLS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "DEFAULT_PROVIDER",
        "SECONDARY_PROVIDER",
        "OPENROUTER_API_KEY",
        "OPENROUTER_BASE_URL",
        "OPENROUTER_MODEL",
        "OPENROUTER_DEFAULT_MODEL",
        "LM_STUDIO_API_KEY",
        "LM_STUDIO_BASE_URL",
        "LM_STUDIO_MODEL",
        "LM_PROXY_API_KEY",
        "LM_PROXY_BASE_URL",
        "LM_PROXY_MODEL",
    ):
        monkeypatch.delenv(var, raising=False)


def test_create_openrouter():
    provider = ProviderFactory.create("openrouter", api_key="sk-test", default_model="vendor/model")

    assert isinstance(provider, OpenRouterProvider)
    assert provider.base_url == OpenRouterProvider.DEFAULT_BASE_URL
    assert provider.default_model == "vendor/model"


def test_create_local_server_needs_no_key(monkeypatch):
    monkeypatch.setenv("LM_STUDIO_MODEL", "local-model")

    provider = ProviderFactory.create("LM-Studio")

    assert provider.base_url == LOCAL_BASE_URLS[ProviderType.LM_STUDIO]
    assert provider.api_key == "not-needed"
    assert provider.default_model == "local-model"


def test_unsupported_provider():
    with pytest.raises(ConfigurationError, match="Unsupported provider type"):
        ProviderFactory.create("nope")


def test_default_provider_and_model(monkeypatch):
    assert ProviderFactory.get_default_provider_name() == "openrouter"

    monkeypatch.setenv("DEFAULT_PROVIDER", "lm-proxy")
    monkeypatch.setenv("LM_PROXY_MODEL", "proxy-model")
    monkeypatch.setenv("OPENROUTER_DEFAULT_MODEL", "legacy/model")

    assert ProviderFactory.get_default_provider_name() == "lm_proxy"
    assert ProviderFactory.get_default_model() == "proxy-model"
    assert ProviderFactory.get_default_model("openrouter") == "legacy/model"


def test_create_from_env_falls_back_to_secondary(monkeypatch):
    # OpenRouter has no key, so the secondary provider is used
    monkeypatch.setenv("SECONDARY_PROVIDER", "lm_studio")
    monkeypatch.setenv("LM_STUDIO_MODEL", "local-model")

    provider, model = ProviderFactory.create_from_env()

    assert provider.base_url == LOCAL_BASE_URLS[ProviderType.LM_STUDIO]
    assert model == "local-model"


def test_create_from_env_without_any_provider():
    with pytest.raises(ConfigurationError, match="No valid LLM provider"):
        ProviderFactory.create_from_env()


def test_get_provider(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-env")

    assert get_provider().api_key == "sk-env"
    assert get_provider("lm_proxy").base_url == LOCAL_BASE_URLS[ProviderType.LM_PROXY]
