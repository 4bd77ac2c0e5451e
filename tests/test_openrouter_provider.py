import json

import httpx
import pytest

from copilot.core.errors import ConfigurationError
from copilot.core.models import CancellationToken
from copilot.infrastructure.llm import (
    AuthenticationError,
    LLMError,
    LLMMessage,
    MessageRole,
    ModelNotFoundError,
    OpenRouterProvider,
    ProviderTransport,
    RateLimitError,
)


def _sse(*chunks, done=True):
    lines = [f"data: {json.dumps(chunk)}" for chunk in chunks]
    if done:
        lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode()


def _delta(text):
    return {"choices": [{"delta": {"content": text}}]}


def _provider(handler, **kwargs):
    kwargs.setdefault("default_model", "test/model")
    return OpenRouterProvider(api_key="sk-test", transport=httpx.MockTransport(handler), **kwargs)


@pytest.mark.asyncio
async def test_stream_complete_yields_content_deltas():
    requests = []

    def handler(request):
        requests.append(request)
        body = _sse(_delta("Hel"), {"choices": [{"delta": {}}]}, _delta("lo"))
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    provider = _provider(handler)
    chunks = [c async for c in provider.stream_complete([{"role": "user", "content": "hi"}], model="test/model")]
    await provider.close()

    assert chunks == ["Hel", "lo"]
    sent = json.loads(requests[0].content)
    assert sent["stream"] is True
    assert sent["model"] == "test/model"
    assert requests[0].url.path == "/api/v1/chat/completions"
    assert requests[0].headers["Authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_stream_ignores_non_json_and_stops_at_done():
    def handler(request):
        body = b": keep-alive\n\ndata: not json\n\n" + _sse(_delta("a")) + b"data: " + json.dumps(_delta("late")).encode() + b"\n\n"
        return httpx.Response(200, content=body)

    provider = _provider(handler)
    chunks = [c async for c in provider.stream_complete([], model="m")]

    assert chunks == ["a"]


@pytest.mark.asyncio
async def test_in_stream_error_raises():
    def handler(request):
        return httpx.Response(200, content=_sse(_delta("a"), {"error": {"message": "Provider overloaded"}}))

    provider = _provider(handler)
    with pytest.raises(LLMError, match="Provider overloaded"):
        async for _ in provider.stream_complete([], model="m"):
            pass


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error_cls",
    [(401, AuthenticationError), (404, ModelNotFoundError), (429, RateLimitError), (500, LLMError)],
)
async def test_error_status_mapping(status, error_cls):
    def handler(request):
        return httpx.Response(status, json={"error": {"message": "nope"}})

    provider = _provider(handler)
    with pytest.raises(error_cls) as info:
        async for _ in provider.stream_complete([], model="m"):
            pass

    assert info.value.status_code == status
    assert "nope" in info.value.message


@pytest.mark.asyncio
async def test_html_error_page_uses_title():
    def handler(request):
        html = "<!DOCTYPE html><html><head><title>502 Bad Gateway</title></head></html>"
        return httpx.Response(502, text=html, headers={"content-type": "text/html"})

    provider = _provider(handler)
    with pytest.raises(LLMError, match="API error: 502 Bad Gateway"):
        await provider.complete([], model="m")


@pytest.mark.asyncio
async def test_list_models_is_cached():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(
            200,
            json={"data": [{"id": "vendor/model-a", "name": "Model A", "context_length": 8192}]},
        )

    provider = _provider(handler)
    first = await provider.list_models()
    second = await provider.list_models()

    assert len(calls) == 1
    assert first is second
    assert first[0].id == "vendor/model-a"
    assert (await provider.get_model("vendor/model-a")).name == "Model A"
    assert await provider.get_model("missing") is None


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)

    with pytest.raises(ConfigurationError):
        OpenRouterProvider()


def test_resolve_model(monkeypatch):
    monkeypatch.delenv("OPENROUTER_MODEL", raising=False)
    monkeypatch.delenv("OPENROUTER_DEFAULT_MODEL", raising=False)
    provider = OpenRouterProvider(api_key="sk-test")

    assert provider.resolve_model("explicit/model") == "explicit/model"
    with pytest.raises(ModelNotFoundError):
        provider.resolve_model(None)


@pytest.mark.asyncio
async def test_provider_transport_builds_messages_and_honors_token():
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(200, content=_sse(_delta("one"), _delta("two"), _delta("three")))

    transport = ProviderTransport(_provider(handler), system_prompt="SYSTEM", temperature=0.2)
    history = [
        LLMMessage(role=MessageRole.USER, content="earlier"),
        LLMMessage(role=MessageRole.ASSISTANT, content="answer"),
    ]
    token = CancellationToken()

    received = []
    async for chunk in transport.open("now", history, None, token):
        received.append(chunk)
        token.cancel()

    assert received == ["one"]
    messages = requests[0]["messages"]
    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[0]["content"] == "SYSTEM"
    assert messages[-1]["content"] == "now"
    assert requests[0]["model"] == "test/model"
    assert requests[0]["temperature"] == 0.2
