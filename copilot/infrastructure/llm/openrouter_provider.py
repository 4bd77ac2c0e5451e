"""
OpenRouter LLM provider implementation.

Speaks the OpenAI-compatible chat completion API, so the same class also
serves local proxies (LM Studio, LiteLLM-style proxies).
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from collections.abc import AsyncGenerator

import httpx
from dotenv import load_dotenv

from copilot.core.errors import ConfigurationError
from copilot.infrastructure.llm.base import (
    AuthenticationError,
    LLMError,
    LLMProvider,
    ModelNotFoundError,
    RateLimitError,
)
from copilot.infrastructure.llm.models import ModelInfo

load_dotenv()

logger = logging.getLogger(__name__)


class OpenRouterProvider(LLMProvider):
    """OpenRouter API provider implementation.

    Supports both streaming and non-streaming completions.
    """

    DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        app_name: str = "Copilot",
        default_model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if api_key is None:
            api_key = os.getenv("OPENROUTER_API_KEY")
            if not api_key:
                raise ConfigurationError(
                    "OPENROUTER_API_KEY not provided and not found in environment"
                )

        if default_model is None:
            default_model = os.getenv("OPENROUTER_MODEL") or os.getenv("OPENROUTER_DEFAULT_MODEL")

        super().__init__(api_key, base_url, timeout, app_name)
        self.default_model = default_model
        if self.default_model:
            logger.info(f"OpenRouterProvider initialized with default_model: '{self.default_model}'")
        else:
            logger.warning("OpenRouterProvider initialized without default_model")

        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._models_cache: list[ModelInfo] | None = None
        self._models_cache_time: float = 0
        self._cache_ttl: float = 300.0  # 5 minutes

    @property
    def provider_name(self) -> str:
        return "openrouter"

    @property
    def headers(self) -> dict[str, str]:
        """Get default headers for API requests."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": self.app_name,
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=httpx.Timeout(
                    connect=self.timeout,
                    read=self.timeout,
                    write=self.timeout,
                    pool=self.timeout,
                ),
                limits=httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                    keepalive_expiry=120.0,
                ),
                transport=self._transport,
            )
        return self._client

    def _extract_error_message(self, response: httpx.Response) -> str:
        """Extract a meaningful error message from an HTTP response.

        Handles JSON errors, HTML error pages (e.g., Cloudflare), and plain text.
        """
        try:
            error_data = response.json()
        except ValueError:
            error_data = None

        if isinstance(error_data, dict):
            error = error_data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
            if isinstance(error, str):
                return error
            return error_data.get("message") or str(error_data)

        text = response.text or ""
        content_type = response.headers.get("content-type", "").lower()
        if "text/html" in content_type or text.lstrip().startswith(("<!DOCTYPE", "<html")):
            title_match = re.search(r"<title[^>]*>(.*?)</title>", text, re.IGNORECASE | re.DOTALL)
            h1_match = re.search(r"<h1[^>]*>(.*?)</h1>", text, re.IGNORECASE | re.DOTALL)
            if title_match:
                return title_match.group(1).strip()
            if h1_match:
                return h1_match.group(1).strip()
            return f"HTTP {response.status_code}: Server returned HTML error page"

        return text[:500] or f"HTTP {response.status_code}"

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Map an error response onto the LLMError hierarchy."""
        error_message = self._extract_error_message(response)

        if response.status_code == 401:
            raise AuthenticationError(
                f"Authentication failed: {error_message}",
                status_code=response.status_code,
            )
        elif response.status_code == 404:
            raise ModelNotFoundError(
                f"Not found: {error_message}",
                status_code=response.status_code,
            )
        elif response.status_code == 429:
            raise RateLimitError(
                f"Rate limit exceeded: {error_message}",
                status_code=response.status_code,
            )
        raise LLMError(
            f"API error: {error_message}",
            status_code=response.status_code,
        )

    async def _get(self, endpoint: str, params: dict | None = None) -> dict:
        client = await self._get_client()
        response = await client.get(endpoint, params=params)
        if response.status_code >= 400:
            self._raise_for_status(response)
        return response.json()

    async def _post(self, endpoint: str, data: dict) -> dict:
        client = await self._get_client()
        response = await client.post(endpoint, json=data)
        if response.status_code >= 400:
            self._raise_for_status(response)
        return response.json()

    async def _post_stream(
        self, endpoint: str, data: dict
    ) -> AsyncGenerator[str, None]:
        """Make a streaming POST request, yielding raw SSE ``data:`` payloads."""
        client = await self._get_client()

        try:
            async with client.stream("POST", endpoint, json=data) as response:
                if response.status_code >= 400:
                    # Body must be read before it can be inspected
                    await response.aread()
                    self._raise_for_status(response)

                async for line in response.aiter_lines():
                    if line.startswith("data: "):
                        data_str = line[6:]
                        if data_str.strip() == "[DONE]":
                            break
                        yield data_str
        except ConnectionResetError:
            logger.warning("OpenRouterProvider: connection reset while streaming")
            return

    # ========== Chat Completion ==========

    async def complete(
        self,
        messages: list[dict],
        model: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> dict:
        """Create a chat completion."""
        data = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            data["max_tokens"] = max_tokens

        logger.info(f"OpenRouterProvider.complete: Requesting model '{model}'")
        response = await self._post("/chat/completions", data)

        response_model = response.get("model", "N/A")
        if model != response_model:
            logger.warning(
                f"OpenRouterProvider.complete: Requested '{model}' but received '{response_model}'"
            )
        return response

    async def stream_complete(
        self,
        messages: list[dict],
        model: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> AsyncGenerator[str, None]:
        """Stream a chat completion, yielding content chunks."""
        data = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": True,
        }
        if max_tokens:
            data["max_tokens"] = max_tokens

        logger.debug(f"OpenRouterProvider.stream_complete: model '{model}', {len(messages)} message(s)")
        async for chunk_str in self._post_stream("/chat/completions", data):
            try:
                chunk = json.loads(chunk_str)
            except json.JSONDecodeError:
                continue
            if "error" in chunk:
                error = chunk["error"]
                message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                raise LLMError(f"API error: {message}", response=chunk)
            if chunk.get("choices"):
                delta = chunk["choices"][0].get("delta", {})
                content = delta.get("content", "")
                if content:
                    yield content

    # ========== Model Registry ==========

    async def list_models(self, force_refresh: bool = False) -> list[ModelInfo]:
        """List available models with caching."""
        current_time = time.time()

        if (
            not force_refresh
            and self._models_cache is not None
            and (current_time - self._models_cache_time) < self._cache_ttl
        ):
            return self._models_cache

        response = await self._get("/models")
        models_data = response.get("data", [])

        self._models_cache = [ModelInfo.from_api_response(m) for m in models_data]
        self._models_cache_time = current_time

        return self._models_cache

    # ========== Lifecycle ==========

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
