"""
REST clients for the NLP backend collections (intents, agents, datasets).

All collections share one shape: ``GET /path`` with OData-like query
parameters returning ``{"data": [...], "count": n}``, ``POST /path``,
``GET /path/<id>`` and ``PATCH /path/<id>``.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx
from dotenv import load_dotenv

from copilot.core.errors import ConfigurationError
from copilot.infrastructure.resources.base import ResourceError

load_dotenv()

logger = logging.getLogger(__name__)

INTENTS_PATH = "/ai/nlp/intents"
AGENTS_PATH = "/ai/nlp/agents"
DATASETS_PATH = "/ai/nlp/datasets"


def odata_equals(field_name: str, value: str) -> str:
    """Build a ``$filter`` equality clause, escaping single quotes."""
    escaped = value.replace("'", "''")
    return f"{field_name} eq '{escaped}'"


class BackendSession:
    """Shared HTTP client for one backend (base URL + bearer token).

    Args:
        base_url: Backend root URL (``COPILOT_API_URL`` if omitted)
        bearer_token: Sent as ``Authorization: Bearer`` (``COPILOT_API_TOKEN``)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str | None = None,
        bearer_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        base_url = base_url or os.getenv("COPILOT_API_URL")
        if not base_url:
            raise ConfigurationError("COPILOT_API_URL not provided and not found in environment")
        self.base_url = base_url.rstrip("/")
        self.bearer_token = bearer_token if bearer_token is not None else os.getenv("COPILOT_API_TOKEN")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    @staticmethod
    def _extract_error_message(response: httpx.Response) -> str:
        """Prefer the backend's ``message``, then ``error``, then ``details``."""
        fallback = f"HTTP {response.status_code}: {response.reason_phrase}"
        try:
            error_data = response.json()
        except ValueError:
            return fallback
        if not isinstance(error_data, dict):
            return fallback
        if error_data.get("message"):
            return str(error_data["message"])
        error = error_data.get("error")
        if error:
            return error if isinstance(error, str) else str(error)
        if error_data.get("details"):
            return str(error_data["details"])
        return fallback

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ResourceError(
                f"Network error: Unable to connect to {self.base_url}"
            ) from e

        if response.status_code >= 400:
            message = self._extract_error_message(response)
            logger.debug(f"{method} {path} -> {response.status_code}: {message}")
            raise ResourceError(message, status_code=response.status_code, response=response.text)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BackendSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class RestResourceClient:
    """Client for one backend collection.

    Args:
        session: The shared backend session
        path: Collection path, e.g. ``/ai/nlp/intents``
        identity_field: Field holding the unique human identifier (``tag`` / ``name``)
    """

    def __init__(self, session: BackendSession, path: str, identity_field: str):
        self.session = session
        self.path = path
        self.identity_field = identity_field

    async def query(
        self,
        filter_expr: str | None = None,
        sort: str | None = None,
        page: int = 1,
        page_size: int = 10,
    ) -> dict[str, Any]:
        params: dict[str, str] = {}
        if filter_expr:
            params["$filter"] = filter_expr
        if sort:
            params["$sort"] = sort
        params["$skip"] = str((page - 1) * page_size)
        params["$limit"] = str(page_size)
        response = await self.session.request("GET", self.path, params=params)
        return response or {"data": [], "count": 0}

    async def exists(self, candidate: str) -> bool:
        """Whether a record with this identifier is already stored."""
        response = await self.query(odata_equals(self.identity_field, candidate), page_size=1)
        return bool(response.get("data")) or response.get("count", 0) > 0

    async def list_identifiers(self, limit: int = 500) -> list[str]:
        response = await self.query(page_size=limit)
        return [
            str(record[self.identity_field])
            for record in response.get("data", [])
            if record.get(self.identity_field)
        ]

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.session.request("POST", self.path, json=payload) or {}

    async def get(self, resource_id: str) -> dict[str, Any]:
        return await self.session.request("GET", f"{self.path}/{resource_id}") or {}

    async def update(self, resource_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        return await self.session.request("PATCH", f"{self.path}/{resource_id}", json=patch) or {}

    def __repr__(self) -> str:
        return f"RestResourceClient({self.path!r})"


def intents_client(session: BackendSession) -> RestResourceClient:
    return RestResourceClient(session, INTENTS_PATH, identity_field="tag")


def agents_client(session: BackendSession) -> RestResourceClient:
    return RestResourceClient(session, AGENTS_PATH, identity_field="name")


def datasets_client(session: BackendSession) -> RestResourceClient:
    return RestResourceClient(session, DATASETS_PATH, identity_field="name")
