"""
Backend resource client contracts and errors.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from copilot.core.errors import CopilotError


class ResourceError(CopilotError):
    """A backend request failed.

    ``message`` holds the backend-provided message when the response carried
    one, otherwise a generic HTTP/network description.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


@runtime_checkable
class IdentifierBackend(Protocol):
    """The namespace a Tag Index checks candidates against."""

    async def exists(self, candidate: str) -> bool:
        ...

    async def list_identifiers(self, limit: int = 500) -> list[str]:
        ...


@runtime_checkable
class ResourceClient(IdentifierBackend, Protocol):
    """CRUD surface of one backend collection."""

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        ...

    async def get(self, resource_id: str) -> dict[str, Any]:
        ...

    async def update(self, resource_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        ...
