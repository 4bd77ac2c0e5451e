"""Backend resource clients."""

from copilot.infrastructure.resources.base import IdentifierBackend, ResourceClient, ResourceError
from copilot.infrastructure.resources.rest_client import (
    AGENTS_PATH,
    DATASETS_PATH,
    INTENTS_PATH,
    BackendSession,
    RestResourceClient,
    agents_client,
    datasets_client,
    intents_client,
    odata_equals,
)

__all__ = [
    "IdentifierBackend",
    "ResourceClient",
    "ResourceError",
    "AGENTS_PATH",
    "DATASETS_PATH",
    "INTENTS_PATH",
    "BackendSession",
    "RestResourceClient",
    "agents_client",
    "datasets_client",
    "intents_client",
    "odata_equals",
]
