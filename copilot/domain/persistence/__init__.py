"""Persistence of staged objects to the backend."""

from copilot.domain.persistence.linking import DatasetLinker
from copilot.domain.persistence.orchestrator import BatchPersistenceOrchestrator, PacingConfig
from copilot.domain.persistence.persisters import AgentPersister, IntentPersister, Persister

__all__ = [
    "BatchPersistenceOrchestrator",
    "DatasetLinker",
    "PacingConfig",
    "AgentPersister",
    "IntentPersister",
    "Persister",
]
