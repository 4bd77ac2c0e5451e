"""
Persist functions for staged intents and agents.

A persister is called once per item by the orchestrator. At the start of
every pass it rebuilds its Tag Index from the backend, so identifiers taken
since the last pass are respected.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from copilot.core.models.intent import Intent
from copilot.core.models.staging import StagingItem
from copilot.core.notifications import Notifier
from copilot.domain.resolution.conflict_resolver import IdentityConflictResolver
from copilot.domain.resolution.tag_index import TagIndex
from copilot.domain.validation.intent_fixer import fix_intent
from copilot.infrastructure.resources.base import ResourceClient

logger = logging.getLogger(__name__)


class Persister:
    """Creates staged objects through a resource client.

    Args:
        client: Backend collection the objects are created in
        notifier: Receives rename notices
        seed_limit: Identifiers fetched when the pass-scoped Tag Index seeds
    """

    label = "Identifier"

    def __init__(
        self,
        client: ResourceClient,
        notifier: Optional[Notifier] = None,
        seed_limit: int = 1000,
    ):
        self.client = client
        self.notifier = notifier or Notifier()
        self.seed_limit = seed_limit
        self.resolver: Optional[IdentityConflictResolver] = None

    async def begin_pass(self) -> None:
        """Start a new pass with a freshly seeded Tag Index."""
        index = TagIndex(self.client, seed_limit=self.seed_limit)
        await index.ensure_seeded()
        self.resolver = IdentityConflictResolver(index, self.notifier, label=self.label)

    def prepare(self, item: StagingItem):
        """Copy of the payload to send; the staged item is never modified."""
        return item.payload.model_copy(deep=True)

    async def __call__(self, item: StagingItem) -> dict[str, Any]:
        if self.resolver is None:
            await self.begin_pass()
        payload = self.prepare(item)
        identity = await self.resolver.reserve(payload.identity)
        if identity != payload.identity:
            payload = payload.with_identity(identity)
        created = await self.client.create(payload.to_create_payload())
        logger.info(f"Created {item.kind.value} '{identity}' (id={created.get('id')})")
        return created


class IntentPersister(Persister):
    """Saves intents after repairing their visual cues."""

    label = "Tag"

    def prepare(self, item: StagingItem) -> Intent:
        return fix_intent(item.payload)


class AgentPersister(Persister):
    label = "Name"
