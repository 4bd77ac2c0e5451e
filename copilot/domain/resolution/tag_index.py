"""
Tag Index: which identifiers are already taken in a backend namespace.

Seeded lazily from the backend listing on first use, then grows as the
resolver reserves identifiers. Unknown identifiers are checked against the
backend one at a time.
"""

from __future__ import annotations

import logging
from typing import Optional

from copilot.core.errors import describe_error
from copilot.infrastructure.resources.base import IdentifierBackend, ResourceError

logger = logging.getLogger(__name__)


class TagIndex:
    """Cache of taken identifiers for one namespace.

    Args:
        backend: Namespace to check against; without one only local marks count
        seed_limit: Maximum number of identifiers fetched when seeding
    """

    def __init__(self, backend: Optional[IdentifierBackend] = None, seed_limit: int = 500):
        self.backend = backend
        self.seed_limit = seed_limit
        self._taken: set[str] = set()
        self._seeded = False

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._taken

    def __len__(self) -> int:
        return len(self._taken)

    @property
    def seeded(self) -> bool:
        return self._seeded

    def mark(self, identifier: str) -> None:
        self._taken.add(identifier)

    def clear(self) -> None:
        """Forget everything; the next lookup seeds again."""
        self._taken.clear()
        self._seeded = False

    async def ensure_seeded(self) -> None:
        if self._seeded:
            return
        self._seeded = True
        if self.backend is None:
            return
        try:
            identifiers = await self.backend.list_identifiers(self.seed_limit)
        except (ResourceError, OSError) as e:
            logger.warning(f"Could not seed tag index: {describe_error(e)}")
            return
        self._taken.update(identifiers)
        logger.debug(f"Tag index seeded with {len(identifiers)} identifier(s)")

    async def exists(self, identifier: str) -> bool:
        """Ask the backend; a failed check counts as "does not exist"."""
        if self.backend is None:
            return False
        try:
            return await self.backend.exists(identifier)
        except (ResourceError, OSError) as e:
            logger.warning(f"Existence check for '{identifier}' failed, assuming free: {describe_error(e)}")
            return False

    async def is_taken(self, identifier: str) -> bool:
        await self.ensure_seeded()
        if identifier in self._taken:
            return True
        if await self.exists(identifier):
            self._taken.add(identifier)
            return True
        return False
