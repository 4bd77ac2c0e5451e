"""Identity conflict resolver: turns a candidate identifier into a free one."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from copilot.core.notifications import Notifier
from copilot.domain.resolution.tag_index import TagIndex
from copilot.utils.ids import split_numeric_suffix

logger = logging.getLogger(__name__)


class IdentityConflictResolver:
    """Reserves unique identifiers against a Tag Index.

    A taken ``name`` becomes ``name_1``, ``name_2``, ...; a taken ``name_3``
    continues from ``name_4``. Reservations are serialized so two concurrent
    callers never receive the same identifier.
    """

    def __init__(
        self,
        tag_index: TagIndex,
        notifier: Optional[Notifier] = None,
        label: str = "Tag",
    ):
        self.tag_index = tag_index
        self.notifier = notifier or Notifier()
        self.label = label
        self._lock = asyncio.Lock()

    async def reserve(self, candidate: str) -> str:
        """Return ``candidate`` or the first free suffixed variant, marked as taken."""
        async with self._lock:
            if not await self.tag_index.is_taken(candidate):
                self.tag_index.mark(candidate)
                return candidate

            base, n = split_numeric_suffix(candidate)
            while True:
                n += 1
                attempt = f"{base}_{n}"
                if not await self.tag_index.is_taken(attempt):
                    break

            self.tag_index.mark(attempt)
            logger.info(f"{self.label} '{candidate}' taken, renamed to '{attempt}'")
            self.notifier.info(
                f"{self.label} adjusted",
                f"'{candidate}' was renamed to '{attempt}'",
            )
            return attempt
