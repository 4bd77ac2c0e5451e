"""
Staging and persistence models.

StagingItem is one object waiting for human review in the staging buffer.
SaveBatchResult summarizes one persistence pass and carries what a resume
needs to replay it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Literal, Optional, TypeAlias

from pydantic import BaseModel, Field

from copilot.core.models.extraction import ObjectKind, Payload
from copilot.utils.ids import generate_staging_id


class StagingStatus(str, Enum):
    PENDING = "pending"
    SAVING = "saving"
    SAVED = "saved"
    FAILED = "failed"


class DatasetLink(BaseModel):
    """Secondary-link context: also attach saved intents to a dataset.

    ``mode="new"`` creates the dataset once per pass; afterwards the link is
    recorded as ``existing`` with the resolved id.
    """

    mode: Literal["existing", "new"] = "existing"
    dataset_id: Optional[str] = None
    dataset_name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.dataset_name or self.dataset_id or "dataset"


class StagingItem(BaseModel):
    """One object in the staging buffer."""

    id: str = Field(default_factory=generate_staging_id, description="Local id, stable for the buffer lifetime")
    kind: ObjectKind
    payload: Payload
    status: StagingStatus = StagingStatus.PENDING
    error: Optional[str] = Field(default=None, description="Last error, only when failed")
    link: Optional[DatasetLink] = None

    @property
    def label(self) -> str:
        return self.payload.identity

    def __str__(self) -> str:
        return f"StagingItem({self.id}, {self.kind.value}={self.label!r}, {self.status.value})"


PersistFn: TypeAlias = Callable[[StagingItem], Awaitable[dict[str, Any]]]


@dataclass
class SaveOptions:
    """Parameters of a persistence pass, replayed verbatim on resume."""

    link: Optional[DatasetLink] = None


@dataclass
class SaveBatchResult:
    """Outcome of one orchestration pass.

    Attributes:
        saved: Number of items persisted
        failed: Local id -> error message for items that failed
        link_warnings: Local id -> message for secondary-link failures
        skipped: Local ids that had left the buffer before their turn
        options: Options used (with the resolved dataset link)
        setup_error: Set when the pass could not start (no item attempted)
        persist_fn: The persist callable used, reused by resume
    """

    saved: int = 0
    failed: dict[str, str] = field(default_factory=dict)
    link_warnings: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    options: SaveOptions = field(default_factory=SaveOptions)
    setup_error: Optional[str] = None
    persist_fn: Optional[PersistFn] = field(default=None, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        """True only when nothing failed and the pass actually ran."""
        return not self.failed and self.setup_error is None

    @property
    def can_resume(self) -> bool:
        return bool(self.failed) and self.persist_fn is not None
