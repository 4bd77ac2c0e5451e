"""Types produced by the incremental extractor."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias, Union

from copilot.core.models.agent import Agent
from copilot.core.models.intent import Intent

Payload: TypeAlias = Union[Intent, Agent]


class ObjectKind(str, Enum):
    """Discriminator for the structured objects the model can emit."""
    INTENT = "intent"
    AGENT = "agent"


@dataclass(frozen=True)
class ExtractedObject:
    """A fully parsed fragment found in a session's text.

    Attributes:
        fingerprint: Dedup key built from a bounded prefix of the raw span
        identity_key: Semantic key (``tag-<tag>`` / ``name-<name>``)
        kind: Which shape the fragment matched
        payload: Validated model instance
        raw: The raw source text of the fragment
    """

    fingerprint: str
    identity_key: str
    kind: ObjectKind
    payload: Payload
    raw: str = ""
