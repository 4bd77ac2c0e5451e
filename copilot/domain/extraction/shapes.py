"""
Shapes of the structured objects the model emits.

Raw JSON is only trusted once it carries every mandatory field of a shape
and validates into that shape's model.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ValidationError

from copilot.core.models.agent import Agent
from copilot.core.models.extraction import ObjectKind, Payload
from copilot.core.models.intent import Intent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObjectShape:
    kind: ObjectKind
    model: type[BaseModel]
    identity_prefix: str

    @property
    def required_fields(self) -> tuple[str, ...]:
        return self.model.REQUIRED_FIELDS

    @property
    def key_pattern(self) -> re.Pattern:
        """Matches text mentioning every mandatory key, in any order."""
        lookaheads = "".join(rf'(?=[\s\S]*"{re.escape(key)}"\s*:)' for key in self.required_fields)
        return re.compile(lookaheads)

    def has_required_fields(self, data: dict[str, Any]) -> bool:
        return all(data.get(key) for key in self.required_fields)

    def parse(self, data: dict[str, Any]) -> Optional[Payload]:
        if not self.has_required_fields(data):
            return None
        try:
            return self.model.model_validate(data)
        except ValidationError as e:
            logger.debug(f"Rejected {self.kind.value} candidate: {e.error_count()} validation error(s)")
            return None

    def identity_key(self, payload: Payload) -> str:
        return f"{self.identity_prefix}-{payload.identity}"


SHAPES: dict[ObjectKind, ObjectShape] = {
    ObjectKind.INTENT: ObjectShape(ObjectKind.INTENT, Intent, "tag"),
    ObjectKind.AGENT: ObjectShape(ObjectKind.AGENT, Agent, "name"),
}


def get_shape(kind: ObjectKind) -> ObjectShape:
    return SHAPES[kind]


def match_shape(
    data: Any,
    kinds: Iterable[ObjectKind],
) -> Optional[tuple[ObjectShape, Payload]]:
    """Return the first configured shape the data validates into."""
    if not isinstance(data, dict):
        return None
    for kind in kinds:
        shape = SHAPES[kind]
        payload = shape.parse(data)
        if payload is not None:
            return shape, payload
    return None
