"""Repairs applied to generated intents before they are staged or saved."""

from __future__ import annotations

import logging
from typing import Iterable

from copilot.core.models.animation import (
    BODY_ANIMATION_FALLBACK,
    FACE_ANIMATION_FALLBACK,
    BodyAnimation,
    FaceAnimation,
)
from copilot.core.models.intent import Intent
from copilot.domain.validation.enum_validator import validate_enum

logger = logging.getLogger(__name__)


def fix_intent(intent: Intent) -> Intent:
    """Return a copy whose visual cue animation ids are valid.

    The input is left untouched.
    """
    fixed = intent.model_copy(deep=True)
    cue = fixed.visual_cue
    if cue is None:
        return fixed
    if cue.face is not None:
        cue.face.id = validate_enum(FaceAnimation, cue.face.id, FACE_ANIMATION_FALLBACK, field="visualCue.face.id").value
    if cue.body is not None:
        cue.body.id = validate_enum(BodyAnimation, cue.body.id, BODY_ANIMATION_FALLBACK, field="visualCue.body.id").value
    return fixed


def find_dangling_option_tags(intents: Iterable[Intent]) -> dict[str, list[str]]:
    """Map intent tag -> option tags that reference no intent in the batch.

    Only reported (logged), the intents are kept as they are.
    """
    intents = list(intents)
    known = {intent.tag for intent in intents if intent.tag}
    dangling: dict[str, list[str]] = {}
    for intent in intents:
        missing = [opt.tag for opt in intent.options or [] if opt.tag and opt.tag not in known]
        if missing:
            dangling[intent.tag] = missing
            logger.warning(f"Intent '{intent.tag}' has options referencing non-existent tags: {missing}")
    return dangling
