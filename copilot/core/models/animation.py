"""
Animation enums for intent visual cues.

The avatar runtime only understands these identifiers; anything else a model
emits is replaced with the fallback before it reaches the backend.
"""

from __future__ import annotations

from enum import Enum


class FaceAnimation(str, Enum):
    """Facial animations available to the avatar."""
    NEUTRAL = "NEUTRAL"
    FRIENDLY = "FRIENDLY"
    HAPPY = "HAPPY"
    EXCITED = "EXCITED"
    ATTENTIVE = "ATTENTIVE"
    THINKING = "THINKING"
    CONFUSED = "CONFUSED"
    SURPRISED = "SURPRISED"
    SAD = "SAD"
    CONCERNED = "CONCERNED"
    EMPATHETIC = "EMPATHETIC"
    SERIOUS = "SERIOUS"


class BodyAnimation(str, Enum):
    """Body animations available to the avatar."""
    IDLE = "IDLE"
    AGREEING = "AGREEING"
    NODDING = "NODDING"
    WAVING = "WAVING"
    POINTING = "POINTING"
    SHRUGGING = "SHRUGGING"
    EXPLAINING = "EXPLAINING"
    THINKING = "THINKING"
    CELEBRATING = "CELEBRATING"
    BOWING = "BOWING"
    CROSSED_ARMS = "CROSSED_ARMS"


FACE_ANIMATION_FALLBACK = FaceAnimation.FRIENDLY
BODY_ANIMATION_FALLBACK = BodyAnimation.AGREEING
