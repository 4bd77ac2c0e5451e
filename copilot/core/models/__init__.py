"""
Core Models - domain objects of the generation-to-persistence pipeline.
"""

from copilot.core.models.agent import Agent, RepeatedInputConfig
from copilot.core.models.animation import (
    BODY_ANIMATION_FALLBACK,
    FACE_ANIMATION_FALLBACK,
    BodyAnimation,
    FaceAnimation,
)
from copilot.core.models.dataset import Dataset
from copilot.core.models.extraction import ExtractedObject, ObjectKind, Payload
from copilot.core.models.generation import CancellationToken, GenerationSession, SessionStatus
from copilot.core.models.intent import Animation, Intent, IntentOption, IntentResponse, VisualCue
from copilot.core.models.staging import (
    DatasetLink,
    PersistFn,
    SaveBatchResult,
    SaveOptions,
    StagingItem,
    StagingStatus,
)

__all__ = [
    "Agent",
    "RepeatedInputConfig",
    "BodyAnimation",
    "FaceAnimation",
    "BODY_ANIMATION_FALLBACK",
    "FACE_ANIMATION_FALLBACK",
    "Dataset",
    "ExtractedObject",
    "ObjectKind",
    "Payload",
    "CancellationToken",
    "GenerationSession",
    "SessionStatus",
    "Animation",
    "Intent",
    "IntentOption",
    "IntentResponse",
    "VisualCue",
    "DatasetLink",
    "PersistFn",
    "SaveBatchResult",
    "SaveOptions",
    "StagingItem",
    "StagingStatus",
]
