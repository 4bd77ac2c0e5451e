"""
Intent model.

An intent is a tagged set of trigger phrases and bot responses, optionally
with follow-up option buttons and an avatar visual cue. Field names follow
the backend's JSON (camelCase aliases), attribute names are snake_case.
"""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field


class IntentResponse(BaseModel):
    """One possible bot response."""

    text: str = Field(description="The main response text")
    alt: Optional[str] = Field(
        default=None,
        description="Context-free phrasing, present only when text uses {{context}} tokens",
    )


class IntentOption(BaseModel):
    """A follow-up button that triggers another intent."""

    label: str = Field(description="Button text to display")
    text: str = Field(description="What the user says when clicking")
    tag: str = Field(description="The intent tag to trigger")


class Animation(BaseModel):
    """Animation id plus intensity.

    ``id`` stays a plain string so that invalid values survive parsing and can
    be repaired by the enum validator instead of rejecting the whole intent.
    """

    id: str
    intensity: float = Field(default=0.5, description="Animation intensity (0-1)")


class VisualCue(BaseModel):
    face: Optional[Animation] = None
    body: Optional[Animation] = None


class Intent(BaseModel):
    """A conversation intent as generated by the model or stored in the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, description="Backend id, absent before persistence")
    tag: str = Field(description="Unique identifier (lowercase, underscore-separated)")
    patterns: list[str] = Field(description="Example phrases that trigger this intent")
    responses: list[IntentResponse] = Field(description="Possible bot responses")
    options: Optional[list[IntentOption]] = Field(default=None, description="Follow-up buttons")
    visual_cue: Optional[VisualCue] = Field(
        default=None,
        alias="visualCue",
        description="Avatar animation settings",
    )

    IDENTITY_FIELD: ClassVar[str] = "tag"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("tag", "patterns", "responses")

    @property
    def identity(self) -> str:
        return self.tag

    def with_identity(self, value: str) -> "Intent":
        return self.model_copy(update={"tag": value}, deep=True)

    def to_create_payload(self) -> dict[str, Any]:
        """Body for ``POST /ai/nlp/intents``."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id"})

    def __str__(self) -> str:
        return f"Intent({self.tag}, patterns={len(self.patterns)}, responses={len(self.responses)})"
