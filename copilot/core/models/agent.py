"""Agent model: a persona with its own system prompt, role and backstory."""

from __future__ import annotations

from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field


class RepeatedInputConfig(BaseModel):
    """Backend settings for handling a user repeating themselves."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    tolerance: int = 3
    history_size: int = Field(default=5, alias="historySize")
    allow_original_response: bool = Field(default=False, alias="allowOriginalResponse")


class Agent(BaseModel):
    """A conversational agent as generated by the model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, description="Backend id, absent before persistence")
    name: str = Field(description="Clear, descriptive agent name")
    role: str = Field(description="Short role description")
    system_prompt: str = Field(alias="systemPrompt", description="Instructions for the agent")
    description: Optional[str] = None
    objective: Optional[str] = None
    personality: Optional[str] = None
    backstory: Optional[str] = None

    IDENTITY_FIELD: ClassVar[str] = "name"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("name", "role", "systemPrompt")

    @property
    def identity(self) -> str:
        return self.name

    def with_identity(self, value: str) -> "Agent":
        return self.model_copy(update={"name": value}, deep=True)

    def to_create_payload(self) -> dict[str, Any]:
        """Body for ``POST /ai/nlp/agents``, with the defaults new agents start from."""
        payload = self.model_dump(by_alias=True, exclude_none=True, exclude={"id"})
        payload.update(
            {
                "datasets": [],
                "greetings": [],
                "fallback": [],
                "repeatedInput": [],
                "repeatedInputConfig": RepeatedInputConfig().model_dump(by_alias=True),
                "objectives": [],
            }
        )
        return payload

    def __str__(self) -> str:
        return f"Agent({self.name}, role={self.role!r})"
