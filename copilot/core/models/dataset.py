"""Dataset model: a named collection of intent ids."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Dataset(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str
    intents: list[str] = Field(default_factory=list, description="Backend ids of member intents")
