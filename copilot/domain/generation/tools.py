"""
Generation tools.

A tool decides what the model is asked to produce: it renders the system
prompt, frames the user request and trims the history sent back as context.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Sequence

from copilot.config.prompts import PromptManager, get_prompt_manager
from copilot.core.models.animation import BodyAnimation, FaceAnimation
from copilot.core.models.extraction import ObjectKind
from copilot.infrastructure.llm.models import LLMMessage, MessageRole

FENCED_JSON_RE = re.compile(r"```json\s*[\s\S]*?```")
OMITTED_PLACEHOLDER = "[Intent data omitted to save tokens]"


def count_window(avg_count: int) -> str:
    """Valid item-count window around the requested average, clamped to 5..15."""
    return f"{max(5, avg_count - 2)}-{min(15, avg_count + 2)}"


def strip_fenced_json(history: Sequence[LLMMessage]) -> list[LLMMessage]:
    """Drop fenced JSON from assistant turns.

    A turn left empty is replaced by a short placeholder so the exchange
    structure survives.
    """
    filtered = []
    for message in history:
        if message.role == MessageRole.ASSISTANT:
            content = FENCED_JSON_RE.sub("", message.content).strip()
            message = replace(message, content=content or OMITTED_PLACEHOLDER)
        filtered.append(message)
    return filtered


@dataclass
class IntentGenerationOptions:
    language: str = "en"
    avg_count: int = 4
    force_options: bool = False
    context_variables: list[str] = field(default_factory=list)
    include_in_history: bool = False


@dataclass
class AgentGenerationOptions:
    language: str = "en"
    include_personality: bool = True
    include_backstory: bool = True
    include_in_history: bool = False


class GenerationTool:
    """Base class for the copilot's generation tools."""

    name: str = ""
    kind: ObjectKind
    template: str = ""

    def __init__(self, prompts: PromptManager | None = None):
        self.prompts = prompts or get_prompt_manager()

    @property
    def include_in_history(self) -> bool:
        return False

    def template_vars(self) -> dict:
        return {}

    def system_prompt(self) -> str:
        return self.prompts.render(self.template, **self.template_vars())

    def build_message(self, prompt: str) -> str:
        return prompt

    def filter_history(self, history: Sequence[LLMMessage]) -> list[LLMMessage]:
        if self.include_in_history:
            return list(history)
        return strip_fenced_json(history)


class IntentGenerationTool(GenerationTool):
    """Generates intents as fenced JSON blocks."""

    name = "intents"
    kind = ObjectKind.INTENT
    template = "intents_system"

    def __init__(
        self,
        options: IntentGenerationOptions | None = None,
        prompts: PromptManager | None = None,
    ):
        super().__init__(prompts)
        self.options = options or IntentGenerationOptions()

    @property
    def include_in_history(self) -> bool:
        return self.options.include_in_history

    def template_vars(self) -> dict:
        return {
            "language": self.options.language,
            "avg_count": self.options.avg_count,
            "count_window": count_window(self.options.avg_count),
            "force_options": self.options.force_options,
            "context_variables": self.options.context_variables,
            "face_animations": [a.value for a in FaceAnimation],
            "body_animations": [a.value for a in BodyAnimation],
        }

    def build_message(self, prompt: str) -> str:
        """Prefix the request with the generation parameters the model must honor."""
        opts = self.options
        return (
            "GENERATION PARAMETERS\n"
            f"- dataset_language: {opts.language}\n"
            f"- average_count: {opts.avg_count}\n"
            f"- force_options: {str(opts.force_options).lower()}\n"
            f"- context_variables: [{', '.join(opts.context_variables)}]\n\n"
            "USER REQUEST\n"
            f"{prompt}"
        )


class AgentGenerationTool(GenerationTool):
    """Generates agent personas as fenced JSON blocks."""

    name = "agents"
    kind = ObjectKind.AGENT
    template = "agents_system"

    def __init__(
        self,
        options: AgentGenerationOptions | None = None,
        prompts: PromptManager | None = None,
    ):
        super().__init__(prompts)
        self.options = options or AgentGenerationOptions()

    @property
    def include_in_history(self) -> bool:
        return self.options.include_in_history

    def template_vars(self) -> dict:
        return {
            "language": self.options.language,
            "include_personality": self.options.include_personality,
            "include_backstory": self.options.include_backstory,
        }
