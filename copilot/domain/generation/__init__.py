"""Generation: streaming consumer and the generation tools."""

from copilot.domain.generation.stream_consumer import DEFAULT_STOP_MARKER, ChunkCallback, StreamConsumer
from copilot.domain.generation.tools import (
    AgentGenerationOptions,
    AgentGenerationTool,
    GenerationTool,
    IntentGenerationOptions,
    IntentGenerationTool,
)

__all__ = [
    "DEFAULT_STOP_MARKER",
    "ChunkCallback",
    "StreamConsumer",
    "AgentGenerationOptions",
    "AgentGenerationTool",
    "GenerationTool",
    "IntentGenerationOptions",
    "IntentGenerationTool",
]
