"""Staging of generated objects before persistence."""

from copilot.domain.staging.buffer import StagingBuffer, kind_of

__all__ = ["StagingBuffer", "kind_of"]
