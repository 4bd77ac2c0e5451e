"""Extraction of structured objects from streamed model text."""

from copilot.domain.extraction.extractor import IncrementalExtractor, find_balanced_end
from copilot.domain.extraction.shapes import SHAPES, ObjectShape, get_shape, match_shape

__all__ = [
    "IncrementalExtractor",
    "find_balanced_end",
    "SHAPES",
    "ObjectShape",
    "get_shape",
    "match_shape",
]
