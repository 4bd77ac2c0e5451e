"""Identifier uniqueness against the backend namespace."""

from copilot.domain.resolution.conflict_resolver import IdentityConflictResolver
from copilot.domain.resolution.tag_index import TagIndex

__all__ = ["IdentityConflictResolver", "TagIndex"]
