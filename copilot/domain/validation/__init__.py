"""Validation and auto-repair of generated objects."""

from copilot.domain.validation.enum_validator import validate, validate_enum
from copilot.domain.validation.intent_fixer import find_dangling_option_tags, fix_intent

__all__ = ["validate", "validate_enum", "find_dangling_option_tags", "fix_intent"]
