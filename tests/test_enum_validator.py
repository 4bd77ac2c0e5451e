"""
Test Suite: Enum Validation

Tests for closed-set validation and the intent repairs built on it.
"""

from copilot.core.models.animation import BodyAnimation, FaceAnimation
from copilot.core.models.intent import Intent
from copilot.domain.validation import (
    find_dangling_option_tags,
    fix_intent,
    validate,
    validate_enum,
)


def _intent(tag, face="HAPPY", body="WAVING", options=None):
    data = {
        "tag": tag,
        "patterns": ["hi"],
        "responses": [{"text": "Hello!"}],
        "visualCue": {"face": {"id": face, "intensity": 0.8}, "body": {"id": body}},
    }
    if options is not None:
        data["options"] = [{"label": t, "text": t, "tag": t} for t in options]
    return Intent.model_validate(data)


def test_validate_returns_member():
    assert validate("a", {"a", "b"}, "b") == "a"


def test_validate_returns_fallback():
    assert validate("z", {"a", "b"}, "b") == "b"
    assert validate(None, {"a", "b"}, "b") == "b"


def test_validate_unhashable_value():
    assert validate(["a"], {"a"}, "a") == "a"
    assert validate({"x": 1}, frozenset({"a"}), "a") == "a"


def test_validate_enum():
    assert validate_enum(FaceAnimation, "SAD", FaceAnimation.FRIENDLY) is FaceAnimation.SAD
    assert validate_enum(FaceAnimation, "GRUMPY", FaceAnimation.FRIENDLY) is FaceAnimation.FRIENDLY
    assert validate_enum(BodyAnimation, 7, BodyAnimation.AGREEING) is BodyAnimation.AGREEING


def test_fix_intent_replaces_invalid_ids():
    original = _intent("greeting", face="GRUMPY", body="MOONWALK")

    fixed = fix_intent(original)

    assert fixed.visual_cue.face.id == "FRIENDLY"
    assert fixed.visual_cue.body.id == "AGREEING"
    assert fixed.visual_cue.face.intensity == 0.8
    # Input left untouched
    assert original.visual_cue.face.id == "GRUMPY"
    assert original.visual_cue.body.id == "MOONWALK"


def test_fix_intent_keeps_valid_ids():
    fixed = fix_intent(_intent("greeting"))

    assert fixed.visual_cue.face.id == "HAPPY"
    assert fixed.visual_cue.body.id == "WAVING"


def test_fix_intent_without_visual_cue():
    intent = Intent(tag="plain", patterns=["a"], responses=[{"text": "b"}])

    fixed = fix_intent(intent)

    assert fixed.visual_cue is None
    assert fixed is not intent


def test_find_dangling_option_tags():
    intents = [
        _intent("menu", options=["hours", "prices"]),
        _intent("hours"),
        _intent("prices", options=["menu", "contact"]),
    ]

    assert find_dangling_option_tags(intents) == {"prices": ["contact"]}


def test_no_dangling_option_tags():
    assert find_dangling_option_tags([_intent("a", options=["a"])]) == {}
    assert find_dangling_option_tags([]) == {}
