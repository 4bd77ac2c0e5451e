"""
Test Suite: Prompts and Generation Tools

Tests for system prompt rendering, request framing and history trimming.
"""

import pytest
from jinja2 import UndefinedError

from copilot.config.prompts import PromptManager, get_prompt_manager
from copilot.config.prompts.manager import language_name
from copilot.domain.generation import (
    AgentGenerationOptions,
    AgentGenerationTool,
    IntentGenerationOptions,
    IntentGenerationTool,
)
from copilot.domain.generation.tools import OMITTED_PLACEHOLDER, count_window, strip_fenced_json
from copilot.infrastructure.llm.models import LLMMessage, MessageRole


def test_count_window_is_clamped():
    assert count_window(4) == "5-6"
    assert count_window(10) == "8-12"
    assert count_window(15) == "13-15"


def test_language_name():
    assert language_name("en") == "English"
    assert language_name("ES") == "Spanish"
    assert language_name("fr") == "fr"


def test_intent_system_prompt():
    tool = IntentGenerationTool(
        IntentGenerationOptions(language="es", avg_count=8, force_options=True, context_variables=["user_name"])
    )

    prompt = tool.system_prompt()

    assert "in Spanish." in prompt
    assert "average_count_target: 8 (valid window: 6-10)" in prompt
    assert "Forced options: TRUE" in prompt
    assert "- user_name (context token: {{user_name}})" in prompt
    assert "FRIENDLY" in prompt and "CROSSED_ARMS" in prompt
    # Literal braces survive rendering
    assert "{{variable}}" in prompt


def test_intent_system_prompt_defaults():
    prompt = IntentGenerationTool().system_prompt()

    assert "Forced options: FALSE" in prompt
    assert "- none provided" in prompt


def test_agent_system_prompt_optional_fields():
    with_all = AgentGenerationTool().system_prompt()
    bare = AgentGenerationTool(
        AgentGenerationOptions(include_personality=False, include_backstory=False)
    ).system_prompt()

    assert "- personality:" in with_all and "- backstory:" in with_all
    assert "- personality:" not in bare and "- backstory:" not in bare


def test_missing_template_variable_raises():
    with pytest.raises(UndefinedError):
        PromptManager().render("intents_system", language="en")


def test_default_manager_is_shared():
    assert get_prompt_manager() is get_prompt_manager()
    assert get_prompt_manager().get_template_path("agents_system").exists()


def test_intent_message_header():
    tool = IntentGenerationTool(IntentGenerationOptions(avg_count=6, context_variables=["city", "date"]))

    message = tool.build_message("Opening hours intents")

    assert message == (
        "GENERATION PARAMETERS\n"
        "- dataset_language: en\n"
        "- average_count: 6\n"
        "- force_options: false\n"
        "- context_variables: [city, date]\n\n"
        "USER REQUEST\n"
        "Opening hours intents"
    )


def test_agent_message_is_the_prompt():
    assert AgentGenerationTool().build_message("A museum guide") == "A museum guide"


def test_strip_fenced_json():
    history = [
        LLMMessage(role=MessageRole.USER, content="```json\n{}\n``` user text is kept"),
        LLMMessage(role=MessageRole.ASSISTANT, content='Here you go.\n```json\n{"tag": "a"}\n```\n'),
        LLMMessage(role=MessageRole.ASSISTANT, content='```json\n{"tag": "b"}\n```'),
    ]

    filtered = strip_fenced_json(history)

    assert filtered[0].content == history[0].content
    assert filtered[1].content == "Here you go."
    assert filtered[2].content == OMITTED_PLACEHOLDER
    # Input messages are not modified
    assert "```json" in history[1].content


def test_filter_history_respects_include_in_history():
    history = [LLMMessage(role=MessageRole.ASSISTANT, content='```json\n{"tag": "a"}\n```')]

    kept = IntentGenerationTool(IntentGenerationOptions(include_in_history=True)).filter_history(history)
    trimmed = IntentGenerationTool().filter_history(history)

    assert kept[0].content == history[0].content
    assert trimmed[0].content == OMITTED_PLACEHOLDER
