"""Prompt templates for the copilot generation tools, rendered with Jinja2."""

from copilot.config.prompts.manager import PromptManager, get_prompt_manager, render_prompt

__all__ = ["PromptManager", "render_prompt", "get_prompt_manager"]
