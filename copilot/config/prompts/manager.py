"""Prompt Manager for loading and rendering Jinja2 prompt templates."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

logger = logging.getLogger(__name__)

LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "es": "Spanish",
}


def language_name(code: str) -> str:
    """Human name for a dataset language code (unknown codes pass through)."""
    return LANGUAGE_NAMES.get(code.lower(), code)


class PromptManager:
    """Manages Jinja2 prompt templates for LLM interactions."""

    def __init__(self, prompts_dir: Optional[Path] = None):
        """Initialize the prompt manager.

        Args:
            prompts_dir: Directory containing prompt templates. Defaults to copilot/config/prompts/templates/
        """
        if prompts_dir is None:
            prompts_dir = Path(__file__).parent / "templates"

        self.prompts_dir = Path(prompts_dir)

        self.env = Environment(
            loader=FileSystemLoader(str(self.prompts_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["language_name"] = language_name

        logger.debug(f"PromptManager initialized with templates directory: {self.prompts_dir}")

    def render(self, template_name: str, **kwargs: Any) -> str:
        """Render a prompt template with the given variables.

        Args:
            template_name: Name of the template file (without .j2 extension)
            **kwargs: Variables to pass to the template

        Returns:
            Rendered prompt string

        Raises:
            TemplateNotFound: If the template doesn't exist
        """
        try:
            template = self.env.get_template(f"{template_name}.j2")
            return template.render(**kwargs)
        except TemplateNotFound:
            logger.error(f"Prompt template not found: {template_name}.j2 in {self.prompts_dir}")
            raise
        except Exception as e:
            logger.error(f"Error rendering template {template_name}: {e}")
            raise

    def get_template_path(self, template_name: str) -> Path:
        return self.prompts_dir / f"{template_name}.j2"


# Global prompt manager instance
_default_manager: Optional[PromptManager] = None


def get_prompt_manager() -> PromptManager:
    """Get the default prompt manager instance."""
    global _default_manager
    if _default_manager is None:
        _default_manager = PromptManager()
    return _default_manager


def render_prompt(template_name: str, **kwargs: Any) -> str:
    """Convenience function to render a prompt using the default manager."""
    return get_prompt_manager().render(template_name, **kwargs)
