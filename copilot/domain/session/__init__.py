"""Session owner wiring the pipeline together."""

from copilot.domain.session.session_manager import CopilotSession

__all__ = ["CopilotSession"]
