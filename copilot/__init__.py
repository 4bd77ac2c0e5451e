"""
Copilot - streaming generation of intents and agents, staged for review and
persisted with resumable partial failure.
"""

__version__ = "1.0.0"
