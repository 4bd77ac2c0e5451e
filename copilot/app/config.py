"""
Copilot Configuration.

Central configuration: JSON file for settings, environment (and ``.env``)
for endpoints and secrets.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv

from copilot.domain.generation.stream_consumer import DEFAULT_STOP_MARKER
from copilot.domain.persistence.orchestrator import PacingConfig

load_dotenv()


# ============================================================================
# Default Paths
# ============================================================================


def get_default_data_dir() -> Path:
    """Get the default data directory for the copilot."""
    if env_path := os.environ.get("COPILOT_DATA_DIR"):
        return Path(env_path)
    return Path.home() / ".copilot"


def get_default_config_path() -> Path:
    return get_default_data_dir() / "copilot_config.json"


# ============================================================================
# Configuration Classes
# ============================================================================


@dataclass
class LLMConfig:
    """Configuration for the language model provider."""

    provider: Literal["openrouter", "lm_studio", "lm_proxy"] = field(
        default_factory=lambda: os.getenv("DEFAULT_PROVIDER", "openrouter").strip().lower().replace("-", "_")
    )
    model: str | None = None  # Falls back to the provider's environment default
    api_key: str | None = None  # Falls back to environment variable
    base_url: str | None = None
    temperature: float = 0.7
    max_tokens: int | None = None
    timeout: float = 60.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LLMConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "base_url": self.base_url,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "timeout": self.timeout,
            # Don't serialize API key for security
        }


@dataclass
class BackendConfig:
    """Where staged objects are persisted."""

    base_url: str | None = field(default_factory=lambda: os.getenv("COPILOT_API_URL"))
    bearer_token: str | None = field(default_factory=lambda: os.getenv("COPILOT_API_TOKEN"))
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BackendConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "timeout": self.timeout,
            # Token stays in the environment
        }


@dataclass
class ExtractionConfig:
    """Configuration for incremental extraction."""

    fence_language: str = "json"
    fingerprint_length: int = 100  # Prefix of the fragment used for dedup

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractionConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_dict(self) -> dict[str, Any]:
        return {
            "fence_language": self.fence_language,
            "fingerprint_length": self.fingerprint_length,
        }


@dataclass
class StreamConfig:
    """Configuration for the stream consumer."""

    slow_response_warning: float = 15.0  # Seconds, 0 disables
    stop_marker: str = DEFAULT_STOP_MARKER

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StreamConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_dict(self) -> dict[str, Any]:
        return {
            "slow_response_warning": self.slow_response_warning,
            "stop_marker": self.stop_marker,
        }


@dataclass
class PersistenceConfig:
    """Pacing of save passes and Tag Index seeding."""

    before_item: float = 0.8
    after_success: float = 0.6
    after_link: float = 0.4
    between_items: float = 0.5
    seed_limit: int = 1000

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersistenceConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_dict(self) -> dict[str, Any]:
        return {
            "before_item": self.before_item,
            "after_success": self.after_success,
            "after_link": self.after_link,
            "between_items": self.between_items,
            "seed_limit": self.seed_limit,
        }

    def to_pacing(self) -> PacingConfig:
        return PacingConfig(
            before_item=self.before_item,
            after_success=self.after_success,
            after_link=self.after_link,
            between_items=self.between_items,
        )


@dataclass
class CopilotConfig:
    """Main configuration.

    Aggregates all sub-configurations and provides load/save functionality.
    """

    data_dir: Path = field(default_factory=get_default_data_dir)

    llm: LLMConfig = field(default_factory=LLMConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    stream: StreamConfig = field(default_factory=StreamConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def __post_init__(self):
        if isinstance(self.data_dir, str):
            self.data_dir = Path(self.data_dir)

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    @property
    def staging_path(self) -> Path:
        """File the CLI keeps unsaved staged items in between runs."""
        return self.data_dir / "staging.json"

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "CopilotConfig":
        """Load configuration from a JSON file (defaults if it doesn't exist)."""
        config_path = Path(config_path) if config_path is not None else get_default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CopilotConfig":
        return cls(
            data_dir=Path(data.get("data_dir", get_default_data_dir())),
            llm=LLMConfig.from_dict(data.get("llm", {})),
            backend=BackendConfig.from_dict(data.get("backend", {})),
            extraction=ExtractionConfig.from_dict(data.get("extraction", {})),
            stream=StreamConfig.from_dict(data.get("stream", {})),
            persistence=PersistenceConfig.from_dict(data.get("persistence", {})),
            log_level=data.get("log_level", "INFO"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "data_dir": str(self.data_dir),
            "llm": self.llm.to_dict(),
            "backend": self.backend.to_dict(),
            "extraction": self.extraction.to_dict(),
            "stream": self.stream.to_dict(),
            "persistence": self.persistence.to_dict(),
            "log_level": self.log_level,
        }

    def save(self, config_path: str | Path | None = None) -> Path:
        """Save configuration to a JSON file and return its path."""
        config_path = Path(config_path) if config_path is not None else self.data_dir / "copilot_config.json"
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

        return config_path


# ============================================================================
# Global Config Instance
# ============================================================================


_global_config: CopilotConfig | None = None


def get_config() -> CopilotConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = CopilotConfig.load()
    return _global_config


def set_config(config: CopilotConfig) -> None:
    global _global_config
    _global_config = config


def reload_config(config_path: str | Path | None = None) -> CopilotConfig:
    """Reload configuration from disk."""
    global _global_config
    _global_config = CopilotConfig.load(config_path)
    return _global_config
