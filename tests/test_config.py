"""
Test Suite: Configuration

Tests for config defaults, environment overrides and JSON round trips.
"""

from pathlib import Path

from copilot.app.config import (
    CopilotConfig,
    LLMConfig,
    PersistenceConfig,
    get_default_data_dir,
    reload_config,
    set_config,
    get_config,
)
from copilot.domain.persistence import PacingConfig


def test_defaults():
    config = CopilotConfig(data_dir="/tmp/copilot")

    assert config.data_dir == Path("/tmp/copilot")
    assert config.log_dir == Path("/tmp/copilot/logs")
    assert config.staging_path == Path("/tmp/copilot/staging.json")
    assert config.extraction.fingerprint_length == 100
    assert config.stream.slow_response_warning == 15.0
    assert config.persistence.seed_limit == 1000


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("COPILOT_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("DEFAULT_PROVIDER", "LM-Studio")
    monkeypatch.setenv("COPILOT_API_URL", "https://backend.test")
    monkeypatch.setenv("COPILOT_API_TOKEN", "secret")

    config = CopilotConfig()

    assert get_default_data_dir() == tmp_path
    assert config.data_dir == tmp_path
    assert config.llm.provider == "lm_studio"
    assert config.backend.base_url == "https://backend.test"
    assert config.backend.bearer_token == "secret"


def test_save_and_load(tmp_path, monkeypatch):
    monkeypatch.setenv("COPILOT_API_TOKEN", "secret")
    config = CopilotConfig(data_dir=tmp_path)
    config.llm.model = "vendor/model"
    config.llm.api_key = "sk-should-not-be-saved"
    config.persistence.between_items = 0.0
    config.log_level = "DEBUG"

    path = config.save()
    content = path.read_text(encoding="utf-8")
    loaded = CopilotConfig.load(path)

    assert path == tmp_path / "copilot_config.json"
    assert "sk-should-not-be-saved" not in content
    assert "secret" not in content
    assert loaded.llm.model == "vendor/model"
    assert loaded.llm.api_key is None
    assert loaded.persistence.between_items == 0.0
    assert loaded.log_level == "DEBUG"
    assert loaded.data_dir == tmp_path


def test_load_missing_file_gives_defaults(tmp_path):
    config = CopilotConfig.load(tmp_path / "absent.json")

    assert config.llm.temperature == 0.7


def test_from_dict_ignores_unknown_keys():
    llm = LLMConfig.from_dict({"model": "m", "unknown": True})

    assert llm.model == "m"


def test_to_pacing():
    persistence = PersistenceConfig(before_item=0, after_success=0.1, after_link=0.2, between_items=0.3)

    assert persistence.to_pacing() == PacingConfig(0, 0.1, 0.2, 0.3)


def test_global_config(tmp_path):
    custom = CopilotConfig(data_dir=tmp_path)
    set_config(custom)
    assert get_config() is custom

    custom.log_level = "WARNING"
    custom.save(tmp_path / "config.json")
    reloaded = reload_config(tmp_path / "config.json")

    assert reloaded.log_level == "WARNING"
    assert get_config() is reloaded
