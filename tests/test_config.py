"""Tests for the configuration loading.
"""

import json
import os
from unittest.mock import patch

import pytest

from household_engine.core import config
from household_engine.core.config import Settings, get_settings, set_ui_default_model, set_ui_ollama_url


@pytest.fixture
def ui_settings_path(tmp_path, monkeypatch):
    """Redirects the persisted UI overrides to a temporary file."""
    path = tmp_path / "ui_settings.json"
    monkeypatch.setattr(config, "DATA_DIR", tmp_path)
    monkeypatch.setattr(config, "UI_SETTINGS_PATH", path)
    return path


def test_settings_loading_directly():
    """Test that Settings can be initialized directly with values.

    Bypasses environment variables and .env files.
    """
    test_values = {
        "environment": "testing",
        "debug": True,
        "database_url": "sqlite:///./data/test_db.sqlite",
        "llm_provider": "ollama",
        "ollama_base_url": "http://localhost:11435",
        "default_model": "test_model",
        "MAX_EVENTS_PER_RUN": 5,
    }
    settings = Settings(**test_values, _env_file=None)

    assert settings.environment == "testing"
    assert settings.debug is True
    assert settings.database_url == "sqlite:///./data/test_db.sqlite"
    assert settings.llm_provider == "ollama"
    assert settings.ollama_base_url == "http://localhost:11435"
    assert settings.default_model == "test_model"
    assert settings.MAX_EVENTS_PER_RUN == 5


def test_settings_defaults():
    """Settings fall back to defaults when no environment variables are set."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

    assert settings.environment == "development"
    assert settings.debug is False
    assert settings.database_url == "sqlite:///./data/household_engine.db"
    assert settings.llm_provider == "openai"
    assert settings.OPENAI_API_KEY is None
    assert settings.LLM_TEMPERATURE == 0.3
    assert settings.LLM_MAX_TOKENS == 1000
    assert settings.ANALYSIS_DELAY_SECONDS == 1.5
    assert settings.RATE_LIMIT_COOLDOWN_SECONDS == 60.0
    assert settings.MAX_EVENTS_PER_RUN == 10
    assert settings.RECENT_EVENT_LOOKBACK_DAYS == 7
    assert settings.TASK_LOOKAHEAD_DAYS == 30
    assert settings.DEFAULT_USER_ID == "local-user"
    assert settings.GOOGLE_CALENDAR_API_SCOPES == ["https://www.googleapis.com/auth/calendar.readonly"]


def test_settings_from_environment():
    env = {"ANALYSIS_DELAY_SECONDS": "2.5", "llm_provider": "ollama", "OPENAI_API_KEY": "sk-test"}
    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)

    assert settings.ANALYSIS_DELAY_SECONDS == 2.5
    assert settings.llm_provider == "ollama"
    assert settings.OPENAI_API_KEY == "sk-test"


def test_ui_overrides_are_persisted_and_applied(ui_settings_path):
    set_ui_ollama_url("  http://gpu-box:11434 ")
    set_ui_default_model("gpt-4o")

    assert json.loads(ui_settings_path.read_text()) == {
        "ollama_base_url": "http://gpu-box:11434",
        "default_model": "gpt-4o",
    }
    with patch.dict(os.environ, {"llm_provider": "openai"}, clear=True):
        settings = get_settings()
    assert settings.ollama_base_url == "http://gpu-box:11434"
    assert settings.default_model == "gpt-4o"
    assert settings.OPENAI_CHAT_MODEL_NAME == "gpt-4o"


def test_empty_ui_override_is_ignored(ui_settings_path):
    set_ui_default_model("   ")
    assert not ui_settings_path.exists()


def test_corrupt_ui_settings_file_is_ignored(ui_settings_path):
    ui_settings_path.write_text("{not json")
    with patch.dict(os.environ, {}, clear=True):
        settings = get_settings()
    assert settings.ollama_base_url == "http://localhost:11434"
