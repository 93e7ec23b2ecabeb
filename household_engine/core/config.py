"""Configuration module for the Household Task Engine.

This module handles all application configuration using pydantic-settings,
with support for persistent UI overrides via a JSON file.
"""

import logging
import json
from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Dict, Any, List
from pydantic import Field

# Explicitly load .env file BEFORE BaseSettings reads environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# --- Persistent UI Overrides ---
# LLM settings changed through the API are stored in a small JSON file
UI_SETTINGS_FILENAME = "ui_settings.json"
DATA_DIR = Path("./data")
UI_SETTINGS_PATH = DATA_DIR / UI_SETTINGS_FILENAME

def _load_ui_overrides() -> Dict[str, Any]:
    """Loads UI override settings from the JSON file."""
    if UI_SETTINGS_PATH.exists():
        try:
            with open(UI_SETTINGS_PATH, 'r') as f:
                overrides = json.load(f)
                logger.debug(f"Loaded UI overrides from {UI_SETTINGS_PATH}: {overrides}")
                return overrides
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Error reading UI settings file {UI_SETTINGS_PATH}: {e}", exc_info=True)
    return {}

def _save_ui_overrides(overrides: Dict[str, Any]):
    """Saves UI override settings to the JSON file."""
    try:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        with open(UI_SETTINGS_PATH, 'w') as f:
            json.dump(overrides, f, indent=2)
        logger.debug(f"Saved UI overrides to {UI_SETTINGS_PATH}: {overrides}")
    except IOError as e:
        logger.error(f"Error writing UI settings file {UI_SETTINGS_PATH}: {e}", exc_info=True)
# -----------------------------

class Settings(BaseSettings):
    """Application settings class.

    Settings are loaded from environment variables (and .env) with
    defaults suitable for a single-user local deployment.
    """

    # Application settings
    environment: str = "development"
    debug: bool = False

    # Database settings
    database_url: str = Field(default="sqlite:///./data/household_engine.db", description="Database connection string.")

    # LLM settings
    llm_provider: str = Field(default="openai", description="LLM provider ('openai' or 'ollama')")
    ollama_base_url: str = Field(default="http://localhost:11434", description="Base URL for the Ollama API server.")
    default_model: str = Field(default="llama3.1:latest", description="Default Ollama model to use.")
    OPENAI_API_KEY: Optional[str] = Field(default=None, description="API Key for OpenAI.")
    OPENAI_CHAT_MODEL_NAME: str = Field(default="gpt-4o-mini", description="OpenAI chat model used for event analysis.")
    LLM_TEMPERATURE: float = Field(default=0.3, description="Sampling temperature for event analysis. Kept low for repeatable output.")
    LLM_MAX_TOKENS: int = Field(default=1000, description="Output token budget for one event analysis.")
    LLM_REQUEST_TIMEOUT: float = Field(default=60.0, description="Client-side timeout in seconds for one LLM request.")

    # --- Feature: Event analysis pipeline ---
    ANALYSIS_DELAY_SECONDS: float = Field(
        default=1.5,
        description="Minimum pause between consecutive LLM calls in a batch (50 requests/minute leaves headroom at 1.5s)."
    )
    RATE_LIMIT_COOLDOWN_SECONDS: float = Field(
        default=60.0,
        description="Pause before retrying an event after the provider signalled a rate limit."
    )
    RATE_LIMIT_REQUESTS_PER_MINUTE: int = Field(default=50, description="Provider request limit the delay is tuned for.")
    MAX_EVENTS_PER_RUN: int = Field(default=10, description="Maximum number of events analyzed per request.")
    RECENT_EVENT_LOOKBACK_DAYS: int = Field(
        default=7,
        description="Events that started within this many days in the past are still analyzed."
    )
    TASK_LOOKAHEAD_DAYS: int = Field(default=30, description="Default lookahead window for upcoming tasks.")

    # Single-user deployments identify the caller by this id unless X-User-Id is sent
    DEFAULT_USER_ID: str = Field(default="local-user", description="User id used when the request carries no X-User-Id header.")
    DEFAULT_USER_NAME: Optional[str] = Field(default=None, description="Display name used when creating the default household.")

    # --- Google OAuth Settings ---
    GOOGLE_CLIENT_SECRET_JSON_PATH: str = Field(
        default="client_secret.json",
        description="Path to the Google OAuth client_secret.json file (relative to project root)."
    )
    GOOGLE_OAUTH_TOKENS_PATH: str = Field(
        default="data/google_oauth_tokens.json",
        description="Path to store user's Google OAuth tokens (relative to project root)."
    )
    GOOGLE_OAUTH_REDIRECT_URI: str = Field(
        default="http://localhost:8000/auth/google/callback",
        description="OAuth redirect URI. Must match one configured in Google Cloud Console."
    )
    GOOGLE_CALENDAR_API_SCOPES: List[str] = Field(
        default=["https://www.googleapis.com/auth/calendar.readonly"],
        description="Scopes for Google Calendar API access."
    )

    # API Server Configuration (for uvicorn)
    api_host: str = Field(default="0.0.0.0", description="Host for the FastAPI server.")
    api_port: int = Field(default=8000, description="Port for the FastAPI server.")
    api_reload: bool = Field(default=True, description="Enable auto-reload for the FastAPI server (development).")
    api_log_level: str = Field(default="info", description="Log level for the FastAPI server.")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra='ignore'
    )

def set_ui_ollama_url(url: str):
    """Sets the Ollama Base URL override from the UI and persists it."""
    clean_url = url.strip() if url else None
    if clean_url:
        overrides = _load_ui_overrides()
        overrides['ollama_base_url'] = clean_url
        _save_ui_overrides(overrides)
        logger.info(f"UI Override Persisted: Ollama Base URL set to: {clean_url}")
    else:
        logger.warning("Attempted to set empty Ollama Base URL override.")

def set_ui_default_model(model_name: str):
    """Sets the model name override from the UI and persists it.

    Applies to whichever provider is active: the Ollama model or the
    OpenAI chat model.
    """
    clean_model_name = model_name.strip() if model_name else None
    if clean_model_name:
        overrides = _load_ui_overrides()
        overrides['default_model'] = clean_model_name
        _save_ui_overrides(overrides)
        logger.info(f"UI Override Persisted: Default Model Name set to: {clean_model_name}")
    else:
        logger.warning("Attempted to set empty Default Model Name override.")

def get_settings() -> Settings:
    """Get application settings, applying persisted UI overrides.

    Loads base settings from environment/.env, then applies overrides
    found in data/ui_settings.json.

    Returns:
        Settings: The application settings instance with overrides applied.
    """
    settings = Settings()  # Load from .env/env vars

    ui_overrides = _load_ui_overrides()

    def apply_override(key: str, setting_attr: str):
        if key in ui_overrides:
            original_value = getattr(settings, setting_attr)
            override_value = ui_overrides[key]
            if not isinstance(override_value, str) or not override_value.strip():
                logger.warning(f"Could not apply UI override for {setting_attr}: Invalid value '{override_value}'. Using default: {original_value}")
                return
            if override_value != original_value:
                logger.debug(f"Applying UI override for {setting_attr}: '{override_value}' (Original: '{original_value}')")
                setattr(settings, setting_attr, override_value)
        else:
            logger.debug(f"No persisted UI override for {setting_attr}, using value from env/default: '{getattr(settings, setting_attr)}'")

    apply_override('ollama_base_url', 'ollama_base_url')
    apply_override('default_model', 'default_model')
    if settings.llm_provider == "openai":
        apply_override('default_model', 'OPENAI_CHAT_MODEL_NAME')

    return settings
