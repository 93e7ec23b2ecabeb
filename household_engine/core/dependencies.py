"""Dependencies module for the Household Task Engine.

This module defines FastAPI dependencies used throughout the application.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from fastapi import Depends, Header

from household_engine.core.config import Settings, get_settings
from household_engine.database import crud
from household_engine.database.models import Household
from household_engine.interfaces.llm_interface import LLMInterface
from household_engine.llms.ollama_client import OllamaClient
from household_engine.llms.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

# --- Singleton instances (cached per application lifecycle) ---
_llm_service: LLMInterface | None = None
_db_connection: sqlite3.Connection | None = None


def get_db_path(settings: Settings) -> Path:
    """Resolves the SQLite file path from settings.database_url."""
    db_url = settings.database_url
    if not db_url.startswith("sqlite:///"):
        raise ValueError(f"Invalid database_url format: {db_url}")
    return Path(db_url[len("sqlite:///"):]).resolve()


# --- Database Dependency ---

def get_db() -> sqlite3.Connection:
    """Provides the singleton database connection instance.

    The lifespan handler creates the tables; the connection itself is opened
    lazily on first use and re-opened if it was closed.
    """
    global _db_connection

    if _db_connection is not None:
        try:
            _db_connection.total_changes # Raises if the connection was closed
        except sqlite3.ProgrammingError as e:
            logger.error(f"Database connection appears closed or invalid in get_db: {e}. Reconnecting.")
            _db_connection = None

    if _db_connection is None:
        db_path = get_db_path(get_settings())
        db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            _db_connection = crud.connect(db_path)
            logger.info(f"Database connection established to {db_path}.")
        except sqlite3.Error as e:
            logger.critical(f"Failed to establish DB connection in get_db: {e}", exc_info=True)
            raise RuntimeError(f"Database connection could not be established: {e}") from e

    return _db_connection


def close_db() -> None:
    """Closes the singleton connection, if open."""
    global _db_connection
    if _db_connection is not None:
        _db_connection.close()
        _db_connection = None
        logger.info("Database connection closed.")


# --- Service Dependencies ---

def create_llm_service(settings: Settings) -> LLMInterface:
    """Builds the LLM client selected by settings.llm_provider."""
    provider = settings.llm_provider.lower()
    if provider == "openai":
        logger.info(f"Creating OpenAIClient instance with model: {settings.OPENAI_CHAT_MODEL_NAME}")
        return OpenAIClient(settings=settings)
    if provider == "ollama":
        logger.info(f"Creating OllamaClient instance for host: {settings.ollama_base_url}")
        return OllamaClient(settings=settings)
    raise ValueError(f"Unsupported llm_provider: {settings.llm_provider}")


def get_llm_service(settings: Settings = Depends(get_settings)) -> LLMInterface:
    """Provides the singleton LLMInterface instance, using injected settings."""
    global _llm_service
    if _llm_service is None:
        _llm_service = create_llm_service(settings)
    return _llm_service


def reset_singletons():
    """Resets service singletons that depend on configurable settings."""
    global _llm_service
    if _llm_service is not None:
        logger.info("Resetting LLM service singleton due to potential settings change.")
        _llm_service = None
    else:
        logger.info("reset_singletons called, but no relevant services needed resetting.")


# --- Caller identity ---

def get_current_household(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    db: sqlite3.Connection = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Household:
    """Resolves the caller's household, creating one on first contact.

    The caller is identified by the X-User-Id header; without it the
    configured DEFAULT_USER_ID is used.
    """
    user_id = (x_user_id or "").strip() or settings.DEFAULT_USER_ID
    user_name = (x_user_name or "").strip() or settings.DEFAULT_USER_NAME
    return crud.get_or_create_household(db, user_id, user_name)
