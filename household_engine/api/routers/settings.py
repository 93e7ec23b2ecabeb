"""API Router for household and LLM settings."""

import logging
import sqlite3

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from household_engine.api.models import HouseholdSettingsUpdate, LLMSettingsResponse, LLMSettingsUpdate
from household_engine.core.config import Settings, get_settings, set_ui_default_model, set_ui_ollama_url
from household_engine.core.dependencies import get_current_household, get_db, reset_singletons
from household_engine.database import crud
from household_engine.database.models import Household, HouseholdSettings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=HouseholdSettings)
def get_household_settings(
    db: sqlite3.Connection = Depends(get_db),
    household: Household = Depends(get_current_household),
):
    """Returns the caller's household settings (defaults if none stored)."""
    try:
        return crud.get_household_settings(db, household.id)
    except sqlite3.Error as e:
        logger.error(f"Database error while loading settings for household {household.id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load settings")


@router.post("", response_model=HouseholdSettings)
def update_household_settings(
    update: HouseholdSettingsUpdate,
    db: sqlite3.Connection = Depends(get_db),
    household: Household = Depends(get_current_household),
):
    """Merges the submitted fields into the stored settings and saves them."""
    changes = update.model_dump(exclude_unset=True)
    logger.info(f"Received settings update for household {household.id}: fields {sorted(changes)}")
    try:
        current = crud.get_household_settings(db, household.id)
        merged = HouseholdSettings.model_validate({**current.model_dump(), **changes})
        return crud.upsert_household_settings(db, household.id, merged)
    except ValidationError as e:
        logger.warning(f"Rejected settings update for household {household.id}: {e}")
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid settings values")
    except sqlite3.Error as e:
        logger.error(f"Database error while saving settings for household {household.id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save settings")


@router.post("/llm", response_model=LLMSettingsResponse)
def update_llm_settings(update: LLMSettingsUpdate):
    """Persists LLM overrides and resets the LLM client so new requests pick them up."""
    logger.info(f"Received LLM settings update: URL='{update.ollama_base_url}', Model='{update.default_model}'")
    if update.ollama_base_url is not None:
        set_ui_ollama_url(update.ollama_base_url)
    if update.default_model is not None:
        set_ui_default_model(update.default_model)
    reset_singletons()

    updated: Settings = get_settings()
    active_model = updated.OPENAI_CHAT_MODEL_NAME if updated.llm_provider == "openai" else updated.default_model
    return LLMSettingsResponse(
        llm_provider=updated.llm_provider,
        default_model=active_model,
        ollama_base_url=updated.ollama_base_url,
        message="Settings updated successfully. Changes will apply to new requests.",
    )
