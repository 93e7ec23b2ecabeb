"""Development-only maintenance endpoints."""

import logging
import sqlite3

from fastapi import APIRouter, Depends, HTTPException, status

from household_engine.api.models import FlushResponse
from household_engine.core.config import Settings, get_settings
from household_engine.core.dependencies import get_current_household, get_db
from household_engine.database import crud
from household_engine.database.models import Household

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/flush", response_model=FlushResponse)
def flush_cache(
    settings: Settings = Depends(get_settings),
    db: sqlite3.Connection = Depends(get_db),
    household: Household = Depends(get_current_household),
):
    """Deletes every analyzed event and task of the caller's household."""
    if settings.environment != "development":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This endpoint is only available in development")
    try:
        deleted_tasks, deleted_events = crud.flush_household_cache(db, household.id)
    except sqlite3.Error as e:
        logger.error(f"Database error while flushing household {household.id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to flush cache")
    return FlushResponse(
        success=True,
        deleted_tasks=deleted_tasks,
        deleted_events=deleted_events,
        message=f"Flushed {deleted_events} analyzed events and {deleted_tasks} tasks",
    )
