"""API Router for calendar event analysis."""

import logging
import sqlite3
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ValidationError

from household_engine.api.models import AnalyzeRequest
from household_engine.core.config import Settings, get_settings
from household_engine.core.dependencies import get_current_household, get_db, get_llm_service
from household_engine.database.models import Household
from household_engine.features.analysis_models import CalendarEvent
from household_engine.features.analysis_service import (
    AnalysisRunResult,
    AnalysisSummary,
    run_event_analysis,
    summarize,
)
from household_engine.features.task_bucketizer import TaskBuckets, get_upcoming_tasks
from household_engine.interfaces.llm_interface import LLMInterface

logger = logging.getLogger(__name__)
router = APIRouter()


class UpcomingTasksResponse(BaseModel):
    tasks: TaskBuckets
    summary: AnalysisSummary


def _parse_events(raw_events: list) -> List[CalendarEvent]:
    events = []
    for index, raw in enumerate(raw_events):
        try:
            events.append(CalendarEvent.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping malformed calendar event at index {index}: {e.error_count()} validation error(s).")
    return events


@router.post("/analyze", response_model=AnalysisRunResult)
async def analyze_events_endpoint(
    request: AnalyzeRequest,
    db: sqlite3.Connection = Depends(get_db),
    household: Household = Depends(get_current_household),
    settings: Settings = Depends(get_settings),
    llm_service: LLMInterface = Depends(get_llm_service),
):
    """Analyzes the supplied calendar events and returns the refreshed task buckets."""
    if not isinstance(request.events, list):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid events data")

    events = _parse_events(request.events)
    logger.info(
        f"Received {len(request.events)} event(s) for analysis from household {household.id} "
        f"(skip_cache={request.skip_cache})."
    )
    try:
        # The dispatcher sleeps between LLM calls, keep it off the event loop
        return await run_in_threadpool(
            run_event_analysis,
            db,
            household.id,
            events,
            llm_service,
            settings,
            skip_cache=request.skip_cache,
        )
    except sqlite3.Error as e:
        logger.error(f"Database error while analyzing events for household {household.id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to analyze events")


@router.get("/analyze", response_model=UpcomingTasksResponse)
def get_upcoming_tasks_endpoint(
    db: sqlite3.Connection = Depends(get_db),
    household: Household = Depends(get_current_household),
    settings: Settings = Depends(get_settings),
):
    """Returns the household's upcoming task buckets without analyzing anything."""
    try:
        buckets = get_upcoming_tasks(db, household.id, days_ahead=settings.TASK_LOOKAHEAD_DAYS)
    except sqlite3.Error as e:
        logger.error(f"Database error while loading tasks for household {household.id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch tasks")
    return UpcomingTasksResponse(tasks=buckets, summary=summarize(buckets))
