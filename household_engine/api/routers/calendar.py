"""API Router for reading Google calendars and events."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from google.oauth2.credentials import Credentials
from googleapiclient.errors import HttpError

from household_engine.api.models import CalendarEventsResponse, CalendarListResponse
from household_engine.api.routers.auth_google import get_google_credentials
from household_engine.features import google_calendar

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_credentials(credentials: Optional[Credentials]) -> Credentials:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Google authentication required. Please log in via /auth/google/login.",
        )
    return credentials


@router.get("/list", response_model=CalendarListResponse)
async def list_calendars_endpoint(credentials: Optional[Credentials] = Depends(get_google_credentials)):
    """Lists the user's Google calendars."""
    credentials = _require_credentials(credentials)
    try:
        calendars = await run_in_threadpool(google_calendar.list_calendars, credentials)
    except HttpError as e:
        logger.error(f"Google API error listing calendars: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch calendars")
    return CalendarListResponse(calendars=calendars)


@router.get("/events", response_model=CalendarEventsResponse, response_model_exclude_none=True)
async def list_events_endpoint(
    calendars: str = Query("primary", description="Comma-separated calendar ids."),
    days: int = Query(14, ge=1, le=365),
    credentials: Optional[Credentials] = Depends(get_google_credentials),
):
    """Fetches upcoming events from the selected calendars, merged and sorted by start."""
    credentials = _require_credentials(credentials)
    calendar_ids = [c.strip() for c in calendars.split(",") if c.strip()] or ["primary"]
    try:
        events, errors = await run_in_threadpool(google_calendar.fetch_events, credentials, calendar_ids, days)
    except HttpError as e:
        logger.error(f"Google API error fetching events: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch events")
    return CalendarEventsResponse(events=events, errors=errors or None)
