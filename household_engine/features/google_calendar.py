"""Service functions for reading from the Google Calendar API."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError
from pydantic import ValidationError

from household_engine.features.analysis_models import CalendarEvent

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_COLOR = "#4285F4"
MAX_EVENTS_PER_CALENDAR = 50


def _calendar_service(credentials: Credentials) -> Resource:
    return build('calendar', 'v3', credentials=credentials, cache_discovery=False)


def list_calendars(credentials: Credentials) -> List[Dict[str, Any]]:
    """Lists the calendars visible to the authenticated user.

    Args:
        credentials: Authenticated Google OAuth2 credentials.

    Returns:
        One dict per calendar with id, summary, backgroundColor, primary,
        hidden, selected and accessRole.

    Raises:
        HttpError: If the Google API rejects the request.
    """
    service = _calendar_service(credentials)
    response = service.calendarList().list().execute()
    calendars = [
        {
            'id': item.get('id'),
            'summary': item.get('summary'),
            'backgroundColor': item.get('backgroundColor'),
            'primary': item.get('primary', False),
            'hidden': item.get('hidden', False),
            'selected': item.get('selected', False),
            'accessRole': item.get('accessRole'),
        }
        for item in response.get('items', [])
    ]
    logger.info(f"Fetched {len(calendars)} calendar(s) from Google.")
    return calendars


def _event_sort_key(event: Dict[str, Any]) -> Tuple[int, datetime]:
    try:
        start = CalendarEvent.model_validate(event).start_time
    except ValidationError:
        start = None
    if start is None:
        return (1, datetime.max.replace(tzinfo=timezone.utc))
    return (0, start)


def fetch_events(
    credentials: Credentials,
    calendar_ids: Sequence[str],
    days: int = 14,
    now: Optional[datetime] = None,
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Fetches upcoming events from several calendars and merges them.

    Each event is annotated with calendarSummary, calendarId and
    calendarColor. A calendar that fails to load is reported in the error
    list instead of failing the whole fetch.

    Args:
        credentials: Authenticated Google OAuth2 credentials.
        calendar_ids: Calendars to read ("primary" for the main calendar).
        days: How many days ahead of now to fetch.
        now: Start of the window (defaults to the current UTC time).

    Returns:
        A tuple of (events sorted by start time, error messages).

    Raises:
        HttpError: If the calendar list itself cannot be loaded.
    """
    now = now or datetime.now(timezone.utc)
    time_min = now.isoformat()
    time_max = (now + timedelta(days=days)).isoformat()

    service = _calendar_service(credentials)
    calendar_list = service.calendarList().list().execute()
    calendar_map = {
        item.get('id'): {
            'summary': item.get('summary'),
            'backgroundColor': item.get('backgroundColor') or DEFAULT_CALENDAR_COLOR,
        }
        for item in calendar_list.get('items', [])
    }

    all_events: List[Dict[str, Any]] = []
    errors: List[str] = []
    for calendar_id in calendar_ids:
        try:
            logger.debug(f"Fetching events for calendar '{calendar_id}' from {time_min} to {time_max}")
            response = service.events().list(
                calendarId=calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                maxResults=MAX_EVENTS_PER_CALENDAR,
                orderBy='startTime',
                singleEvents=True,
            ).execute()
        except HttpError as error:
            status = getattr(error.resp, 'status', 'unknown')
            logger.error(f"HTTP error fetching events from calendar '{calendar_id}': {error}", exc_info=True)
            errors.append(f"Failed to fetch events from {calendar_id}: {status}")
            continue
        except Exception as e:
            logger.error(f"Unexpected error fetching events from calendar '{calendar_id}': {e}", exc_info=True)
            errors.append(f"Error fetching events from {calendar_id}")
            continue

        details = calendar_map.get(calendar_id) or {
            'summary': 'Primary Calendar' if calendar_id == 'primary' else calendar_id,
            'backgroundColor': DEFAULT_CALENDAR_COLOR,
        }
        for item in response.get('items', []):
            all_events.append({
                **item,
                'calendarSummary': details['summary'],
                'calendarId': calendar_id,
                'calendarColor': details['backgroundColor'],
            })

    all_events.sort(key=_event_sort_key)
    logger.info(f"Fetched {len(all_events)} event(s) from {len(calendar_ids)} calendar(s) with {len(errors)} error(s).")
    return all_events, errors
