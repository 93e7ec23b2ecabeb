"""Unit tests for the Google Calendar service functions."""

import pytest
from unittest.mock import MagicMock, patch
from datetime import datetime, timezone

from google.oauth2.credentials import Credentials
from googleapiclient.errors import HttpError

from household_engine.features.google_calendar import fetch_events, list_calendars

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_google_credentials():
    """Fixture for mocked Google Credentials."""
    return MagicMock(spec=Credentials)


@pytest.fixture
def mock_google_build_service():
    """Fixture to mock googleapiclient.discovery.build."""
    with patch('household_engine.features.google_calendar.build') as mock_build:
        yield mock_build


def _http_error(status: int) -> HttpError:
    resp = MagicMock()
    resp.status = status
    resp.reason = "Forbidden"
    return HttpError(resp, b'{"error": {"message": "Forbidden"}}')


def test_list_calendars(mock_google_credentials, mock_google_build_service):
    service = mock_google_build_service.return_value
    service.calendarList.return_value.list.return_value.execute.return_value = {
        'items': [
            {'id': 'primary-id', 'summary': 'Me', 'backgroundColor': '#123456', 'primary': True, 'accessRole': 'owner'},
            {'id': 'family-id', 'summary': 'Family', 'selected': True, 'accessRole': 'writer'},
        ]
    }

    calendars = list_calendars(mock_google_credentials)

    assert calendars[0] == {
        'id': 'primary-id', 'summary': 'Me', 'backgroundColor': '#123456',
        'primary': True, 'hidden': False, 'selected': False, 'accessRole': 'owner',
    }
    assert calendars[1]['primary'] is False
    assert calendars[1]['selected'] is True
    mock_google_build_service.assert_called_once_with(
        'calendar', 'v3', credentials=mock_google_credentials, cache_discovery=False
    )


def test_list_calendars_http_error_propagates(mock_google_credentials, mock_google_build_service):
    service = mock_google_build_service.return_value
    service.calendarList.return_value.list.return_value.execute.side_effect = _http_error(403)

    with pytest.raises(HttpError):
        list_calendars(mock_google_credentials)


def test_fetch_events_merges_annotates_and_sorts(mock_google_credentials, mock_google_build_service):
    service = mock_google_build_service.return_value
    service.calendarList.return_value.list.return_value.execute.return_value = {
        'items': [{'id': 'family-id', 'summary': 'Family', 'backgroundColor': '#00ff00'}]
    }
    responses = {
        'primary': {'items': [{'id': 'late', 'start': {'dateTime': '2025-06-05T09:00:00Z'}}]},
        'family-id': {'items': [
            {'id': 'early', 'start': {'dateTime': '2025-06-02T09:00:00Z'}},
            {'id': 'all-day', 'start': {'date': '2025-06-03'}},
        ]},
    }
    service.events.return_value.list.side_effect = (
        lambda **kwargs: MagicMock(execute=MagicMock(return_value=responses[kwargs['calendarId']]))
    )

    events, errors = fetch_events(mock_google_credentials, ['primary', 'family-id'], days=14, now=NOW)

    assert errors == []
    assert [e['id'] for e in events] == ['early', 'all-day', 'late']
    early = events[0]
    assert early['calendarId'] == 'family-id'
    assert early['calendarSummary'] == 'Family'
    assert early['calendarColor'] == '#00ff00'
    late = events[2]
    assert late['calendarSummary'] == 'Primary Calendar'
    assert late['calendarColor'] == '#4285F4'

    first_call = service.events.return_value.list.call_args_list[0].kwargs
    assert first_call['timeMin'] == NOW.isoformat()
    assert first_call['timeMax'] == datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc).isoformat()
    assert first_call['singleEvents'] is True
    assert first_call['orderBy'] == 'startTime'
    assert first_call['maxResults'] == 50


def test_fetch_events_collects_per_calendar_errors(mock_google_credentials, mock_google_build_service):
    service = mock_google_build_service.return_value
    service.calendarList.return_value.list.return_value.execute.return_value = {'items': []}

    def list_events(**kwargs):
        if kwargs['calendarId'] == 'broken':
            return MagicMock(execute=MagicMock(side_effect=_http_error(403)))
        return MagicMock(execute=MagicMock(return_value={'items': [{'id': 'ok', 'start': {'date': '2025-06-02'}}]}))

    service.events.return_value.list.side_effect = list_events

    events, errors = fetch_events(mock_google_credentials, ['broken', 'primary'], now=NOW)

    assert [e['id'] for e in events] == ['ok']
    assert errors == ['Failed to fetch events from broken: 403']


def test_fetch_events_events_without_start_sort_last(mock_google_credentials, mock_google_build_service):
    service = mock_google_build_service.return_value
    service.calendarList.return_value.list.return_value.execute.return_value = {'items': []}
    service.events.return_value.list.return_value.execute.return_value = {
        'items': [{'id': 'undated'}, {'id': 'dated', 'start': {'dateTime': '2025-06-02T09:00:00Z'}}]
    }

    events, _ = fetch_events(mock_google_credentials, ['primary'], now=NOW)

    assert [e['id'] for e in events] == ['dated', 'undated']
