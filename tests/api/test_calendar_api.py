"""Integration tests for the Google Calendar API endpoints."""

import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient
from google.oauth2.credentials import Credentials

from household_engine.main import app
from household_engine.api.routers.auth_google import get_google_credentials


@pytest.fixture
def authed_client():
    credentials = MagicMock(spec=Credentials)
    app.dependency_overrides[get_google_credentials] = lambda: credentials
    yield TestClient(app), credentials
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client():
    app.dependency_overrides[get_google_credentials] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.parametrize("path", ["/api/calendar/list", "/api/calendar/events"])
def test_calendar_endpoints_require_credentials(anonymous_client, path):
    response = anonymous_client.get(path)
    assert response.status_code == 401


def test_list_calendars_endpoint(authed_client):
    client, credentials = authed_client
    calendars = [{'id': 'primary-id', 'summary': 'Me', 'backgroundColor': '#123456',
                  'primary': True, 'hidden': False, 'selected': True, 'accessRole': 'owner'}]
    with patch('household_engine.api.routers.calendar.google_calendar.list_calendars', return_value=calendars) as mock_list:
        response = client.get("/api/calendar/list")

    assert response.status_code == 200
    assert response.json() == {"calendars": calendars}
    mock_list.assert_called_once_with(credentials)


def test_list_events_endpoint_splits_calendar_ids(authed_client):
    client, credentials = authed_client
    events = [{'id': 'evt-1', 'calendarId': 'primary'}]
    with patch('household_engine.api.routers.calendar.google_calendar.fetch_events', return_value=(events, [])) as mock_fetch:
        response = client.get("/api/calendar/events", params={"calendars": "primary, family-id", "days": 7})

    assert response.status_code == 200
    assert response.json() == {"events": events}
    mock_fetch.assert_called_once_with(credentials, ['primary', 'family-id'], 7)


def test_list_events_endpoint_reports_partial_errors(authed_client):
    client, _ = authed_client
    with patch('household_engine.api.routers.calendar.google_calendar.fetch_events',
               return_value=([], ['Failed to fetch events from broken: 403'])):
        response = client.get("/api/calendar/events", params={"calendars": "broken"})

    assert response.status_code == 200
    assert response.json()["errors"] == ['Failed to fetch events from broken: 403']


def test_list_events_endpoint_defaults(authed_client):
    client, credentials = authed_client
    with patch('household_engine.api.routers.calendar.google_calendar.fetch_events', return_value=([], [])) as mock_fetch:
        client.get("/api/calendar/events")

    mock_fetch.assert_called_once_with(credentials, ['primary'], 14)
