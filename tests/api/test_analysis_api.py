"""Integration tests for the analysis, tasks, settings and dev API endpoints."""

import json
import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from household_engine.main import app
from household_engine.core.config import Settings, get_settings
from household_engine.core.dependencies import get_db, get_llm_service
from household_engine.database import crud
from household_engine.interfaces.llm_interface import LLMInterface

ANALYSIS_REPLY = json.dumps({
    "eventType": "social",
    "requiresSitter": True,
    "suggestedTasks": [
        {"title": "Buy gift", "type": "shopping", "priority": "high", "daysBeforeEvent": 7},
    ],
    "confidence": 0.9,
})


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, environment="development", ANALYSIS_DELAY_SECONDS=0, DEFAULT_USER_ID="local-user")


@pytest.fixture
def mock_llm_service():
    llm = MagicMock(spec=LLMInterface)
    llm.generate.return_value = ANALYSIS_REPLY
    return llm


@pytest.fixture
def client(db_conn, test_settings, mock_llm_service):
    app.dependency_overrides[get_db] = lambda: db_conn
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_llm_service] = lambda: mock_llm_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _event(event_id, days_from_now):
    start = datetime.now(timezone.utc) + timedelta(days=days_from_now)
    return {
        "id": event_id,
        "summary": "Birthday Party",
        "start": {"dateTime": start.isoformat()},
        "end": {"dateTime": (start + timedelta(hours=3)).isoformat()},
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_analyze_events_endpoint(client, db_conn, mock_llm_service):
    response = client.post("/api/calendar/analyze", json={"events": [_event("party", 10)]})

    assert response.status_code == 200
    data = response.json()
    assert data["analyzed"] == 1
    assert data["skippedCached"] == 0
    assert [t["title"] for t in data["tasks"]["thisWeek"]] == ["Buy gift"]
    assert data["summary"]["totalAnalyzed"] == 1
    assert data["summary"]["highPriorityTasks"] == 1
    mock_llm_service.generate.assert_called_once()

    household = crud.get_household_for_user(db_conn, "local-user")
    assert household is not None
    assert crud.get_analyzed_event_by_event_id(db_conn, "party").household_id == household.id


def test_analyze_events_uses_cache_on_repeat(client, mock_llm_service):
    client.post("/api/calendar/analyze", json={"events": [_event("party", 10)]})
    response = client.post("/api/calendar/analyze", json={"events": [_event("party", 10)]})

    assert response.status_code == 200
    assert response.json()["analyzed"] == 0
    assert response.json()["skippedCached"] == 1
    assert mock_llm_service.generate.call_count == 1


def test_analyze_events_skip_cache(client, mock_llm_service):
    client.post("/api/calendar/analyze", json={"events": [_event("party", 10)]})
    response = client.post("/api/calendar/analyze", json={"events": [_event("party", 10)], "skipCache": True})

    assert response.json()["analyzed"] == 1
    assert mock_llm_service.generate.call_count == 2


@pytest.mark.parametrize("body", [{"events": "not-a-list"}, {"events": {"id": "x"}}, {}])
def test_analyze_events_rejects_non_list(client, body, mock_llm_service):
    response = client.post("/api/calendar/analyze", json=body)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid events data"
    mock_llm_service.generate.assert_not_called()


def test_analyze_events_skips_malformed_entries(client):
    response = client.post("/api/calendar/analyze", json={"events": [{"summary": "no id"}, _event("party", 10)]})

    assert response.status_code == 200
    assert response.json()["analyzed"] == 1


def test_analyze_events_database_error_returns_500(client):
    with patch("household_engine.api.routers.analysis.run_event_analysis", side_effect=sqlite3.OperationalError("locked")):
        response = client.post("/api/calendar/analyze", json={"events": []})

    assert response.status_code == 500


def test_get_upcoming_tasks(client):
    client.post("/api/calendar/analyze", json={"events": [_event("party", 10)]})

    response = client.get("/api/calendar/analyze")

    assert response.status_code == 200
    data = response.json()
    assert len(data["tasks"]["all"]) == 1
    assert data["summary"]["tasksThisWeek"] == 1


def test_user_header_selects_household(client, db_conn):
    client.post("/api/calendar/analyze", json={"events": [_event("party", 10)]}, headers={"X-User-Id": "alice"})

    assert client.get("/api/calendar/analyze", headers={"X-User-Id": "alice"}).json()["tasks"]["all"]
    assert client.get("/api/calendar/analyze", headers={"X-User-Id": "bob"}).json()["tasks"]["all"] == []


# --- Tasks ---

def _first_task_id(client):
    client.post("/api/calendar/analyze", json={"events": [_event("party", 10)]})
    return client.get("/api/calendar/analyze").json()["tasks"]["all"][0]["id"]


@pytest.mark.parametrize("action,status", [("complete", "completed"), ("dismiss", "dismissed")])
def test_task_status_endpoints(client, action, status):
    task_id = _first_task_id(client)

    response = client.post(f"/api/tasks/{task_id}/{action}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "taskId": task_id, "status": status}
    assert client.get("/api/calendar/analyze").json()["tasks"]["all"] == []


def test_task_status_unknown_task(client):
    assert client.post("/api/tasks/9999/complete").status_code == 404


def test_task_status_other_household(client):
    task_id = _first_task_id(client)
    response = client.post(f"/api/tasks/{task_id}/complete", headers={"X-User-Id": "someone-else"})
    assert response.status_code == 404


# --- Settings ---

def test_settings_get_defaults(client):
    response = client.get("/api/settings")

    assert response.status_code == 200
    assert response.json()["book_flights_days_ahead"] == 60
    assert response.json()["family_members"] == []


def test_settings_partial_update(client):
    client.post("/api/settings", json={"home_city": "Portland"})
    response = client.post(
        "/api/settings",
        json={"family_members": [{"name": "Ava", "relationship": "daughter", "age": 6}], "sitter_start_time": 19},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["home_city"] == "Portland"
    assert data["sitter_start_time"] == 19
    assert data["family_members"] == [{"name": "Ava", "relationship": "daughter", "age": 6}]
    assert client.get("/api/settings").json() == data


def test_settings_rejects_invalid_values(client):
    assert client.post("/api/settings", json={"sitter_start_time": 30}).status_code == 422


def test_settings_rejects_null_list_field(client):
    client.post("/api/settings", json={"selected_calendars": ["family-id"]})

    response = client.post("/api/settings", json={"selected_calendars": None})

    assert response.status_code == 422
    assert client.get("/api/settings").json()["selected_calendars"] == ["family-id"]


def test_llm_settings_update(client, test_settings):
    with patch("household_engine.api.routers.settings.set_ui_default_model") as mock_set_model, \
         patch("household_engine.api.routers.settings.set_ui_ollama_url") as mock_set_url, \
         patch("household_engine.api.routers.settings.reset_singletons") as mock_reset, \
         patch("household_engine.api.routers.settings.get_settings", return_value=test_settings):
        response = client.post("/api/settings/llm", json={"default_model": "gpt-4o"})

    assert response.status_code == 200
    assert response.json()["llm_provider"] == "openai"
    mock_set_model.assert_called_once_with("gpt-4o")
    mock_set_url.assert_not_called()
    mock_reset.assert_called_once()


# --- Dev ---

def test_flush_in_development(client, db_conn):
    client.post("/api/calendar/analyze", json={"events": [_event("party", 10), _event("dinner", 3)]})

    response = client.post("/api/dev/flush")

    assert response.status_code == 200
    assert response.json()["deletedEvents"] == 2
    assert response.json()["deletedTasks"] == 2
    assert db_conn.execute("SELECT COUNT(*) FROM analyzed_events").fetchone()[0] == 0


def test_flush_forbidden_outside_development(client, test_settings):
    test_settings.environment = "production"
    assert client.post("/api/dev/flush").status_code == 403
