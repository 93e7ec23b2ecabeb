"""Unit tests for the sequential batch dispatcher."""

import pytest
from unittest.mock import MagicMock, patch, call

from household_engine.features.batch_dispatcher import analyze_batch_events
from household_engine.features.analysis_models import CalendarEvent, EventAnalysis
from household_engine.database.models import HouseholdSettings
from household_engine.interfaces.llm_interface import LLMInterface, RateLimitExceeded


@pytest.fixture
def mock_llm_service():
    return MagicMock(spec=LLMInterface)


@pytest.fixture
def mock_analyze():
    with patch('household_engine.features.batch_dispatcher.analyze_calendar_event') as mock_fn:
        yield mock_fn


def _event(event_id: str) -> CalendarEvent:
    return CalendarEvent.model_validate({
        "id": event_id,
        "summary": f"Event {event_id}",
        "start": {"dateTime": "2025-06-14T18:00:00Z"},
    })


def _analysis(event_type: str = "work") -> EventAnalysis:
    return EventAnalysis(event_type=event_type, suggested_tasks=[], confidence=0.8)


def test_analyze_batch_events_empty_input(mock_llm_service, mock_analyze):
    sleep = MagicMock()
    assert analyze_batch_events([], mock_llm_service, sleep=sleep) == {}
    mock_analyze.assert_not_called()
    sleep.assert_not_called()


def test_analyze_batch_events_delays_between_events(mock_llm_service, mock_analyze):
    sleep = MagicMock()
    mock_analyze.side_effect = lambda event, *args, **kwargs: _analysis()
    events = [_event("a"), _event("b"), _event("c")]

    results = analyze_batch_events(events, mock_llm_service, delay_seconds=1.5, sleep=sleep)

    assert set(results) == {"a", "b", "c"}
    # One pause between each consecutive pair, none before the first
    assert sleep.call_args_list == [call(1.5), call(1.5)]
    assert [c.args[0].id for c in mock_analyze.call_args_list] == ["a", "b", "c"]


def test_analyze_batch_events_passes_settings_and_llm_parameters(mock_llm_service, mock_analyze):
    mock_analyze.return_value = _analysis()
    household_settings = HouseholdSettings(home_city="Portland")

    analyze_batch_events(
        [_event("a")], mock_llm_service, household_settings=household_settings,
        temperature=0.1, max_tokens=256, sleep=MagicMock(),
    )

    mock_analyze.assert_called_once()
    args, kwargs = mock_analyze.call_args
    assert args[0].id == "a"
    assert args[1] is mock_llm_service
    assert args[2] is household_settings
    assert kwargs == {"temperature": 0.1, "max_tokens": 256}


def test_analyze_batch_events_retries_rate_limited_event(mock_llm_service, mock_analyze):
    sleep = MagicMock()
    mock_analyze.side_effect = [RateLimitExceeded("429"), _analysis("social")]

    results = analyze_batch_events([_event("a")], mock_llm_service, cooldown_seconds=60, sleep=sleep)

    assert len(results) == 1
    assert results["a"].event_type == "social"
    assert mock_analyze.call_count == 2
    sleep.assert_called_once_with(60)


def test_analyze_batch_events_retries_until_success(mock_llm_service, mock_analyze):
    sleep = MagicMock()
    mock_analyze.side_effect = [RateLimitExceeded(), RateLimitExceeded(), RateLimitExceeded(), _analysis()]

    results = analyze_batch_events([_event("a")], mock_llm_service, cooldown_seconds=5, sleep=sleep)

    assert results["a"].event_type == "work"
    assert sleep.call_args_list == [call(5), call(5), call(5)]


def test_analyze_batch_events_rate_limit_then_next_event(mock_llm_service, mock_analyze):
    sleep = MagicMock()
    mock_analyze.side_effect = [RateLimitExceeded(), _analysis("social"), _analysis("family")]

    results = analyze_batch_events(
        [_event("a"), _event("b")], mock_llm_service, delay_seconds=1.5, cooldown_seconds=60, sleep=sleep,
    )

    assert results["a"].event_type == "social"
    assert results["b"].event_type == "family"
    assert sleep.call_args_list == [call(60), call(1.5)]


def test_analyze_batch_events_other_errors_give_default(mock_llm_service, mock_analyze):
    sleep = MagicMock()
    mock_analyze.side_effect = [RuntimeError("boom"), _analysis("travel")]

    results = analyze_batch_events([_event("a"), _event("b")], mock_llm_service, sleep=sleep)

    assert results["a"].event_type == "other"
    assert results["a"].suggested_tasks == []
    assert results["a"].confidence == pytest.approx(0.1)
    assert results["b"].event_type == "travel"
    assert mock_analyze.call_count == 2


def test_analyze_batch_events_result_independent_of_order(mock_llm_service, mock_analyze):
    by_id = {"a": _analysis("work"), "b": _analysis("social"), "c": _analysis("family")}
    mock_analyze.side_effect = lambda event, *args, **kwargs: by_id[event.id]
    events = [_event("a"), _event("b"), _event("c")]

    forward = analyze_batch_events(events, mock_llm_service, sleep=MagicMock())
    backward = analyze_batch_events(list(reversed(events)), mock_llm_service, sleep=MagicMock())

    assert forward == backward
