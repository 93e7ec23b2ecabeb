"""Turns an event analysis into persisted tasks."""

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from household_engine.database import crud
from household_engine.database.models import AnalyzedEvent, AnalyzedEventCreate, TaskCreate
from household_engine.features.analysis_models import CalendarEvent, EventAnalysis, SuggestedTask

logger = logging.getLogger(__name__)


def compute_due_date(event_start: datetime, task: SuggestedTask) -> datetime:
    """Due date for a suggested task: its explicit dueDate, else event start minus daysBeforeEvent."""
    if task.due_date is not None:
        if task.due_date.tzinfo is None:
            return task.due_date.replace(tzinfo=timezone.utc)
        return task.due_date
    return event_start - timedelta(days=task.days_before_event)


def build_task_records(event_start: datetime, analysis: EventAnalysis) -> List[TaskCreate]:
    return [
        TaskCreate(
            title=task.title,
            description=task.description,
            type=task.type,
            priority=task.priority,
            due_date=compute_due_date(event_start, task),
        )
        for task in analysis.suggested_tasks
    ]


def save_analyzed_event(
    conn: sqlite3.Connection,
    household_id: int,
    event: CalendarEvent,
    analysis: EventAnalysis,
    force: bool = False,
    now: Optional[datetime] = None,
) -> AnalyzedEvent:
    """Persists the analysis of one event and its tasks.

    If the event was analyzed before and force is False, the cached record is
    returned unchanged. Otherwise the analyzed event is fully replaced and its
    tasks are swapped for the new set in a single transaction.

    Args:
        conn: An active sqlite3 database connection.
        household_id: Owner of the new record.
        event: The source calendar event.
        analysis: The analysis to store.
        force: Re-persist even if a cached analysis exists.
        now: Analysis timestamp (defaults to the current UTC time).

    Returns:
        The stored (or cached) AnalyzedEvent with its tasks.

    Raises:
        sqlite3.Error: Persistence errors propagate to the caller.
    """
    existing = crud.get_analyzed_event_by_event_id(conn, event.id)
    if existing and not force:
        logger.debug(f"Event '{event.id}' already analyzed at {existing.analyzed_at}; keeping cached result.")
        return existing

    # Missing times fall back to now, matching how undated events were stored before
    analyzed_at = now or datetime.now(timezone.utc)
    event_start = event.start_time or analyzed_at
    event_end = event.end_time or event_start

    record = AnalyzedEventCreate(
        event_id=event.id,
        household_id=household_id,
        event_title=event.title,
        event_start=event_start,
        event_end=event_end,
        event_data=event.model_dump_json(by_alias=True, exclude_none=True),
        event_type=analysis.event_type,
        requires_sitter=analysis.requires_sitter,
        requires_travel=analysis.requires_travel,
        requires_formal_attire=analysis.requires_formal_attire,
        analysis_data=analysis.model_dump_json(by_alias=True),
        analyzed_at=analyzed_at,
    )
    tasks = build_task_records(event_start, analysis)

    if existing:
        logger.info(f"Re-analyzing event '{event.id}': replacing {len(existing.tasks)} task(s) with {len(tasks)}.")
    return crud.replace_analyzed_event(conn, record, tasks)

