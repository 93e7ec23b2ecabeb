"""Runs one analysis request end to end.

Filters incoming calendar events to the relevant ones, skips events that
already have a cached analysis, dispatches the rest to the LLM, persists the
results and reads back the upcoming task buckets for the dashboard.
"""

import logging
import sqlite3
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from household_engine.core.config import Settings
from household_engine.database import crud
from household_engine.database.models import AnalyzedEvent
from household_engine.features.analysis_models import CalendarEvent
from household_engine.features.batch_dispatcher import analyze_batch_events
from household_engine.features.task_bucketizer import TaskBuckets, get_upcoming_tasks
from household_engine.features.task_materializer import save_analyzed_event
from household_engine.interfaces.llm_interface import LLMInterface

logger = logging.getLogger(__name__)


class AnalysisSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_analyzed: int = Field(default=0, alias="totalAnalyzed")
    tasks_this_week: int = Field(default=0, alias="tasksThisWeek")
    tasks_next_week: int = Field(default=0, alias="tasksNextWeek")
    high_priority_tasks: int = Field(default=0, alias="highPriorityTasks")
    overdue: int = 0


class AnalysisRunResult(BaseModel):
    analyzed: int
    skipped_cached: int = Field(default=0, alias="skippedCached")
    tasks: TaskBuckets
    summary: AnalysisSummary

    model_config = ConfigDict(populate_by_name=True)


def summarize(buckets: TaskBuckets, total_analyzed: int = 0) -> AnalysisSummary:
    return AnalysisSummary(
        total_analyzed=total_analyzed,
        tasks_this_week=len(buckets.this_week),
        tasks_next_week=len(buckets.next_week),
        high_priority_tasks=sum(1 for task in buckets.all if task.priority == "high"),
        overdue=len(buckets.overdue),
    )


def select_relevant_events(
    events: Sequence[CalendarEvent],
    now: datetime,
    lookback_days: int,
    max_events: int,
) -> List[CalendarEvent]:
    """Keeps future events and those that started within the lookback, capped at max_events.

    Events without a resolvable start are dropped.
    """
    cutoff = now - timedelta(days=lookback_days)
    relevant = [event for event in events if event.start_time is not None and event.start_time >= cutoff]
    if len(relevant) > max_events:
        logger.info(f"Limiting analysis to {max_events} of {len(relevant)} relevant events.")
    return relevant[:max_events]


def run_event_analysis(
    conn: sqlite3.Connection,
    household_id: int,
    events: Sequence[CalendarEvent],
    llm_service: LLMInterface,
    settings: Settings,
    skip_cache: bool = False,
    now: Optional[datetime] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> AnalysisRunResult:
    """Analyzes the relevant events of one request and returns the refreshed task buckets.

    Args:
        conn: An active sqlite3 database connection.
        household_id: The household the events belong to.
        events: Calendar events supplied by the caller.
        llm_service: LLM backend used for the analyses.
        settings: Application settings (pacing, caps, LLM parameters).
        skip_cache: Re-analyze events even if a cached analysis exists.
        now: Reference time (defaults to the current UTC time).
        sleep: Blocking sleep used for pacing (injectable for tests).

    Returns:
        The count of stored analyses, the task buckets and a summary.

    Raises:
        sqlite3.Error: Persistence errors abort the run.
    """
    now = now or datetime.now(timezone.utc)
    relevant = select_relevant_events(
        events, now, settings.RECENT_EVENT_LOOKBACK_DAYS, settings.MAX_EVENTS_PER_RUN
    )

    if skip_cache:
        logger.info("Skip cache enabled - re-analyzing all relevant events.")
        to_analyze = relevant
        skipped = 0
    else:
        cached_ids = crud.get_analyzed_event_ids(conn, (event.id for event in relevant))
        to_analyze = [event for event in relevant if event.id not in cached_ids]
        skipped = len(relevant) - len(to_analyze)

    logger.info(
        f"Analyzing {len(to_analyze)} event(s) for household {household_id} "
        f"({len(relevant)} relevant of {len(events)} supplied, {skipped} cached)."
    )

    household_settings = crud.get_household_settings(conn, household_id)
    analyses = analyze_batch_events(
        to_analyze,
        llm_service,
        household_settings=household_settings,
        delay_seconds=settings.ANALYSIS_DELAY_SECONDS,
        cooldown_seconds=settings.RATE_LIMIT_COOLDOWN_SECONDS,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
        sleep=sleep,
    )

    saved: List[AnalyzedEvent] = []
    for event in to_analyze:
        analysis = analyses.get(event.id)
        if analysis is None:
            continue
        saved.append(save_analyzed_event(conn, household_id, event, analysis, force=skip_cache, now=now))

    buckets = get_upcoming_tasks(conn, household_id, days_ahead=settings.TASK_LOOKAHEAD_DAYS, now=now)
    return AnalysisRunResult(
        analyzed=len(saved),
        skipped_cached=skipped,
        tasks=buckets,
        summary=summarize(buckets, total_analyzed=len(saved)),
    )
