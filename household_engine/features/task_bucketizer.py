"""Groups upcoming tasks into display buckets relative to now."""

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from household_engine.database import crud
from household_engine.database.models import PersistedTask

logger = logging.getLogger(__name__)

DEFAULT_DAYS_AHEAD = 30


class TaskBuckets(BaseModel):
    """Tasks partitioned by due date. ``all`` keeps the overall sort order."""
    model_config = ConfigDict(populate_by_name=True)

    overdue: List[PersistedTask] = Field(default_factory=list)
    this_week: List[PersistedTask] = Field(default_factory=list, alias="thisWeek")
    next_week: List[PersistedTask] = Field(default_factory=list, alias="nextWeek")
    later: List[PersistedTask] = Field(default_factory=list)
    all: List[PersistedTask] = Field(default_factory=list)


def bucketize_tasks(tasks: Sequence[PersistedTask], now: datetime) -> TaskBuckets:
    """Partitions tasks into overdue / this week / next week / later.

    Boundaries: overdue is due < now, this week is [now, now+7d),
    next week is [now+7d, now+14d), later is >= now+14d. Input order is
    preserved within every bucket.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    week_end = now + timedelta(days=7)
    next_week_end = now + timedelta(days=14)

    buckets = TaskBuckets(all=list(tasks))
    for task in tasks:
        due = task.due_date if task.due_date.tzinfo else task.due_date.replace(tzinfo=timezone.utc)
        if due < now:
            buckets.overdue.append(task)
        elif due < week_end:
            buckets.this_week.append(task)
        elif due < next_week_end:
            buckets.next_week.append(task)
        else:
            buckets.later.append(task)
    return buckets


def get_upcoming_tasks(
    conn: sqlite3.Connection,
    household_id: int,
    days_ahead: int = DEFAULT_DAYS_AHEAD,
    include_completed: bool = False,
    now: Optional[datetime] = None,
) -> TaskBuckets:
    """Loads a household's tasks due within the lookahead window and buckets them.

    Overdue tasks have no lower bound, so past-due pending work stays visible.
    Only pending tasks are returned unless include_completed is True.
    """
    now = now or datetime.now(timezone.utc)
    window_end = now + timedelta(days=days_ahead)
    tasks = crud.get_tasks_due_before(conn, household_id, window_end, include_completed=include_completed)
    buckets = bucketize_tasks(tasks, now)
    logger.debug(
        f"Household {household_id}: {len(buckets.overdue)} overdue, {len(buckets.this_week)} this week, "
        f"{len(buckets.next_week)} next week, {len(buckets.later)} later."
    )
    return buckets
