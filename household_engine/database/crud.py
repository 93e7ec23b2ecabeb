"""CRUD (Create, Read, Update, Delete) operations for the database.

This module contains functions for interacting with the database tables.
"""

import json
import sqlite3
import logging
from typing import Iterable, List, Optional, Set, Tuple
from datetime import datetime, timezone
from pathlib import Path

from household_engine.database.schema import ALL_TABLES
from household_engine.database.models import (
    AnalyzedEvent,
    AnalyzedEventCreate,
    Household,
    HouseholdSettings,
    PersistedTask,
    TaskCreate,
)

logger = logging.getLogger(__name__)

_SETTINGS_JSON_FIELDS = ("selected_calendars", "family_members", "sitter_exceptions", "preferred_airports")

_TASK_COLUMNS = """
    t.id, t.analyzed_event_id, t.household_id, t.title, t.description, t.type,
    t.priority, t.due_date, t.status, t.completed_at, t.dismissed_at, t.created_at,
    e.event_title AS event_title, e.event_start AS event_start
"""

# Priority rank used for tie-breaking tasks due at the same instant
_PRIORITY_ORDER_SQL = "CASE t.priority WHEN 'high' THEN 0 WHEN 'medium' THEN 1 ELSE 2 END"


def to_db_timestamp(value: datetime) -> str:
    """Formats a datetime as fixed-width ISO 8601 UTC text.

    Fixed width keeps lexicographic order equal to chronological order, which
    the due-date range queries rely on. Naive datetimes are treated as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def create_tables(conn: sqlite3.Connection) -> None:
    """Creates all tables and indexes on an open connection if they don't exist."""
    with conn:
        cursor = conn.cursor()
        for table_sql in ALL_TABLES:
            cursor.execute(table_sql)


def connect(db_path: str | Path) -> sqlite3.Connection:
    """Opens a connection configured the way the CRUD functions expect.

    Rows come back as sqlite3.Row and foreign keys are enforced, which the
    analyzed event -> task cascade depends on.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def initialize_database(db_path: str | Path) -> None:
    """Initializes the database by creating tables if they don't exist.

    Args:
        db_path: The path to the SQLite database file.
    """
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = sqlite3.connect(str(db_path))
        try:
            create_tables(conn)
            logger.info(f"Database tables initialized successfully at {db_path}.")
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error(f"Error initializing database tables at {db_path}: {e}", exc_info=True)
        raise


# --- Households ---

def get_household_for_user(conn: sqlite3.Connection, user_id: str) -> Optional[Household]:
    """Retrieves the household a user belongs to.

    Args:
        conn: An active sqlite3 database connection.
        user_id: The external user identifier.

    Returns:
        The Household or None if the user has none yet.

    Raises:
        sqlite3.Error: For database errors during query.
    """
    sql = """SELECT h.id, h.name, h.created_at
             FROM households h JOIN household_users u ON u.household_id = h.id
             WHERE u.user_id = ?"""
    try:
        row = conn.execute(sql, (user_id,)).fetchone()
        return Household.model_validate(dict(row)) if row else None
    except sqlite3.Error as e:
        logger.error(f"Error retrieving household for user '{user_id}': {e}", exc_info=True)
        raise


def create_household(conn: sqlite3.Connection, user_id: str, user_name: Optional[str] = None) -> Household:
    """Creates a household, links the user to it and stores default settings.

    All three inserts run in one transaction.

    Raises:
        sqlite3.Error: For database errors during insertion.
    """
    name = f"{user_name or 'My'} Household"
    try:
        with conn:
            cursor = conn.cursor()
            cursor.execute("INSERT INTO households (name) VALUES (?)", (name,))
            household_id = cursor.lastrowid
            cursor.execute(
                "INSERT INTO household_users (user_id, household_id, name) VALUES (?, ?, ?)",
                (user_id, household_id, user_name),
            )
            cursor.execute("INSERT INTO household_settings (household_id) VALUES (?)", (household_id,))
        logger.info(f"Created household {household_id} ('{name}') for user '{user_id}'")
    except sqlite3.Error as e:
        logger.error(f"Error creating household for user '{user_id}': {e}", exc_info=True)
        raise

    household = get_household_for_user(conn, user_id)
    if household is None:
        # Only possible if the row vanished between commit and read
        raise sqlite3.DatabaseError(f"Household for user '{user_id}' missing right after creation")
    return household


def get_or_create_household(conn: sqlite3.Connection, user_id: str, user_name: Optional[str] = None) -> Household:
    """Returns the user's household, creating one on first use."""
    household = get_household_for_user(conn, user_id)
    if household:
        return household
    return create_household(conn, user_id, user_name)


# --- Household settings ---

def _row_to_settings(row: sqlite3.Row) -> HouseholdSettings:
    data = dict(row)
    data.pop("updated_at", None)
    for key in _SETTINGS_JSON_FIELDS:
        raw = data.get(key)
        if raw:
            try:
                data[key] = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Could not parse stored JSON for setting '{key}' of household {data.get('household_id')}. Using empty list.")
                data[key] = []
        else:
            data[key] = []
    return HouseholdSettings.model_validate(data)


def get_household_settings(conn: sqlite3.Connection, household_id: int) -> HouseholdSettings:
    """Retrieves the settings of a household.

    Returns default settings when no row has been stored yet.

    Raises:
        sqlite3.Error: For database errors during query.
    """
    sql = "SELECT * FROM household_settings WHERE household_id = ?"
    try:
        row = conn.execute(sql, (household_id,)).fetchone()
    except sqlite3.Error as e:
        logger.error(f"Error retrieving settings for household {household_id}: {e}", exc_info=True)
        raise
    if row is None:
        logger.debug(f"No stored settings for household {household_id}, using defaults.")
        return HouseholdSettings(household_id=household_id)
    return _row_to_settings(row)


def upsert_household_settings(conn: sqlite3.Connection, household_id: int, settings: HouseholdSettings) -> HouseholdSettings:
    """Creates or fully replaces the settings row of a household.

    Args:
        conn: An active sqlite3 database connection.
        household_id: The household the settings belong to.
        settings: The complete settings to store.

    Returns:
        The stored settings as read back from the database.

    Raises:
        sqlite3.Error: For database errors during the upsert.
    """
    data = settings.model_dump(exclude={"household_id"})
    for key in _SETTINGS_JSON_FIELDS:
        data[key] = json.dumps(data[key]) if data[key] else None

    columns = list(data.keys())
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{col} = excluded.{col}" for col in columns)
    sql = f"""INSERT INTO household_settings (household_id, {', '.join(columns)}, updated_at)
              VALUES (?, {placeholders}, ?)
              ON CONFLICT(household_id) DO UPDATE SET {updates}, updated_at = excluded.updated_at"""
    try:
        with conn:
            conn.execute(sql, (household_id, *data.values(), to_db_timestamp(datetime.now(timezone.utc))))
        logger.info(f"Saved settings for household {household_id}")
    except sqlite3.Error as e:
        logger.error(f"Error saving settings for household {household_id}: {e}", exc_info=True)
        raise
    return get_household_settings(conn, household_id)


# --- Analyzed events ---

def get_tasks_for_analyzed_event(conn: sqlite3.Connection, analyzed_event_id: int) -> List[PersistedTask]:
    """Retrieves all tasks owned by an analyzed event, in due order."""
    sql = f"""SELECT {_TASK_COLUMNS}
              FROM suggested_tasks t JOIN analyzed_events e ON e.id = t.analyzed_event_id
              WHERE t.analyzed_event_id = ?
              ORDER BY t.due_date ASC, {_PRIORITY_ORDER_SQL} ASC, t.id ASC"""
    try:
        rows = conn.execute(sql, (analyzed_event_id,)).fetchall()
        return [PersistedTask.model_validate(dict(row)) for row in rows]
    except sqlite3.Error as e:
        logger.error(f"Error retrieving tasks for analyzed event {analyzed_event_id}: {e}", exc_info=True)
        raise


def get_analyzed_event_by_event_id(conn: sqlite3.Connection, event_id: str) -> Optional[AnalyzedEvent]:
    """Retrieves the cached analysis of an external calendar event, with its tasks.

    Args:
        conn: An active sqlite3 database connection.
        event_id: The external (Google) event id.

    Returns:
        The AnalyzedEvent or None if the event has not been analyzed.

    Raises:
        sqlite3.Error: For database errors during query.
    """
    sql = "SELECT * FROM analyzed_events WHERE event_id = ?"
    try:
        row = conn.execute(sql, (event_id,)).fetchone()
    except sqlite3.Error as e:
        logger.error(f"Error retrieving analyzed event '{event_id}': {e}", exc_info=True)
        raise
    if row is None:
        logger.debug(f"Analyzed event '{event_id}' not found.")
        return None
    analyzed_event = AnalyzedEvent.model_validate(dict(row))
    analyzed_event.tasks = get_tasks_for_analyzed_event(conn, analyzed_event.id)
    return analyzed_event


def get_analyzed_event_ids(conn: sqlite3.Connection, event_ids: Iterable[str]) -> Set[str]:
    """Returns the subset of the given external event ids that already have an analysis."""
    event_ids = list(event_ids)
    if not event_ids:
        return set()
    placeholders = ", ".join("?" * len(event_ids))
    sql = f"SELECT event_id FROM analyzed_events WHERE event_id IN ({placeholders})"
    try:
        rows = conn.execute(sql, event_ids).fetchall()
        return {row["event_id"] for row in rows}
    except sqlite3.Error as e:
        logger.error(f"Error checking analyzed events {event_ids}: {e}", exc_info=True)
        raise


def replace_analyzed_event(
    conn: sqlite3.Connection,
    analyzed_event: AnalyzedEventCreate,
    tasks: List[TaskCreate],
) -> AnalyzedEvent:
    """Upserts an analyzed event and replaces all of its tasks atomically.

    The upsert, the delete of the previous tasks and the insert of the new
    ones share one transaction: either the new analysis with exactly the new
    task set is stored, or nothing changes.

    Args:
        conn: An active sqlite3 database connection.
        analyzed_event: The analysis record, keyed by its external event_id.
        tasks: The complete new task set for the event.

    Returns:
        The stored AnalyzedEvent including its tasks.

    Raises:
        sqlite3.Error: If any statement fails. The transaction is rolled back.
    """
    upsert_sql = """
        INSERT INTO analyzed_events (
            event_id, household_id, event_title, event_start, event_end, event_data,
            event_type, requires_sitter, requires_travel, requires_formal_attire,
            analysis_data, analyzed_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(event_id) DO UPDATE SET
            event_title = excluded.event_title,
            event_start = excluded.event_start,
            event_end = excluded.event_end,
            event_data = excluded.event_data,
            event_type = excluded.event_type,
            requires_sitter = excluded.requires_sitter,
            requires_travel = excluded.requires_travel,
            requires_formal_attire = excluded.requires_formal_attire,
            analysis_data = excluded.analysis_data,
            analyzed_at = excluded.analyzed_at
    """
    insert_task_sql = """INSERT INTO suggested_tasks
        (analyzed_event_id, household_id, title, description, type, priority, due_date, status)
        VALUES (?, ?, ?, ?, ?, ?, ?, 'pending')"""

    try:
        with conn: # One transaction for upsert + delete + insert
            cursor = conn.cursor()
            cursor.execute(
                upsert_sql,
                (
                    analyzed_event.event_id,
                    analyzed_event.household_id,
                    analyzed_event.event_title,
                    to_db_timestamp(analyzed_event.event_start),
                    to_db_timestamp(analyzed_event.event_end),
                    analyzed_event.event_data,
                    analyzed_event.event_type,
                    analyzed_event.requires_sitter,
                    analyzed_event.requires_travel,
                    analyzed_event.requires_formal_attire,
                    analyzed_event.analysis_data,
                    to_db_timestamp(analyzed_event.analyzed_at),
                ),
            )
            row = cursor.execute(
                "SELECT id, household_id FROM analyzed_events WHERE event_id = ?", (analyzed_event.event_id,)
            ).fetchone()
            analyzed_event_pk = row["id"]
            owner_household_id = row["household_id"]

            cursor.execute("DELETE FROM suggested_tasks WHERE analyzed_event_id = ?", (analyzed_event_pk,))
            deleted = cursor.rowcount

            cursor.executemany(
                insert_task_sql,
                [
                    (
                        analyzed_event_pk,
                        owner_household_id,
                        task.title,
                        task.description,
                        task.type,
                        task.priority,
                        to_db_timestamp(task.due_date),
                    )
                    for task in tasks
                ],
            )
        logger.info(
            f"Stored analysis for event '{analyzed_event.event_id}' (id {analyzed_event_pk}): "
            f"replaced {deleted} task(s) with {len(tasks)}."
        )
    except sqlite3.Error as e:
        logger.error(f"Error storing analysis for event '{analyzed_event.event_id}': {e}", exc_info=True)
        raise

    stored = get_analyzed_event_by_event_id(conn, analyzed_event.event_id)
    if stored is None:
        raise sqlite3.DatabaseError(f"Analyzed event '{analyzed_event.event_id}' missing right after upsert")
    return stored


# --- Tasks ---

def get_tasks_due_before(
    conn: sqlite3.Connection,
    household_id: int,
    due_before: datetime,
    include_completed: bool = False,
) -> List[PersistedTask]:
    """Retrieves a household's tasks due on or before a cutoff.

    Args:
        conn: An active sqlite3 database connection.
        household_id: The household whose tasks to read.
        due_before: Inclusive upper bound on the due date.
        include_completed: When False only pending tasks are returned;
            when True completed and dismissed tasks are included.

    Returns:
        Tasks sorted by due date ascending, then priority high > medium > low.

    Raises:
        sqlite3.Error: For database errors during query.
    """
    status_filter = "" if include_completed else "AND t.status = 'pending'"
    sql = f"""SELECT {_TASK_COLUMNS}
              FROM suggested_tasks t JOIN analyzed_events e ON e.id = t.analyzed_event_id
              WHERE t.household_id = ? AND t.due_date <= ? {status_filter}
              ORDER BY t.due_date ASC, {_PRIORITY_ORDER_SQL} ASC, t.id ASC"""
    try:
        rows = conn.execute(sql, (household_id, to_db_timestamp(due_before))).fetchall()
        tasks = [PersistedTask.model_validate(dict(row)) for row in rows]
        logger.debug(f"Retrieved {len(tasks)} task(s) for household {household_id} due before {due_before}.")
        return tasks
    except sqlite3.Error as e:
        logger.error(f"Error retrieving tasks for household {household_id}: {e}", exc_info=True)
        raise


def get_task_by_id(conn: sqlite3.Connection, task_id: int) -> Optional[PersistedTask]:
    """Retrieves a single task by its primary key."""
    sql = f"""SELECT {_TASK_COLUMNS}
              FROM suggested_tasks t JOIN analyzed_events e ON e.id = t.analyzed_event_id
              WHERE t.id = ?"""
    try:
        row = conn.execute(sql, (task_id,)).fetchone()
        return PersistedTask.model_validate(dict(row)) if row else None
    except sqlite3.Error as e:
        logger.error(f"Error retrieving task {task_id}: {e}", exc_info=True)
        raise


def update_task_status(
    conn: sqlite3.Connection,
    task_id: int,
    status: str,
    household_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Optional[PersistedTask]:
    """Marks a task completed or dismissed and stamps the matching timestamp.

    Args:
        conn: An active sqlite3 database connection.
        task_id: The task to update.
        status: "completed" or "dismissed".
        household_id: If given, the task must belong to this household.
        now: Timestamp to record (defaults to the current UTC time).

    Returns:
        The updated task, or None if no matching task exists.

    Raises:
        ValueError: If status is not "completed" or "dismissed".
        sqlite3.Error: For database errors during update.
    """
    if status == "completed":
        timestamp_column = "completed_at"
    elif status == "dismissed":
        timestamp_column = "dismissed_at"
    else:
        raise ValueError(f"Unsupported task status: {status}")

    stamp = to_db_timestamp(now or datetime.now(timezone.utc))
    sql = f"UPDATE suggested_tasks SET status = ?, {timestamp_column} = ? WHERE id = ?"
    params: Tuple = (status, stamp, task_id)
    if household_id is not None:
        sql += " AND household_id = ?"
        params = (*params, household_id)

    try:
        with conn:
            cursor = conn.execute(sql, params)
            updated_rows = cursor.rowcount
    except sqlite3.Error as e:
        logger.error(f"Error setting task {task_id} to '{status}': {e}", exc_info=True)
        raise

    if updated_rows == 0:
        logger.warning(f"Attempted to set task {task_id} to '{status}', but no matching row found.")
        return None
    logger.info(f"Task {task_id} marked {status}.")
    return get_task_by_id(conn, task_id)


def flush_household_cache(conn: sqlite3.Connection, household_id: int) -> Tuple[int, int]:
    """Deletes every task and analyzed event of a household.

    Returns:
        A tuple (deleted_tasks, deleted_events).

    Raises:
        sqlite3.Error: For database errors during deletion.
    """
    try:
        with conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM suggested_tasks WHERE household_id = ?", (household_id,))
            deleted_tasks = cursor.rowcount
            cursor.execute("DELETE FROM analyzed_events WHERE household_id = ?", (household_id,))
            deleted_events = cursor.rowcount
        logger.info(f"Flushed cache for household {household_id}: {deleted_tasks} task(s), {deleted_events} event(s).")
        return deleted_tasks, deleted_events
    except sqlite3.Error as e:
        logger.error(f"Error flushing cache for household {household_id}: {e}", exc_info=True)
        raise
