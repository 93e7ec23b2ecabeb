"""Script to run the event analysis pipeline over a JSON file of calendar events.

The file may hold a list of Google Calendar events or an object with an
"events" (or Google's "items") list.
"""

import argparse
import json
import logging
import os
import sys

# Ensure the main package is in the Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from pydantic import ValidationError

from household_engine.core.config import get_settings
from household_engine.core.dependencies import create_llm_service, get_db_path
from household_engine.database import crud
from household_engine.features.analysis_models import CalendarEvent
from household_engine.features.analysis_service import run_event_analysis

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def load_events(path: str) -> list:
    with open(path, 'r') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("events", data.get("items", []))
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of events")

    events = []
    for index, raw in enumerate(data):
        try:
            events.append(CalendarEvent.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping malformed event at index {index}: {e.error_count()} validation error(s).")
    return events


def main():
    parser = argparse.ArgumentParser(description="Analyze calendar events and store the suggested tasks.")
    parser.add_argument("events_file", help="Path to a JSON file with calendar events.")
    parser.add_argument("--user-id", default=None, help="User whose household owns the results (defaults to DEFAULT_USER_ID).")
    parser.add_argument("--skip-cache", action="store_true", help="Re-analyze events that already have a stored analysis.")
    args = parser.parse_args()

    settings = get_settings()
    events = load_events(args.events_file)
    logger.info(f"Loaded {len(events)} event(s) from {args.events_file}")

    db_path = get_db_path(settings)
    crud.initialize_database(db_path)
    conn = crud.connect(db_path)
    try:
        household = crud.get_or_create_household(
            conn, args.user_id or settings.DEFAULT_USER_ID, settings.DEFAULT_USER_NAME
        )
        llm_service = create_llm_service(settings)
        result = run_event_analysis(
            conn, household.id, events, llm_service, settings, skip_cache=args.skip_cache
        )
    finally:
        conn.close()
        logger.info("Database connection closed.")

    summary = result.summary
    logger.info(
        f"Analyzed {result.analyzed} event(s), {result.skipped_cached} served from cache. "
        f"Tasks: {summary.overdue} overdue, {summary.tasks_this_week} this week, "
        f"{summary.tasks_next_week} next week, {summary.high_priority_tasks} high priority."
    )
    for task in result.tasks.all:
        print(f"{task.due_date:%Y-%m-%d}  [{task.priority:<6}] {task.title}  ({task.event_title})")


if __name__ == "__main__":
    main()
