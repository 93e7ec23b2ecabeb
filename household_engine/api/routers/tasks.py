"""API Router for changing the status of suggested tasks."""

import logging
import sqlite3

from fastapi import APIRouter, Depends, HTTPException, status

from household_engine.api.models import TaskStatusResponse
from household_engine.core.dependencies import get_current_household, get_db
from household_engine.database import crud
from household_engine.database.models import Household

logger = logging.getLogger(__name__)
router = APIRouter()


def _set_status(db: sqlite3.Connection, household: Household, task_id: int, new_status: str) -> TaskStatusResponse:
    try:
        task = crud.update_task_status(db, task_id, new_status, household_id=household.id)
    except sqlite3.Error as e:
        logger.error(f"Database error while setting task {task_id} to '{new_status}': {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update task")
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return TaskStatusResponse(success=True, task_id=task.id, status=task.status)


@router.post("/{task_id}/complete", response_model=TaskStatusResponse)
def complete_task(
    task_id: int,
    db: sqlite3.Connection = Depends(get_db),
    household: Household = Depends(get_current_household),
):
    """Marks a task as completed."""
    return _set_status(db, household, task_id, "completed")


@router.post("/{task_id}/dismiss", response_model=TaskStatusResponse)
def dismiss_task(
    task_id: int,
    db: sqlite3.Connection = Depends(get_db),
    household: Household = Depends(get_current_household),
):
    """Dismisses a task."""
    return _set_status(db, household, task_id, "dismissed")
