"""Pydantic models for API request and response bodies.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from household_engine.database.models import FamilyMember


class AnalyzeRequest(BaseModel):
    """Request body for running the event analysis.

    ``events`` is checked by the endpoint so a non-list answers 400.
    """
    model_config = ConfigDict(populate_by_name=True)

    events: Any = None
    skip_cache: bool = Field(default=False, alias="skipCache")


class TaskStatusResponse(BaseModel):
    success: bool
    task_id: int = Field(..., serialization_alias="taskId")
    status: str


class HouseholdSettingsUpdate(BaseModel):
    """Partial update of household settings. Omitted fields keep their stored values."""
    selected_calendars: Optional[List[str]] = None
    home_city: Optional[str] = None
    home_state: Optional[str] = None
    home_country: Optional[str] = None
    work_address: Optional[str] = None
    family_members: Optional[List[FamilyMember]] = None
    book_flights_days_ahead: Optional[int] = Field(default=None, ge=0)
    book_sitter_days_ahead: Optional[int] = Field(default=None, ge=0)
    book_hotels_days_ahead: Optional[int] = Field(default=None, ge=0)
    default_sitter_needed: Optional[bool] = None
    sitter_start_time: Optional[int] = Field(default=None, ge=0, le=23)
    sitter_exceptions: Optional[List[str]] = None
    driving_radius_miles: Optional[int] = Field(default=None, ge=0)
    preferred_airports: Optional[List[str]] = None
    custom_context: Optional[str] = None


class LLMSettingsUpdate(BaseModel):
    default_model: Optional[str] = Field(None, description="Model name for the active provider.")
    ollama_base_url: Optional[str] = Field(None, description="Base URL of the Ollama server.")


class LLMSettingsResponse(BaseModel):
    llm_provider: str
    default_model: str
    ollama_base_url: str
    message: str


class CalendarListResponse(BaseModel):
    calendars: List[Dict[str, Any]]


class CalendarEventsResponse(BaseModel):
    events: List[Dict[str, Any]]
    errors: Optional[List[str]] = None


class FlushResponse(BaseModel):
    success: bool
    deleted_tasks: int = Field(..., serialization_alias="deletedTasks")
    deleted_events: int = Field(..., serialization_alias="deletedEvents")
    message: str
