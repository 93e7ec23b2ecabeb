"""Pydantic models representing database objects.

These models are used for data validation and structuring when interacting
with the database CRUD operations.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal
from datetime import datetime

TaskStatus = Literal["pending", "completed", "dismissed"]


class Household(BaseModel):
    """Tenancy boundary grouping users, settings, analyzed events and tasks."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: Optional[datetime] = None


class FamilyMember(BaseModel):
    name: str
    relationship: str
    age: Optional[int] = None


class HouseholdSettings(BaseModel):
    """Household preferences fed into the event analysis prompt.

    List fields are stored as JSON text in SQLite.
    """
    model_config = ConfigDict(from_attributes=True)

    household_id: Optional[int] = None

    # Calendar
    selected_calendars: List[str] = Field(default_factory=list)

    # Location
    home_city: Optional[str] = None
    home_state: Optional[str] = None
    home_country: Optional[str] = None
    work_address: Optional[str] = None

    # Family
    family_members: List[FamilyMember] = Field(default_factory=list)

    # Timing preferences
    book_flights_days_ahead: int = Field(default=60, ge=0)
    book_sitter_days_ahead: int = Field(default=14, ge=0)
    book_hotels_days_ahead: int = Field(default=30, ge=0)

    # Sitter rules
    default_sitter_needed: bool = True
    sitter_start_time: int = Field(default=18, ge=0, le=23) # Hour of day
    sitter_exceptions: List[str] = Field(default_factory=list)

    # Travel
    driving_radius_miles: int = Field(default=50, ge=0)
    preferred_airports: List[str] = Field(default_factory=list)

    # Free-text context for the analysis prompt
    custom_context: Optional[str] = None


class PersistedTask(BaseModel):
    """A durable task derived from a suggested task.

    event_title and event_start come from the owning analyzed event and are
    populated by queries that join it.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    analyzed_event_id: int
    household_id: int
    title: str
    description: Optional[str] = None
    type: str
    priority: str
    due_date: datetime
    status: TaskStatus = "pending"
    completed_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    event_title: Optional[str] = None
    event_start: Optional[datetime] = None


class TaskCreate(BaseModel):
    """Model for inserting a new task under an analyzed event."""
    title: str
    description: Optional[str] = None
    type: str
    priority: str
    due_date: datetime


class AnalyzedEventCreate(BaseModel):
    """Model for creating or replacing the cached analysis of one event."""
    event_id: str
    household_id: int
    event_title: str
    event_start: datetime
    event_end: datetime
    event_data: str # JSON
    event_type: str
    requires_sitter: bool = False
    requires_travel: bool = False
    requires_formal_attire: bool = False
    analysis_data: str # JSON
    analyzed_at: datetime


class AnalyzedEvent(AnalyzedEventCreate):
    """Model representing an analyzed event retrieved from the database."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    tasks: List[PersistedTask] = Field(default_factory=list)
