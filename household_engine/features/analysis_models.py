"""Pydantic models for the event analysis feature."""

import logging
from datetime import date, datetime, time, timezone
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

EventType = Literal["work", "social", "travel", "appointment", "family", "other"]
TaskType = Literal["booking", "shopping", "preparation", "reminder"]
TaskPriority = Literal["high", "medium", "low"]

EVENT_TYPES = ("work", "social", "travel", "appointment", "family", "other")
TASK_TYPES = ("booking", "shopping", "preparation", "reminder")
TASK_PRIORITIES = ("high", "medium", "low")

FAILED_ANALYSIS_CONFIDENCE = 0.1


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- Calendar events (Google Calendar wire shape) ---

class EventTime(BaseModel):
    """Start or end of a calendar event: a precise timestamp or an all-day date."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date_time: Optional[datetime] = Field(default=None, alias="dateTime")
    all_day: Optional[date] = Field(default=None, alias="date")
    time_zone: Optional[str] = Field(default=None, alias="timeZone")

    def resolve_local(self) -> Optional[datetime]:
        """Returns the instant in the offset the calendar reported it in.

        dateTime wins over date; an all-day date resolves to midnight UTC and
        a naive dateTime is treated as UTC.
        """
        if self.date_time is not None:
            if self.date_time.tzinfo is None:
                return self.date_time.replace(tzinfo=timezone.utc)
            return self.date_time
        if self.all_day is not None:
            return datetime.combine(self.all_day, time.min, tzinfo=timezone.utc)
        return None

    def resolve(self) -> Optional[datetime]:
        """Returns the instant as an aware UTC datetime."""
        local = self.resolve_local()
        return _as_utc(local) if local else None


class CalendarEvent(BaseModel):
    """A calendar event as returned by the Google Calendar API.

    Unknown Google fields (calendarId, calendarColor, htmlLink, ...) are kept
    so the stored event snapshot stays complete.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    summary: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    start: Optional[EventTime] = None
    end: Optional[EventTime] = None

    @property
    def title(self) -> str:
        return self.summary or "Untitled"

    @property
    def is_all_day(self) -> bool:
        return bool(self.start and self.start.date_time is None and self.start.all_day is not None)

    @property
    def start_time(self) -> Optional[datetime]:
        return self.start.resolve() if self.start else None

    @property
    def local_start_time(self) -> Optional[datetime]:
        return self.start.resolve_local() if self.start else None

    @property
    def end_time(self) -> Optional[datetime]:
        """End instant, falling back to the start when the event has no end."""
        resolved = self.end.resolve() if self.end else None
        return resolved or self.start_time


# --- LLM analysis output ---

class SuggestedTask(BaseModel):
    """A task the model suggests for one event."""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: TaskType = "preparation"
    priority: TaskPriority = "medium"
    days_before_event: int = Field(default=0, ge=-3650, le=3650, alias="daysBeforeEvent")
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        if isinstance(v, str) and v.strip().lower() in TASK_TYPES:
            return v.strip().lower()
        logger.debug(f"Unknown task type {v!r}, using 'preparation'.")
        return "preparation"

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v):
        if isinstance(v, str) and v.strip().lower() in TASK_PRIORITIES:
            return v.strip().lower()
        logger.debug(f"Unknown task priority {v!r}, using 'medium'.")
        return "medium"

    @field_validator("days_before_event", mode="before")
    @classmethod
    def coerce_days(cls, v):
        if v is None:
            return 0
        if isinstance(v, float):
            return int(round(v))
        return v


class EventAnalysis(BaseModel):
    """Classification of one calendar event plus the tasks it implies."""
    model_config = ConfigDict(populate_by_name=True)

    event_type: EventType = Field(..., alias="eventType")
    requires_sitter: bool = Field(default=False, alias="requiresSitter")
    requires_travel: bool = Field(default=False, alias="requiresTravel")
    requires_formal_attire: bool = Field(default=False, alias="requiresFormalAttire")
    suggested_tasks: List[SuggestedTask] = Field(..., alias="suggestedTasks")
    preparations: List[str] = Field(default_factory=list)
    # Older prompts asked for "notes" instead of "reasoning"
    reasoning: str = Field(default="", validation_alias=AliasChoices("reasoning", "notes"))
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("preparations", mode="before")
    @classmethod
    def none_to_empty_list(cls, v):
        return [] if v is None else v

    @field_validator("reasoning", mode="before")
    @classmethod
    def none_to_empty_text(cls, v):
        return "" if v is None else v

    @field_validator("event_type", mode="before")
    @classmethod
    def normalize_event_type(cls, v):
        if isinstance(v, str) and v.strip().lower() in EVENT_TYPES:
            return v.strip().lower()
        if isinstance(v, str) and v.strip():
            logger.debug(f"Unknown event type {v!r}, using 'other'.")
            return "other"
        return v # Empty/missing values fail validation

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        if v is None:
            return 0.5
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return min(max(float(v), 0.0), 1.0)
        return v


def default_event_analysis(reason: str = "Analysis failed - manual review recommended") -> EventAnalysis:
    """The conservative result used whenever an event could not be analyzed."""
    return EventAnalysis(
        event_type="other",
        requires_sitter=False,
        requires_travel=False,
        requires_formal_attire=False,
        suggested_tasks=[],
        preparations=[],
        reasoning=reason,
        confidence=FAILED_ANALYSIS_CONFIDENCE,
    )
