"""Service layer for analyzing calendar events with an LLM.

Builds the analysis prompt for one event (optionally enriched with
household settings), sends it to the configured LLM and turns the reply
into a validated EventAnalysis. Failures never escape as exceptions: the
caller always receives a usable analysis. The one exception is a provider
rate limit, which is re-raised so the batch dispatcher can back off.
"""

import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from household_engine.interfaces.llm_interface import LLMInterface, RateLimitExceeded
from household_engine.features.analysis_models import (
    CalendarEvent,
    EventAnalysis,
    default_event_analysis,
)
from household_engine.database.models import HouseholdSettings

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1000

DEFAULT_TIMING_GUIDELINES = """- Babysitters: Book 7-14 days in advance
- Flights: Book 60-90 days in advance for trips
- Hotels: Book 30-60 days in advance
- Restaurant reservations: 7 days in advance
- Gift shopping: 7 days before birthdays/parties
- Formal attire preparation: 3 days before
- Regular appointments (doctor, dentist): Confirm 2 days before"""

RESPONSE_FORMAT = """{
  "eventType": "work|social|travel|appointment|family|other",
  "requiresSitter": true/false,
  "requiresTravel": true/false,
  "requiresFormalAttire": true/false,
  "suggestedTasks": [
    {
      "title": "string",
      "type": "booking|shopping|preparation|reminder",
      "daysBeforeEvent": number,
      "priority": "high|medium|low",
      "description": "optional string or null"
    }
  ],
  "preparations": ["string"],
  "reasoning": "string",
  "confidence": number between 0 and 1
}"""


class AnalysisParseError(ValueError):
    """The LLM reply did not contain a valid analysis."""


def time_of_day(hour: int) -> str:
    if hour >= 17:
        return "evening"
    if hour >= 12:
        return "afternoon"
    return "morning"


def extract_json_object(text: str) -> Optional[str]:
    """Returns the first balanced ``{...}`` span in text, or None.

    Braces inside JSON string literals are ignored, so prose around the
    object or a brace inside a task title does not break extraction.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # Unbalanced from this brace; try the next opening brace
        start = text.find("{", start + 1)
    return None


def _household_context_lines(settings: HouseholdSettings) -> List[str]:
    lines: List[str] = []
    location = ", ".join(part for part in (settings.home_city, settings.home_state, settings.home_country) if part)
    if location:
        lines.append(f"- Home location: {location}")
    if settings.work_address:
        lines.append(f"- Work address: {settings.work_address}")
    if settings.family_members:
        members = "; ".join(
            f"{m.name} ({m.relationship}{f', age {m.age}' if m.age is not None else ''})"
            for m in settings.family_members
        )
        lines.append(f"- Family members: {members}")
    if settings.default_sitter_needed:
        lines.append(f"- A sitter is normally needed for adult events starting at or after {settings.sitter_start_time}:00")
    else:
        lines.append("- A sitter is not needed by default")
    if settings.sitter_exceptions:
        lines.append(f"- No sitter needed for: {', '.join(settings.sitter_exceptions)}")
    lines.append(f"- Willing to drive up to {settings.driving_radius_miles} miles; farther trips need travel arrangements")
    if settings.preferred_airports:
        lines.append(f"- Preferred airports: {', '.join(settings.preferred_airports)}")
    return lines


def build_analysis_prompt(event: CalendarEvent, household_settings: Optional[HouseholdSettings] = None) -> str:
    """Builds the natural-language analysis prompt for one event.

    Raises:
        ValueError: If the event has no resolvable start time.
    """
    start = event.local_start_time
    if start is None:
        raise ValueError(f"Event '{event.id}' has no resolvable start time")
    end = event.end.resolve_local() if event.end else None
    end = end or start
    duration_hours = (end - start).total_seconds() / 3600

    when = start.strftime("%A, %B %d, %Y") if event.is_all_day else start.strftime("%A, %B %d, %Y at %I:%M %p %Z").strip()
    day_part = "all day" if event.is_all_day else time_of_day(start.hour)

    if household_settings:
        timing = (
            f"- Babysitters: Book {household_settings.book_sitter_days_ahead} days in advance\n"
            f"- Flights: Book {household_settings.book_flights_days_ahead} days in advance for trips\n"
            f"- Hotels: Book {household_settings.book_hotels_days_ahead} days in advance\n"
            "- Restaurant reservations: 7 days in advance\n"
            "- Gift shopping: 7 days before birthdays/parties\n"
            "- Formal attire preparation: 3 days before\n"
            "- Regular appointments (doctor, dentist): Confirm 2 days before"
        )
        context_lines = _household_context_lines(household_settings)
        household_section = "\nHousehold Context:\n" + "\n".join(context_lines) + "\n"
        if household_settings.custom_context:
            household_section += f"\nAdditional notes from the household:\n{household_settings.custom_context}\n"
    else:
        timing = DEFAULT_TIMING_GUIDELINES
        household_section = ""

    return f"""You are a personal assistant analyzing a calendar event to identify required preparations and tasks.

Event Details:
- Title: {event.title}
- Date/Time: {when}
- Location: {event.location or 'No location specified'}
- Description: {event.description or 'No description'}
- Duration: {duration_hours:.1f} hours
- Day of Week: {start.strftime('%A')}
- Time of Day: {day_part}
{household_section}
Analyze this event and determine:
1. What type of event this is (work, social, travel, appointment, family, or other)
2. Whether childcare is needed (true for evening events that aren't family-friendly)
3. Whether travel arrangements are needed
4. What preparations are required
5. What tasks should be created with appropriate lead times

Timing guidelines to follow:
{timing}

Return ONLY a JSON object with this exact structure (no other text):
{RESPONSE_FORMAT}"""


def parse_analysis_response(raw_response: str) -> EventAnalysis:
    """Parses and validates the LLM reply.

    Raises:
        AnalysisParseError: If no JSON object is found, it does not decode,
            or required fields (eventType, suggestedTasks list) are missing.
    """
    json_text = extract_json_object(raw_response or "")
    if json_text is None:
        raise AnalysisParseError("No JSON object found in response")
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Malformed JSON in response: {e}") from e

    if not data.get("eventType") or not isinstance(data.get("suggestedTasks"), list):
        raise AnalysisParseError("Invalid analysis structure: eventType and suggestedTasks list are required")
    try:
        return EventAnalysis.model_validate(data)
    except ValidationError as e:
        raise AnalysisParseError(f"Analysis failed validation: {e}") from e


def analyze_calendar_event(
    event: CalendarEvent,
    llm_service: LLMInterface,
    household_settings: Optional[HouseholdSettings] = None,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> EventAnalysis:
    """Analyzes one calendar event.

    Args:
        event: The calendar event to classify.
        llm_service: An LLM backend conforming to LLMInterface.
        household_settings: Optional household preferences for the prompt.
        temperature: Sampling temperature for the LLM call.
        max_tokens: Output token budget for the LLM call.

    Returns:
        The parsed EventAnalysis, or the default analysis (type "other",
        no flags, no tasks, confidence 0.1) if anything goes wrong.

    Raises:
        RateLimitExceeded: Propagated unchanged so the caller can back off.
    """
    try:
        prompt = build_analysis_prompt(event, household_settings)
    except ValueError as e:
        logger.warning(f"Cannot analyze event '{event.id}': {e}")
        return default_event_analysis(f"Analysis skipped - {e}")

    logger.debug(f"Sending analysis prompt for event '{event.id}':\n{prompt}")

    try:
        raw_llm_response = llm_service.generate(prompt=prompt, temperature=temperature, max_tokens=max_tokens)
        logger.debug(f"Raw LLM response for event '{event.id}':\n{raw_llm_response}")
        analysis = parse_analysis_response(raw_llm_response)
    except RateLimitExceeded:
        raise
    except AnalysisParseError as e:
        logger.error(f"Error analyzing event '{event.id}': {e}")
        return default_event_analysis()
    except Exception as e:
        logger.error(f"Error calling LLM service for event '{event.id}': {e}", exc_info=True)
        return default_event_analysis()

    logger.info(
        f"Analyzed event '{event.id}' ({event.title}): type={analysis.event_type}, "
        f"{len(analysis.suggested_tasks)} task(s), confidence={analysis.confidence:.2f}"
    )
    return analysis
