"""Sequential, rate-limited dispatch of per-event analyses."""

import logging
import time
from typing import Callable, Dict, Optional, Sequence

from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_never, wait_fixed

from household_engine.interfaces.llm_interface import LLMInterface, RateLimitExceeded
from household_engine.features.analysis_models import CalendarEvent, EventAnalysis, default_event_analysis
from household_engine.features.event_analyzer import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    analyze_calendar_event,
)
from household_engine.database.models import HouseholdSettings

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 1.5 # Stays under 50 requests/minute
DEFAULT_COOLDOWN_SECONDS = 60.0


def analyze_batch_events(
    events: Sequence[CalendarEvent],
    llm_service: LLMInterface,
    household_settings: Optional[HouseholdSettings] = None,
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, EventAnalysis]:
    """Analyzes events one at a time, in input order.

    A fixed delay separates consecutive events. When the provider signals a
    rate limit the same event is retried after a fixed cooldown, with no
    limit on attempts. Any other failure gives that event the default
    analysis and the batch moves on.

    Args:
        events: Events to analyze, dispatched in this order.
        llm_service: The LLM backend used for every call.
        household_settings: Optional household preferences for the prompts.
        delay_seconds: Pause between consecutive events.
        cooldown_seconds: Pause before retrying a rate-limited event.
        temperature: Sampling temperature passed to the analyzer.
        max_tokens: Output token budget passed to the analyzer.
        sleep: Blocking sleep function (injectable for tests).

    Returns:
        A dict mapping event id to its EventAnalysis. Every input event has
        an entry.
    """
    results: Dict[str, EventAnalysis] = {}
    retryer = Retrying(
        retry=retry_if_exception_type(RateLimitExceeded),
        wait=wait_fixed(cooldown_seconds),
        stop=stop_never,
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )

    logger.info(f"Analyzing {len(events)} event(s) sequentially ({delay_seconds}s apart).")
    for index, event in enumerate(events):
        if index > 0 and delay_seconds > 0:
            sleep(delay_seconds)
        try:
            analysis = retryer(
                analyze_calendar_event,
                event,
                llm_service,
                household_settings,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"Failed to analyze event '{event.id}': {e}", exc_info=True)
            analysis = default_event_analysis()
        results[event.id] = analysis

    logger.info(f"Finished analyzing {len(results)} event(s).")
    return results
