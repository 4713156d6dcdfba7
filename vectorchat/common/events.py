"""
Structured query events.

The pipeline reports what happened during a turn (intent detected, search
degraded, count cap hit, LLM fallback) as named events with flat fields.
Observability backends plug in by implementing EventSink; the default sink
writes the events through logging.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol

INTENT_DETECTED = "intent_detected"
SEARCH_DEGRADED = "search_degraded"
COUNT_CAP_HIT = "count_cap_hit"
LLM_FALLBACK = "llm_fallback"

# Events that signal a degraded turn are logged as warnings
_WARNING_EVENTS = {SEARCH_DEGRADED, LLM_FALLBACK}


@dataclass(frozen=True)
class QueryEvent:
    name: str
    fields: Dict[str, Any] = field(default_factory=dict)


class EventSink(Protocol):
    def emit(self, event: QueryEvent) -> None:
        ...


class LoggingEventSink:
    """Writes events to the ``vectorchat.events`` logger"""

    def __init__(self, logger_name: str = "vectorchat.events"):
        self._logger = logging.getLogger(logger_name)

    def emit(self, event: QueryEvent) -> None:
        level = logging.WARNING if event.name in _WARNING_EVENTS else logging.INFO
        rendered = " ".join(f"{k}={v!r}" for k, v in sorted(event.fields.items()))
        self._logger.log(
            level,
            "%s %s",
            event.name,
            rendered,
            extra={"event": event.name, "event_fields": dict(event.fields)},
        )


def emit(sink: EventSink, name: str, **fields: Any) -> None:
    """Build and emit an event; sink failures never break the pipeline"""
    try:
        sink.emit(QueryEvent(name=name, fields=fields))
    except Exception as e:
        logging.getLogger("vectorchat.events").warning("Event sink failed for %s: %s", name, e)
