"""Typed lifecycle events and the sinks that receive them.

The dispatcher and the mode plugins publish ``ModeEvent`` records onto an
injected ``EventSink``. Display and analytics concerns subscribe by
providing a sink; nothing in the engine depends on a subscriber existing.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any

from ..engine_logging import get_logger

logger = get_logger("events")


class ModeEventType(Enum):
    """Kinds of events published by the engine."""

    REGISTERED = "registered"
    SCORED = "scored"
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    PROCESSED = "processed"
    SWITCH_SUPPRESSED = "switch_suppressed"  # Hysteresis kept the current mode
    ERROR = "error"
    POLICY_UPDATED = "policy_updated"
    SESSION_ENDED = "session_ended"
    FEEDBACK = "feedback"
    DISPLAY_UPDATE = "display_update"


@dataclass(frozen=True)
class ModeEvent:
    """A single engine event.

    Attributes:
        event_type: What happened
        mode_id: Mode involved, if any
        session_id: Session involved, if any
        timestamp: Event time (epoch seconds)
        payload: Extra event data
    """

    event_type: ModeEventType
    mode_id: str | None = None
    session_id: str | None = None
    timestamp: float = field(default_factory=time.time)
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "event_type": self.event_type.value,
            "mode_id": self.mode_id,
            "session_id": self.session_id,
            "timestamp": self.timestamp,
            "payload": dict(self.payload),
        }


class EventSink(ABC):
    """Receiver of engine events."""

    @abstractmethod
    def publish(self, event: ModeEvent) -> None:
        """Deliver an event. Must not block dispatch for long."""

    def emit(
        self,
        event_type: ModeEventType,
        mode_id: str | None = None,
        session_id: str | None = None,
        **payload: Any,
    ) -> None:
        """Build and publish an event in one call."""
        self.publish(
            ModeEvent(
                event_type=event_type,
                mode_id=mode_id,
                session_id=session_id,
                payload=payload,
            )
        )


class NullEventSink(EventSink):
    """Sink that drops every event."""

    def publish(self, event: ModeEvent) -> None:
        return None


class RecordingEventSink(EventSink):
    """Thread-safe in-memory sink used by reporting and tests."""

    def __init__(self, max_events: int | None = None):
        self.max_events = max_events
        self._events: list[ModeEvent] = []
        self._lock = Lock()

    def publish(self, event: ModeEvent) -> None:
        with self._lock:
            self._events.append(event)
            if self.max_events is not None and len(self._events) > self.max_events:
                del self._events[0]

    @property
    def events(self) -> list[ModeEvent]:
        """Snapshot of recorded events, oldest first."""
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: ModeEventType) -> list[ModeEvent]:
        """Recorded events of a single type."""
        return [e for e in self.events if e.event_type == event_type]

    def count(self, event_type: ModeEventType, mode_id: str | None = None) -> int:
        """Count events of a type, optionally for one mode."""
        return sum(
            1
            for e in self.of_type(event_type)
            if mode_id is None or e.mode_id == mode_id
        )

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingEventSink(EventSink):
    """Writes events through the engine logger at DEBUG level."""

    def publish(self, event: ModeEvent) -> None:
        logger.debug(
            f"{event.event_type.value} mode={event.mode_id} "
            f"session={event.session_id} {event.payload}"
        )


class CompositeEventSink(EventSink):
    """Fans events out to several subscribers.

    A subscriber that raises is logged and skipped; delivery to the
    remaining subscribers continues.
    """

    def __init__(self, sinks: list[EventSink] | None = None):
        self._sinks: list[EventSink] = list(sinks or [])

    def subscribe(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    def publish(self, event: ModeEvent) -> None:
        for sink in self._sinks:
            try:
                sink.publish(event)
            except Exception as e:
                logger.warning(
                    f"Event subscriber {sink.__class__.__name__} failed on "
                    f"{event.event_type.value}: {e}"
                )


__all__ = [
    "CompositeEventSink",
    "EventSink",
    "LoggingEventSink",
    "ModeEvent",
    "ModeEventType",
    "NullEventSink",
    "RecordingEventSink",
]
