"""
Event recording.

An EventSink collects (source component, message) events from every layer
of the syncer: normal operation and leader election record into the same
sink, possibly from different threads and tasks at once. Each event is
also written to the log.

Example:
    ```python
    sink = EventSink()
    recorder = sink.recorder("resource-syncer")
    recorder.event("LeaderElection", "node-a_1234 became leader")
    ```
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """
    A recorded event.

    Attributes:
        source: Component that emitted the event
        reason: Short machine-readable reason (e.g., "LeaderElection")
        message: Human-readable description
        type: "Normal" or "Warning"
        timestamp: When the event was recorded (UTC)
    """

    source: str
    reason: str
    message: str
    type: str = "Normal"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@runtime_checkable
class EventRecorderProtocol(Protocol):
    """What the election layer needs from a recorder."""

    def event(self, reason: str, message: str, type: str = "Normal") -> None:
        ...


class EventSink:
    """
    Thread-safe bounded buffer of events.

    Attributes:
        capacity: Maximum number of retained events (oldest dropped first)
    """

    def __init__(self, capacity: int = 1000) -> None:
        self.capacity = capacity
        self._events: deque[Event] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(self, source: str, message: str, reason: str = "", type: str = "Normal") -> Event:
        """Store an event and mirror it to the log."""
        event = Event(source=source, reason=reason, message=message, type=type)
        with self._lock:
            self._events.append(event)

        level = logging.WARNING if type == "Warning" else logging.INFO
        logger.log(level, "[%s] %s: %s", source, reason or "Event", message)
        return event

    def events(self, source: str | None = None) -> list[Event]:
        """Snapshot of stored events, optionally filtered by source."""
        with self._lock:
            snapshot = list(self._events)
        if source is None:
            return snapshot
        return [e for e in snapshot if e.source == source]

    def recorder(self, source: str) -> "EventRecorder":
        """Create a recorder bound to one source component."""
        return EventRecorder(sink=self, source=source)


@dataclass(frozen=True)
class EventRecorder:
    """Records events for a fixed source component into a shared sink."""

    sink: EventSink
    source: str

    def event(self, reason: str, message: str, type: str = "Normal") -> None:
        self.sink.record(self.source, message, reason=reason, type=type)
