"""
Event Bus — synchronous, typed event dispatch shared by all core components.

Behavioral Contract:
- Components emit after their mutation is complete and before the mutating
  method returns.
- Handlers run synchronously, in subscription order, on the caller's stack.
- A handler may call back into the core; the emitting component is already
  in a consistent state when that happens.
- A bounded history of emitted events is kept for inspection and tests.
"""

import logging
from collections import deque
from enum import Enum
from typing import Callable, Deque, Dict, List

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    # FlagStore
    FLAG_CHANGED = "flag_changed"
    SCORE_CHANGED = "score_changed"

    # TrustGraph
    TRUST_CHANGED = "trust_changed"
    TRUST_THRESHOLD_CROSSED = "trust_threshold_crossed"
    ASSUMPTION_DISPROVEN = "assumption_disproven"

    # EvidenceStore
    EVIDENCE_DISCOVERED = "evidence_discovered"
    EVIDENCE_UPDATED = "evidence_updated"
    CONTRADICTION_FOUND = "contradiction_found"

    # CallFlow
    INCOMING_CALL = "incoming_call"
    CALL_STARTED = "call_started"
    CALL_HELD = "call_held"
    SEGMENT_CHANGED = "segment_changed"
    RESPONSES_PRESENTED = "responses_presented"
    RESPONSE_SELECTED = "response_selected"
    CALL_ENDED = "call_ended"
    CALL_MISSED = "call_missed"

    # Clock
    TIME_CHANGED = "time_changed"
    TIME_UP = "time_up"
    DISPATCH_RECORDED = "dispatch_recorded"
    CLOCK_STARTED = "clock_started"
    CLOCK_STOPPED = "clock_stopped"

    # WorldState
    CALL_TRIGGERED = "call_triggered"
    SCENARIO_ENDED = "scenario_ended"

    # StoryState
    VARIABLE_CHANGED = "variable_changed"

    # EndStateResolver
    END_STATE_CALCULATED = "end_state_calculated"
    VICTIM_SURVIVAL_CALCULATED = "victim_survival_calculated"
    ENDING_SELECTED = "ending_selected"


class Event(BaseModel):
    """A single emitted event."""

    type: EventType
    payload: dict = {}
    sequence: int = 0                       # Monotonic per bus


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Callback registry keyed by event type.
    One bus is shared by every component of a session.
    """

    def __init__(self, history_size: int = 256):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._history: Deque[Event] = deque(maxlen=history_size)
        self._sequence = 0

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Register a handler for an event type."""
        self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> bool:
        """Remove a previously registered handler."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def emit(self, event_type: EventType, **payload) -> Event:
        """Dispatch an event to every handler registered for its type."""
        self._sequence += 1
        event = Event(type=event_type, payload=payload, sequence=self._sequence)
        self._history.append(event)

        # Copy so handlers may (un)subscribe while being dispatched
        for handler in list(self._handlers.get(event_type, [])):
            handler(event)
        return event

    def recent(self, limit: int = 20) -> List[Event]:
        """Get the most recent emitted events, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def recent_of_type(self, event_type: EventType) -> List[Event]:
        """Get the retained events of one type, oldest first."""
        return [e for e in self._history if e.type == event_type]

    def clear_history(self) -> None:
        self._history.clear()
