"""
World State Orchestrator — drives one night from start to ending.

Composes: Clock, FlagStore (through the resolver), EndStateResolver

Behavioral Contract:
- update() converts real seconds into whole game minutes using the
  scenario's ratio and advances the clock
- Every time advance scans scheduled calls with incoming time in
  (old, new] and emits call_triggered once per call id, ever
- Disabled calls are skipped by the scan until enabled
- Ordering per advance: clock advance → call-trigger scan → end check,
  so a call scheduled at the exact end minute is delivered first
- The night finalizes exactly once, on time-up or force_end
"""

import logging
from typing import List, Optional, Set

from operator_core.clock.clock import Clock
from operator_core.end_state.resolver import EndStateResolver
from operator_core.events import Event, EventBus, EventType
from operator_core.models.calls import CallData
from operator_core.models.end_state import EndingResult
from operator_core.models.scenario import NightScenarioData

logger = logging.getLogger(__name__)


class WorldStateOrchestrator:
    """Advances time, triggers scheduled calls and finalizes the night."""

    def __init__(self, clock: Clock, resolver: EndStateResolver, bus: Optional[EventBus] = None):
        self.clock = clock
        self.resolver = resolver
        self.bus = bus or clock.bus

        self.scenario: Optional[NightScenarioData] = None
        self.result: Optional[EndingResult] = None
        self._triggered: Set[str] = set()
        self._disabled: Set[str] = set()
        self._accumulated = 0.0
        self._paused = False
        self._ended = False
        self._advancing = False
        self._time_up_pending = False

        self.bus.subscribe(EventType.TIME_CHANGED, self._on_time_changed)
        self.bus.subscribe(EventType.TIME_UP, self._on_time_up)

    def load_scenario(self, scenario: NightScenarioData) -> None:
        """Reset night state. Clock and resolver are initialized by the caller."""
        self.scenario = scenario
        self.result = None
        self._triggered.clear()
        self._disabled = {c.call_id for c in scenario.calls if not c.enabled_by_default}
        self._accumulated = 0.0
        self._paused = False
        self._ended = False
        self._time_up_pending = False
        logger.info(
            "Scenario %s loaded: %d calls, %d disabled",
            scenario.scenario_id, len(scenario.calls), len(self._disabled),
        )

    def begin(self) -> None:
        """Deliver calls scheduled exactly at the current minute."""
        if self.scenario is None:
            return
        now = self.clock.current_minutes
        self._trigger_calls(now - 1, now)

    def mark_triggered_through(self, minute: int) -> None:
        """Treat every call at or before `minute` as already delivered (restoring a save)."""
        if self.scenario is None:
            return
        for call in self.scenario.calls:
            if call.incoming_time_minutes <= minute:
                self._triggered.add(call.call_id)

    # --- Properties ---

    @property
    def is_ended(self) -> bool:
        return self._ended

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def triggered_call_ids(self) -> List[str]:
        return sorted(self._triggered)

    def is_call_enabled(self, call_id: str) -> bool:
        return call_id not in self._disabled

    # --- Per-frame ---

    def update(self, delta_seconds: float) -> int:
        """Advance the night by real seconds. Returns game minutes advanced."""
        if self.scenario is None or self._paused or self._ended:
            return 0
        if not self.clock.is_running or self.clock.is_paused:
            return 0

        ratio = self.scenario.real_seconds_per_game_minute
        self._accumulated += delta_seconds
        minutes = int(self._accumulated / ratio)
        if minutes <= 0:
            return 0
        self._accumulated -= minutes * ratio

        self._advancing = True
        try:
            self.clock.advance_time(minutes)
        finally:
            self._advancing = False

        self._check_scenario_end()
        return minutes

    def _check_scenario_end(self) -> None:
        if self._ended:
            return
        if self._time_up_pending or self.clock.is_time_up:
            self.finalize()

    # --- Event handlers ---

    def _on_time_changed(self, event: Event) -> None:
        if self.scenario is None or self._ended:
            return
        self._trigger_calls(event.payload["previous_minutes"], event.payload["minutes"])

    def _on_time_up(self, event: Event) -> None:
        if self.scenario is None or self._ended:
            return
        if self._advancing:
            self._time_up_pending = True
        else:
            self.finalize()

    def _trigger_calls(self, from_minute: int, to_minute: int) -> None:
        due = [
            call for call in self.scenario.calls
            if call.call_id not in self._triggered
            and call.call_id not in self._disabled
            and from_minute < call.incoming_time_minutes <= to_minute
        ]
        for call in sorted(due, key=lambda c: (c.incoming_time_minutes, -c.priority)):
            self._triggered.add(call.call_id)
            logger.info("Call %s triggered at %s", call.call_id, call.formatted_time)
            self.bus.emit(EventType.CALL_TRIGGERED, call_id=call.call_id, call=call)

    # --- Administration ---

    def pause(self) -> None:
        self._paused = True
        self.clock.pause()

    def resume(self) -> None:
        self._paused = False
        self.clock.resume()

    def disable_call(self, call_id: str) -> bool:
        if self.scenario is None or self.scenario.get_call(call_id) is None:
            logger.warning("Cannot disable unknown call %s", call_id)
            return False
        self._disabled.add(call_id)
        return True

    def enable_call(self, call_id: str) -> bool:
        if self.scenario is None or self.scenario.get_call(call_id) is None:
            logger.warning("Cannot enable unknown call %s", call_id)
            return False
        self._disabled.discard(call_id)
        return True

    def next_scheduled_call(self) -> Optional[CallData]:
        """Earliest enabled, untriggered call after the current minute."""
        if self.scenario is None:
            return None
        now = self.clock.current_minutes
        pending = [
            c for c in self.scenario.calls
            if c.call_id not in self._triggered
            and c.call_id not in self._disabled
            and c.incoming_time_minutes > now
        ]
        return min(pending, key=lambda c: c.incoming_time_minutes, default=None)

    def skip_to_next_call(self) -> Optional[CallData]:
        """Jump the clock to the next scheduled call, triggering it."""
        if self._ended:
            return None
        call = self.next_scheduled_call()
        if call is None:
            logger.info("No scheduled call to skip to")
            return None

        self._advancing = True
        try:
            self.clock.set_time(call.incoming_time_minutes)
        finally:
            self._advancing = False
        self._accumulated = 0.0
        self._check_scenario_end()
        return call

    def force_end(self) -> Optional[EndingResult]:
        if self.scenario is None:
            logger.warning("Cannot end: no scenario loaded")
            return None
        return self.finalize()

    def finalize(self) -> EndingResult:
        """Resolve the night. Later calls return the first result."""
        if self._ended and self.result is not None:
            return self.result

        self._ended = True
        self._time_up_pending = False
        self.clock.stop()

        self.result = self.resolver.determine_ending(self.clock.dispatch_minute)
        logger.info(
            "Night ended: %s / %s (victim survived: %s)",
            self.result.end_state.value, self.result.ending_id, self.result.victim_survived,
        )
        self.bus.emit(
            EventType.SCENARIO_ENDED,
            end_state=self.result.end_state,
            ending_id=self.result.ending_id,
            victim_survived=self.result.victim_survived,
        )
        return self.result
