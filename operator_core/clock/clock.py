"""
Clock — simulated in-scenario time.

Updated by: WorldStateOrchestrator (per-frame advance), debug tooling
Queried by: everything that stamps or gates on time

Behavioral Contract:
- The minute counter is unbounded; windows that cross midnight end at
  end + 1440
- tick() accumulates real seconds and advances one minute per
  real_seconds_per_game_minute, emitting time_changed per minute
- time_up fires once when the end is reached and stops the clock;
  set_time back before the end re-arms it
- record_dispatch_at is set-once: the first dispatch always wins
"""

import logging
from typing import Optional

from operator_core.events import EventBus, EventType
from operator_core.models.clock import MINUTES_PER_DAY, ClockState

logger = logging.getLogger(__name__)


def format_time(minutes: int) -> str:
    """Render a minute counter as HH:MM, wrapping at 24h."""
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_time(text: str) -> int:
    """Parse HH:MM into minutes. Invalid input yields 0."""
    if not text:
        return 0
    parts = text.split(":")
    if len(parts) != 2:
        logger.warning("Invalid time format: %r", text)
        return 0
    try:
        return int(parts[0]) * 60 + int(parts[1])
    except ValueError:
        logger.warning("Could not parse time: %r", text)
        return 0


class Clock:
    """The scenario clock."""

    def __init__(self, bus: Optional[EventBus] = None):
        self.bus = bus or EventBus()
        self.state = ClockState()
        self._accumulated = 0.0
        self._time_up_fired = False

    def initialize(self, start_minutes: int, end_minutes: int, real_seconds_per_game_minute: float = 2.0) -> None:
        """Reset all clock state."""
        self.state = ClockState(
            current_minutes=start_minutes,
            start_minutes=start_minutes,
            end_minutes=end_minutes,
            real_seconds_per_game_minute=real_seconds_per_game_minute,
        )
        self._accumulated = 0.0
        self._time_up_fired = False
        logger.info(
            "Clock initialized: %s - %s at %.2fs per minute",
            format_time(start_minutes), format_time(end_minutes), real_seconds_per_game_minute,
        )

    # --- Properties ---

    @property
    def current_minutes(self) -> int:
        return self.state.current_minutes

    @property
    def formatted_time(self) -> str:
        return format_time(self.state.current_minutes)

    @property
    def end_minutes(self) -> int:
        return self.state.effective_end_minutes

    @property
    def is_time_up(self) -> bool:
        return self.state.current_minutes >= self.state.effective_end_minutes

    @property
    def remaining_minutes(self) -> int:
        return max(0, self.state.effective_end_minutes - self.state.current_minutes)

    @property
    def dispatch_minute(self) -> Optional[int]:
        return self.state.dispatch_minute

    @property
    def has_dispatched(self) -> bool:
        return self.state.dispatch_minute is not None

    @property
    def is_running(self) -> bool:
        return self.state.is_running

    @property
    def is_paused(self) -> bool:
        return self.state.is_paused

    # --- Run control ---

    def start(self) -> None:
        if self.state.is_running:
            return
        self.state.is_running = True
        self.state.is_paused = False
        self._accumulated = 0.0
        logger.info("Clock started at %s", self.formatted_time)
        self.bus.emit(EventType.CLOCK_STARTED, minutes=self.state.current_minutes)

    def pause(self) -> None:
        if not self.state.is_running or self.state.is_paused:
            return
        self.state.is_paused = True
        logger.debug("Clock paused at %s", self.formatted_time)

    def resume(self) -> None:
        if not self.state.is_running or not self.state.is_paused:
            return
        self.state.is_paused = False
        logger.debug("Clock resumed at %s", self.formatted_time)

    def stop(self) -> None:
        if not self.state.is_running:
            return
        self.state.is_running = False
        self.state.is_paused = False
        logger.info("Clock stopped at %s", self.formatted_time)
        self.bus.emit(EventType.CLOCK_STOPPED, minutes=self.state.current_minutes)

    # --- Time advance ---

    def tick(self, delta_seconds: float) -> int:
        """
        Accumulate real time and advance whole minutes.
        Returns the number of minutes advanced.
        """
        if not self.state.is_running or self.state.is_paused or self.is_time_up:
            return 0

        advanced = 0
        self._accumulated += delta_seconds
        while self._accumulated >= self.state.real_seconds_per_game_minute:
            self._accumulated -= self.state.real_seconds_per_game_minute
            self._move_to(self.state.current_minutes + 1)
            advanced += 1
            if self.is_time_up:
                break
        return advanced

    def advance_time(self, minutes: int) -> None:
        """Jump forward. Non-positive amounts are ignored."""
        if minutes <= 0:
            return
        self._move_to(self.state.current_minutes + minutes)

    def set_time(self, minutes: int) -> None:
        """Overwrite the current time."""
        self._accumulated = 0.0
        if minutes == self.state.current_minutes:
            return
        if minutes < self.state.effective_end_minutes:
            self._time_up_fired = False
        self._move_to(minutes)

    def _move_to(self, minutes: int) -> None:
        previous = self.state.current_minutes
        self.state.current_minutes = minutes
        logger.debug("Time %s -> %s", format_time(previous), self.formatted_time)
        self.bus.emit(
            EventType.TIME_CHANGED,
            previous_minutes=previous,
            minutes=minutes,
            formatted=self.formatted_time,
        )
        self._check_time_up()

    def _check_time_up(self) -> None:
        if self._time_up_fired or not self.is_time_up:
            return
        self._time_up_fired = True
        logger.info("Time up at %s", self.formatted_time)
        self.bus.emit(EventType.TIME_UP, minutes=self.state.current_minutes)
        self.stop()

    # --- Dispatch ---

    def record_dispatch(self) -> bool:
        return self.record_dispatch_at(self.state.current_minutes)

    def record_dispatch_at(self, minutes: int) -> bool:
        """Record the dispatch minute. Returns False when one is already recorded."""
        if self.state.dispatch_minute is not None:
            logger.debug("Dispatch already recorded at %s", format_time(self.state.dispatch_minute))
            return False
        self.state.dispatch_minute = minutes
        logger.info("Dispatch recorded at %s", format_time(minutes))
        self.bus.emit(EventType.DISPATCH_RECORDED, minutes=minutes)
        return True

    def clear_dispatch_record(self) -> None:
        self.state.dispatch_minute = None
        logger.debug("Dispatch record cleared")
