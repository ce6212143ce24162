"""Clock state — the simulated in-scenario time."""

from typing import Optional

from pydantic import BaseModel, Field

MINUTES_PER_DAY = 1440


class ClockState(BaseModel):
    """Snapshot of the scenario clock."""

    current_minutes: int = 0
    start_minutes: int = 0
    end_minutes: int = 0                    # As authored; may be < start for overnight windows
    real_seconds_per_game_minute: float = Field(gt=0, default=2.0)
    is_running: bool = False
    is_paused: bool = False
    dispatch_minute: Optional[int] = None   # Set once per night

    @property
    def effective_end_minutes(self) -> int:
        """End time on the unbounded minute axis (22:00→06:00 ends at 30:00)."""
        if self.end_minutes < self.start_minutes:
            return self.end_minutes + MINUTES_PER_DAY
        return self.end_minutes
