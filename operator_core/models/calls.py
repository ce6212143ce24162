"""Calls — the dialogue graph of one phone call."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from operator_core.models.conditions import StoryCondition, StoryEffect


class CallState(str, Enum):
    INCOMING = "incoming"           # Ringing, not answered
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    ENDED = "ended"
    MISSED = "missed"
    DISCONNECTED = "disconnected"   # Caller hung up


class CallerData(BaseModel):
    """A person who calls in."""

    caller_id: str
    display_name: str = "Unknown"
    real_name: str = ""
    description: str = ""


class ResponseData(BaseModel):
    """One candidate reply the operator can give in a segment."""

    response_id: str
    display_text: str = ""                  # Text key; localization lives outside the core
    is_silence: bool = False
    is_lie: bool = False

    # Availability
    conditions: List[StoryCondition] = []
    required_evidence_ids: List[str] = []

    # Effects
    effects: List[StoryEffect] = []
    set_flags: List[str] = []
    clear_flags: List[str] = []
    trust_impact: int = 0
    is_dispatch_action: bool = False
    key_decision_id: Optional[str] = None

    # Evidence side effects
    discovers_evidence: bool = False
    discovered_evidence_id: str = ""
    presents_evidence: bool = False
    evidence_id_to_present: str = ""

    # Transition
    next_segment_id: str = ""
    ends_call: bool = False


class CallSegment(BaseModel):
    """One node of a call's dialogue graph."""

    segment_id: str
    responses: List[ResponseData] = []
    response_time_limit: float = 0.0        # Real seconds; 0 = unlimited
    timeout_response_id: str = ""
    auto_discovered_evidence_ids: List[str] = []

    def get_response(self, response_id: str) -> Optional[ResponseData]:
        return next((r for r in self.responses if r.response_id == response_id), None)


class CallData(BaseModel):
    """A complete phone call."""

    call_id: str
    caller: Optional[CallerData] = None
    description: str = ""

    incoming_time_minutes: int = 0
    ring_duration: float = 30.0             # Real seconds until missed; 0 = rings forever
    priority: int = Field(ge=1, le=10, default=5)
    enabled_by_default: bool = True

    start_segment_id: str = ""
    segments: List[CallSegment] = []

    trigger_conditions: List[StoryCondition] = []
    on_end_effects: List[StoryEffect] = []
    on_missed_effects: List[StoryEffect] = []

    is_critical: bool = False

    @property
    def caller_id(self) -> Optional[str]:
        return self.caller.caller_id if self.caller else None

    @property
    def caller_name(self) -> str:
        return self.caller.display_name if self.caller else "Unknown"

    @property
    def formatted_time(self) -> str:
        minutes = self.incoming_time_minutes % 1440
        return f"{minutes // 60:02d}:{minutes % 60:02d}"

    def get_segment(self, segment_id: str) -> Optional[CallSegment]:
        return next((s for s in self.segments if s.segment_id == segment_id), None)

    def get_start_segment(self) -> Optional[CallSegment]:
        """The named start segment, or the first one when none is named."""
        if not self.start_segment_id:
            return self.segments[0] if self.segments else None
        return self.get_segment(self.start_segment_id)
