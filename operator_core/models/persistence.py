"""Persisted records — save data, night results and cross-night state."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from operator_core.models.end_state import EndStateType
from operator_core.models.flags import FlagState


class NightResultRecord(BaseModel):
    """Compact per-night result kept in save data."""

    night_id: str
    end_state: EndStateType
    completed_at: datetime


class MidNightSnapshot(BaseModel):
    """Mid-session save: where the clock was and which flags were set."""

    night_id: str
    current_minutes: int
    flag_states: List[FlagState] = []


class OperatorSaveData(BaseModel):
    """One save slot."""

    current_night_index: int = 0
    saved_at: Optional[datetime] = None
    night_results: List[NightResultRecord] = []
    persistent_flags: List[FlagState] = []
    mid_night_save: Optional[MidNightSnapshot] = None


class KeyDecision(BaseModel):
    """A choice worth remembering in the night summary."""

    decision_id: str
    chosen_option: str
    related_call_id: str = ""
    time_minutes: int = 0


class NightResultSummary(BaseModel):
    """Full outcome of a finished night."""

    night_id: str
    end_state: EndStateType
    ending_id: str
    victim_survived: bool = False
    dispatch_minute: Optional[int] = None
    persistent_flags: List[FlagState] = []
    key_decisions: List[KeyDecision] = []
    collected_evidence_ids: List[str] = []
    completed_at: datetime


class PersistentFlag(BaseModel):
    flag_id: str
    origin_night_id: str = ""
    set_minute: int = 0
    is_set: bool = False


class CrossNightState(BaseModel):
    """State carried across nights within one playthrough."""

    save_slot_id: str = ""
    current_night_id: str = "night_01"
    night_results: List[NightResultSummary] = []
    persistent_flags: List[PersistentFlag] = []
    all_collected_evidence: List[str] = []

    def get_night_result(self, night_id: str) -> Optional[NightResultSummary]:
        return next((r for r in self.night_results if r.night_id == night_id), None)

    def is_persistent_flag_set(self, flag_id: str) -> bool:
        flag = next((f for f in self.persistent_flags if f.flag_id == flag_id), None)
        return flag.is_set if flag else False


class NightEffect(BaseModel):
    """How a previous night's outcome shapes a later one."""

    effect_id: str
    source_night_id: str
    target_night_id: str
    required_end_state: EndStateType
    required_flags: List[str] = []          # Persistent flags that must be set
    description: str = ""
    set_flags: List[str] = []
    enable_call_ids: List[str] = []
    disable_call_ids: List[str] = []


class NightEffectsDefinition(BaseModel):
    target_night_id: str = ""
    effects: List[NightEffect] = []

    def get_applicable_effects(self, state: CrossNightState) -> List[NightEffect]:
        """Effects whose source night ended in the required state with all required flags set."""
        applicable = []
        for effect in self.effects:
            result = state.get_night_result(effect.source_night_id)
            if result is None or result.end_state != effect.required_end_state:
                continue
            if all(state.is_persistent_flag_set(f) for f in effect.required_flags):
                applicable.append(effect)
        return applicable
