"""End-state definitions — how a night's flags resolve to a narrative outcome."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from operator_core.models.conditions import ComparisonOperator, compare
from operator_core.models.flags import FlagCategory

DEFAULT_ENDING_ID = "ending_neutral"


class EndStateType(str, Enum):
    # Night 01
    CONTAINED = "contained"
    EXPOSED = "exposed"
    COMPLICIT = "complicit"
    FLAGGED = "flagged"
    ABSORBED = "absorbed"
    # Night 02
    VIGILANT = "vigilant"
    COMPLIANT = "compliant"
    CONNECTED = "connected"
    ISOLATED = "isolated"
    ROUTINE = "routine"
    # Night 03
    CROSSROADS = "crossroads"
    INTERVENTION = "intervention"
    DISCLOSURE = "disclosure"
    SILENCE = "silence"
    # Night 04
    WITNESS_CONNECTED = "witness_connected"
    WITNESS_ONLY = "witness_only"
    CONNECTED_ONLY = "connected_only"
    NEITHER = "neither"
    # Night 05
    VOICE_REACHED = "voice_reached"
    VOICE_DISTANT = "voice_distant"
    VOICE_LOST = "voice_lost"
    # Night 06
    STORM_PREPARED = "storm_prepared"
    STORM_AWARE = "storm_aware"
    STORM_DISTANT = "storm_distant"
    STORM_UNAWARE = "storm_unaware"
    # Night 07
    MISAKI_PROTECTED = "misaki_protected"
    MISAKI_SAFE_UNAWARE = "misaki_safe_unaware"
    MISAKI_TAKEN = "misaki_taken"
    COLLAPSE_WITNESSED = "collapse_witnessed"
    # Night 08
    TRUTH_SEEKER = "truth_seeker"
    INFORMED_CAUTION = "informed_caution"
    SILENT_WITNESS = "silent_witness"
    UNAWARE_SURVIVOR = "unaware_survivor"
    # Night 09
    FULL_ALLIANCE = "full_alliance"
    ACTIVE_ALLIANCE = "active_alliance"
    PASSIVE_TRUTH = "passive_truth"
    WHISTLEBLOWER_SAVED = "whistleblower_saved"
    WHISTLEBLOWER_ENDANGERED = "whistleblower_endangered"
    MISAKI_DISCOVERED = "misaki_discovered"
    UNCERTAIN_FUTURE = "uncertain_future"
    # Night 10
    TRUTH_DAWN = "truth_dawn"
    INVESTIGATION_CONTINUES = "investigation_continues"
    INTO_DARKNESS = "into_darkness"
    UNCERTAIN_DAWN = "uncertain_dawn"
    TRUTH_REVEALED = "truth_revealed"


class ScoreCondition(BaseModel):
    """`score(category) <comparison> value`."""

    category: FlagCategory = FlagCategory.ESCALATION
    comparison: ComparisonOperator = ComparisonOperator.GREATER_OR_EQUAL
    value: int = 0

    def evaluate(self, current_score: int) -> bool:
        return compare(current_score, self.comparison, self.value)


class FlagCondition(BaseModel):
    flag_id: str
    required_value: bool = True


class EndStateCondition(BaseModel):
    """All score and flag conditions must hold. Lower priority is checked first."""

    end_state: EndStateType = EndStateType.CONTAINED
    priority: int = 100
    score_conditions: List[ScoreCondition] = []
    flag_conditions: List[FlagCondition] = []
    description: str = ""


class EndingMapping(BaseModel):
    """End-state + victim survival → ending id. Empty string = not mapped."""

    end_state: EndStateType
    ending_id_if_survived: str = ""
    ending_id_if_died: str = ""
    ending_id_regardless: str = ""          # Wins over both when set


class VictimSurvivalCondition(BaseModel):
    requires_dispatch: bool = True
    max_dispatch_time_minutes: int = 169    # 02:49
    dispatch_flag_id: Optional[str] = None  # When set, the flag must also be set


class ScenarioEnding(BaseModel):
    """A concrete ending the player sees."""

    ending_id: str
    title: str = ""
    description: str = ""
    ending_type: str = "neutral"


class EndStateDefinition(BaseModel):
    """Per-night end-state rules and ending table."""

    night_id: str = ""
    conditions: List[EndStateCondition] = []
    ending_mappings: List[EndingMapping] = []
    victim_survival: VictimSurvivalCondition = VictimSurvivalCondition()
    default_end_state: EndStateType = EndStateType.CONTAINED
    default_ending_id: str = DEFAULT_ENDING_ID
    endings: List[ScenarioEnding] = []

    def get_sorted_conditions(self) -> List[EndStateCondition]:
        """Conditions in ascending priority; ties keep authored order."""
        return sorted(self.conditions, key=lambda c: c.priority)

    def get_ending_by_id(self, ending_id: str) -> Optional[ScenarioEnding]:
        return next((e for e in self.endings if e.ending_id == ending_id), None)

    def get_ending_mapping(self, end_state: EndStateType) -> Optional[EndingMapping]:
        return next((m for m in self.ending_mappings if m.end_state == end_state), None)

    def get_ending_id(self, end_state: EndStateType, victim_survived: bool) -> str:
        mapping = self.get_ending_mapping(end_state)
        if mapping is None:
            return self.default_ending_id

        if mapping.ending_id_regardless:
            return mapping.ending_id_regardless

        ending_id = mapping.ending_id_if_survived if victim_survived else mapping.ending_id_if_died
        return ending_id or self.default_ending_id


class EndingResult(BaseModel):
    """Outcome of resolving a night."""

    end_state: EndStateType
    victim_survived: bool
    ending_id: str
    ending: Optional[ScenarioEnding] = None
    dispatch_minute: Optional[int] = None
