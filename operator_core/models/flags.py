"""Flags — named boolean facts grouped into weighted scoring categories."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel


class FlagCategory(str, Enum):
    REASSURANCE = "reassurance"         # Gave false reassurance
    DISCLOSURE = "disclosure"           # Shared information between calls
    ESCALATION = "escalation"           # Acted, or put it off
    ALIGNMENT = "alignment"             # Trust in the system
    EVIDENCE = "evidence"               # Gathered and connected information
    CONTRADICTION = "contradiction"     # Noticed a story changing
    FORESHADOWING = "foreshadowing"     # Matters on a later night
    EVENT = "event"                     # Plain state tracking
    DISPATCH = "dispatch"               # Dispatch timing
    THREAT = "threat"
    NIGHT01_EFFECT = "night01_effect"
    NIGHT02_EFFECT = "night02_effect"
    NIGHT03_EFFECT = "night03_effect"
    NIGHT04_EFFECT = "night04_effect"


class FlagDefinition(BaseModel):
    """Static definition of a flag."""

    flag_id: str
    category: FlagCategory = FlagCategory.EVENT
    description: str = ""
    weight: int = 1
    persists_across_nights: bool = False
    cancels_flags: List[str] = []           # Cleared when this flag is set


class MutualExclusionRule(BaseModel):
    """When `when_flag_set` is set, every flag in `cancel_flags` is cleared."""

    when_flag_set: str
    cancel_flags: List[str] = []


class FlagState(BaseModel):
    """Runtime state of a flag. Also the persisted flag record."""

    flag_id: str
    is_set: bool = False
    set_minute: int = 0                     # In-game minute the flag was set


class NightFlagsDefinition(BaseModel):
    """All flag definitions and exclusion rules for one night."""

    night_id: str = ""
    flag_definitions: List[FlagDefinition] = []
    mutual_exclusion_rules: List[MutualExclusionRule] = []

    def get_flag_definition(self, flag_id: str) -> Optional[FlagDefinition]:
        return next((f for f in self.flag_definitions if f.flag_id == flag_id), None)

    def get_flags_by_category(self, category: FlagCategory) -> List[FlagDefinition]:
        return [f for f in self.flag_definitions if f.category == category]

    def get_cancelled_flags(self, flag_id: str) -> List[str]:
        """
        Flags to clear when `flag_id` is set: the definition's own cancel
        list followed by every matching exclusion rule. Unknown ids yield
        an empty list.
        """
        result: List[str] = []
        definition = self.get_flag_definition(flag_id)
        if definition:
            result.extend(definition.cancels_flags)
        for rule in self.mutual_exclusion_rules:
            if rule.when_flag_set == flag_id:
                result.extend(rule.cancel_flags)
        return result


class NightFlagSnapshot(BaseModel):
    """Flag states of one night, for save/restore and cross-night carry-over."""

    night_id: str = ""
    flag_states: List[FlagState] = []
    calculated_scores: Dict[FlagCategory, int] = {}
