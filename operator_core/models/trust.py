"""Trust graph model — directed trust edges and caller assumptions."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from operator_core.models.conditions import StoryEffect

TRUST_MIN = -100
TRUST_MAX = 100


class TrustTargetType(str, Enum):
    OPERATOR = "operator"
    OTHER_CALLER = "other_caller"
    ASSUMPTION = "assumption"
    ORGANIZATION = "organization"


class TrustLevel(str, Enum):
    HOSTILE = "hostile"
    DISTRUSTFUL = "distrustful"
    SUSPICIOUS = "suspicious"
    NEUTRAL = "neutral"
    TENTATIVE = "tentative"
    TRUSTING = "trusting"
    DEVOTED = "devoted"


# Upper bound (inclusive) of each tier; anything above the last is DEVOTED
TRUST_THRESHOLDS = [
    (-75, TrustLevel.HOSTILE),
    (-50, TrustLevel.DISTRUSTFUL),
    (-25, TrustLevel.SUSPICIOUS),
    (25, TrustLevel.NEUTRAL),
    (50, TrustLevel.TENTATIVE),
    (75, TrustLevel.TRUSTING),
]


def trust_level_for(value: int) -> TrustLevel:
    """Map a trust value to its discrete tier."""
    for upper, level in TRUST_THRESHOLDS:
        if value <= upper:
            return level
    return TrustLevel.DEVOTED


class TrustHistoryEntry(BaseModel):
    delta: int
    reason: str = ""


class TrustEdge(BaseModel):
    """One-directional trust from `from_id` to `to_id`."""

    from_id: str
    to_id: str
    target_type: TrustTargetType = TrustTargetType.OPERATOR
    trust_value: int = Field(ge=TRUST_MIN, le=TRUST_MAX, default=0)
    trust_level: TrustLevel = TrustLevel.NEUTRAL
    history: List[TrustHistoryEntry] = []   # Append-only

    def apply_delta(self, delta: int, reason: str) -> None:
        """Add delta (clamped), recompute the tier, record the change."""
        self.trust_value = max(TRUST_MIN, min(TRUST_MAX, self.trust_value + delta))
        self.trust_level = trust_level_for(self.trust_value)
        self.history.append(TrustHistoryEntry(delta=delta, reason=reason))


class OperatorTrustSeed(BaseModel):
    """Starting trust a caller holds toward the operator."""

    caller_id: str
    trust_value: int = Field(ge=TRUST_MIN, le=TRUST_MAX, default=0)


class CallerAssumption(BaseModel):
    """Something a caller believes. Can be disproven during play."""

    assumption_id: str
    holder_caller_id: str
    content: str = ""
    is_true: bool = False
    confidence: int = Field(ge=0, le=100, default=50)
    on_disproven: List[StoryEffect] = []
    is_disproven: bool = False


class TrustGraphData(BaseModel):
    """Initial trust state of a scenario."""

    initial_edges: List[TrustEdge] = []             # Caller → caller
    initial_operator_trust: List[OperatorTrustSeed] = []
    initial_assumptions: List[CallerAssumption] = []

    def get_initial_trust(self, from_id: str, to_id: str) -> Optional[TrustEdge]:
        return next(
            (e for e in self.initial_edges if e.from_id == from_id and e.to_id == to_id),
            None,
        )

    def get_initial_operator_trust(self, caller_id: str) -> Optional[OperatorTrustSeed]:
        return next((s for s in self.initial_operator_trust if s.caller_id == caller_id), None)
