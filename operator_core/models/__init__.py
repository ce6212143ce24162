"""Operator core data models."""

from operator_core.models.calls import (
    CallData,
    CallerData,
    CallSegment,
    CallState,
    ResponseData,
)
from operator_core.models.clock import ClockState
from operator_core.models.conditions import (
    ComparisonOperator,
    EffectOperation,
    StoryCondition,
    StoryEffect,
    VariableType,
)
from operator_core.models.config import CoreConfig
from operator_core.models.end_state import (
    EndingMapping,
    EndingResult,
    EndStateCondition,
    EndStateDefinition,
    EndStateType,
    FlagCondition,
    ScenarioEnding,
    ScoreCondition,
    VictimSurvivalCondition,
)
from operator_core.models.evidence import (
    EvidenceData,
    EvidenceReliability,
    EvidenceTemplate,
    EvidenceType,
)
from operator_core.models.flags import (
    FlagCategory,
    FlagDefinition,
    FlagState,
    MutualExclusionRule,
    NightFlagsDefinition,
    NightFlagSnapshot,
)
from operator_core.models.persistence import (
    CrossNightState,
    KeyDecision,
    MidNightSnapshot,
    NightEffect,
    NightEffectsDefinition,
    NightResultRecord,
    NightResultSummary,
    OperatorSaveData,
    PersistentFlag,
)
from operator_core.models.scenario import (
    DispatchConfig,
    DispatchTimingFlag,
    NightScenarioData,
)
from operator_core.models.trust import (
    CallerAssumption,
    OperatorTrustSeed,
    TrustEdge,
    TrustGraphData,
    TrustHistoryEntry,
    TrustLevel,
    TrustTargetType,
)

__all__ = [
    "CallData",
    "CallerAssumption",
    "CallerData",
    "CallSegment",
    "CallState",
    "ClockState",
    "ComparisonOperator",
    "CoreConfig",
    "CrossNightState",
    "DispatchConfig",
    "DispatchTimingFlag",
    "EffectOperation",
    "EndingMapping",
    "EndingResult",
    "EndStateCondition",
    "EndStateDefinition",
    "EndStateType",
    "EvidenceData",
    "EvidenceReliability",
    "EvidenceTemplate",
    "EvidenceType",
    "FlagCategory",
    "FlagCondition",
    "FlagDefinition",
    "FlagState",
    "KeyDecision",
    "MidNightSnapshot",
    "MutualExclusionRule",
    "NightEffect",
    "NightEffectsDefinition",
    "NightFlagsDefinition",
    "NightFlagSnapshot",
    "NightResultRecord",
    "NightResultSummary",
    "NightScenarioData",
    "OperatorSaveData",
    "PersistentFlag",
    "ResponseData",
    "ScenarioEnding",
    "ScoreCondition",
    "StoryCondition",
    "StoryEffect",
    "OperatorTrustSeed",
    "TrustEdge",
    "TrustGraphData",
    "TrustHistoryEntry",
    "TrustLevel",
    "TrustTargetType",
    "VariableType",
    "VictimSurvivalCondition",
]
