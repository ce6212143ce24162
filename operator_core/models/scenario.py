"""Night scenario — the authored content of one night."""

from typing import List, Optional

from pydantic import BaseModel, Field

from operator_core.models.calls import CallData, CallerData
from operator_core.models.end_state import EndStateDefinition, ScenarioEnding
from operator_core.models.evidence import EvidenceTemplate
from operator_core.models.flags import NightFlagsDefinition
from operator_core.models.trust import TrustGraphData


class DispatchTimingFlag(BaseModel):
    """Set when dispatch happens at or before `max_minute`."""

    flag_id: str
    max_minute: int


class DispatchConfig(BaseModel):
    dispatch_flag_id: str = "emergency_dispatched"
    timing_flags: List[DispatchTimingFlag] = []   # First match in ascending max_minute wins


class NightScenarioData(BaseModel):
    """Everything the core needs to run one night."""

    scenario_id: str
    night_id: str = ""
    title: str = ""
    description: str = ""

    start_time_minutes: int = 1320                # 22:00
    end_time_minutes: int = 360                   # 06:00 next day
    real_seconds_per_game_minute: float = Field(gt=0, default=2.0)

    callers: List[CallerData] = []
    calls: List[CallData] = []
    evidence_templates: List[EvidenceTemplate] = []
    trust_graph: TrustGraphData = TrustGraphData()
    flags: NightFlagsDefinition = NightFlagsDefinition()
    end_state: Optional[EndStateDefinition] = None
    endings: List[ScenarioEnding] = []
    dispatch: DispatchConfig = DispatchConfig()

    def get_call(self, call_id: str) -> Optional[CallData]:
        return next((c for c in self.calls if c.call_id == call_id), None)

    def get_caller(self, caller_id: str) -> Optional[CallerData]:
        return next((c for c in self.callers if c.caller_id == caller_id), None)

    def get_calls_at_time(self, minutes: int) -> List[CallData]:
        return [c for c in self.calls if c.incoming_time_minutes == minutes]
