"""Shared scenario fixtures."""

import pytest

from operator_core.models.calls import CallData, CallerData, CallSegment, ResponseData
from operator_core.models.conditions import EffectOperation, StoryEffect, VariableType
from operator_core.models.end_state import (
    EndingMapping,
    EndStateCondition,
    EndStateDefinition,
    EndStateType,
    FlagCondition,
    ScenarioEnding,
    VictimSurvivalCondition,
)
from operator_core.models.evidence import EvidenceData, EvidenceTemplate
from operator_core.models.flags import (
    FlagCategory,
    FlagDefinition,
    MutualExclusionRule,
    NightFlagsDefinition,
)
from operator_core.models.persistence import NightEffect, NightEffectsDefinition
from operator_core.models.scenario import DispatchConfig, DispatchTimingFlag, NightScenarioData
from operator_core.models.trust import CallerAssumption, TrustGraphData


def _set_flag(flag_id: str) -> StoryEffect:
    return StoryEffect(
        variable_name=flag_id,
        variable_type=VariableType.BOOLEAN,
        operation=EffectOperation.SET,
    )


def build_night_scenario() -> NightScenarioData:
    """
    A short night: the mother calls at 01:45, the neighbor at 02:20.
    Dispatching help by 02:49 saves the daughter.
    """
    mother = CallerData(caller_id="mother", display_name="Worried Mother")
    neighbor = CallerData(caller_id="neighbor", display_name="Neighbor")

    mother_call = CallData(
        call_id="call_mother",
        caller=mother,
        incoming_time_minutes=105,
        priority=8,
        is_critical=True,
        start_segment_id="greeting",
        segments=[
            CallSegment(segment_id="greeting", responses=[
                ResponseData(
                    response_id="ask_where",
                    discovers_evidence=True,
                    discovered_evidence_id="alibi",
                    trust_impact=10,
                    next_segment_id="details",
                ),
                ResponseData(
                    response_id="reassure",
                    set_flags=["reassured_mother"],
                    key_decision_id="first_response",
                    ends_call=True,
                ),
            ]),
            CallSegment(segment_id="details", responses=[
                ResponseData(
                    response_id="send_help",
                    is_dispatch_action=True,
                    set_flags=["called_police"],
                    key_decision_id="first_response",
                    ends_call=True,
                ),
                ResponseData(response_id="quiet", is_silence=True, ends_call=True),
            ]),
        ],
    )
    neighbor_call = CallData(
        call_id="call_neighbor",
        caller=neighbor,
        incoming_time_minutes=140,
        ring_duration=10.0,
        segments=[CallSegment(segment_id="start", responses=[
            ResponseData(response_id="thanks", ends_call=True),
        ])],
        on_missed_effects=[_set_flag("ignored_neighbor")],
    )

    return NightScenarioData(
        scenario_id="night_01_scenario",
        night_id="night_01",
        title="First Night",
        start_time_minutes=100,
        end_time_minutes=200,
        real_seconds_per_game_minute=1.0,
        callers=[mother, neighbor],
        calls=[mother_call, neighbor_call],
        evidence_templates=[
            EvidenceTemplate(data=EvidenceData(
                evidence_id="alibi",
                content="She said her daughter was at a friend's",
                source_caller_id="mother",
                contradicting_evidence_ids=["receipt"],
            )),
            EvidenceTemplate(data=EvidenceData(evidence_id="receipt", source_caller_id="neighbor")),
        ],
        trust_graph=TrustGraphData(initial_assumptions=[CallerAssumption(
            assumption_id="daughter_safe",
            holder_caller_id="mother",
            content="Her daughter is safe",
            on_disproven=[_set_flag("mother_knows")],
        )]),
        flags=NightFlagsDefinition(
            night_id="night_01",
            flag_definitions=[
                FlagDefinition(
                    flag_id="called_police",
                    category=FlagCategory.ESCALATION,
                    weight=3,
                    persists_across_nights=True,
                ),
                FlagDefinition(flag_id="reassured_mother", category=FlagCategory.REASSURANCE, weight=2),
                FlagDefinition(flag_id="mother_knows", category=FlagCategory.DISCLOSURE),
                FlagDefinition(flag_id="ignored_neighbor", category=FlagCategory.EVENT),
            ],
            mutual_exclusion_rules=[
                MutualExclusionRule(when_flag_set="called_police", cancel_flags=["reassured_mother"]),
            ],
        ),
        end_state=EndStateDefinition(
            night_id="night_01",
            conditions=[
                EndStateCondition(
                    end_state=EndStateType.FLAGGED,
                    priority=0,
                    flag_conditions=[FlagCondition(flag_id="called_police")],
                ),
                EndStateCondition(end_state=EndStateType.CONTAINED, priority=10),
            ],
            ending_mappings=[
                EndingMapping(
                    end_state=EndStateType.FLAGGED,
                    ending_id_if_survived="ending_rescue",
                    ending_id_if_died="ending_too_late",
                ),
                EndingMapping(end_state=EndStateType.CONTAINED, ending_id_regardless="ending_quiet"),
            ],
            victim_survival=VictimSurvivalCondition(
                requires_dispatch=True,
                max_dispatch_time_minutes=169,
                dispatch_flag_id="emergency_dispatched",
            ),
        ),
        endings=[
            ScenarioEnding(ending_id="ending_rescue", title="Sirens at Dawn", ending_type="good"),
            ScenarioEnding(ending_id="ending_quiet", title="A Quiet Night"),
        ],
        dispatch=DispatchConfig(
            dispatch_flag_id="emergency_dispatched",
            timing_flags=[DispatchTimingFlag(flag_id="dispatch_by_0249", max_minute=169)],
        ),
    )


def build_follow_up_scenario() -> NightScenarioData:
    return NightScenarioData(
        scenario_id="night_02_scenario",
        night_id="night_02",
        start_time_minutes=100,
        end_time_minutes=200,
        real_seconds_per_game_minute=1.0,
        calls=[
            CallData(call_id="routine", incoming_time_minutes=110),
            CallData(call_id="police_follow_up", incoming_time_minutes=120, enabled_by_default=False),
        ],
        flags=NightFlagsDefinition(
            night_id="night_02",
            flag_definitions=[FlagDefinition(flag_id="called_police", persists_across_nights=True)],
        ),
    )


def build_night_effects() -> NightEffectsDefinition:
    return NightEffectsDefinition(
        target_night_id="night_02",
        effects=[
            NightEffect(
                effect_id="police_remember",
                source_night_id="night_01",
                target_night_id="night_02",
                required_end_state=EndStateType.FLAGGED,
                required_flags=["called_police"],
                set_flags=["police_remember_you"],
                enable_call_ids=["police_follow_up"],
            ),
            NightEffect(
                effect_id="quiet_aftermath",
                source_night_id="night_01",
                target_night_id="night_02",
                required_end_state=EndStateType.CONTAINED,
                set_flags=["nothing_happened"],
            ),
        ],
    )


@pytest.fixture
def night_scenario() -> NightScenarioData:
    return build_night_scenario()


@pytest.fixture
def follow_up_scenario() -> NightScenarioData:
    return build_follow_up_scenario()


@pytest.fixture
def night_effects() -> NightEffectsDefinition:
    return build_night_effects()
