"""Cross-night state — carrying outcomes and persistent flags from one night into the next."""

import logging
from typing import List

from operator_core.flags.store import FlagStore
from operator_core.models.flags import FlagState, NightFlagSnapshot
from operator_core.models.persistence import (
    CrossNightState,
    NightEffect,
    NightEffectsDefinition,
    NightResultSummary,
    PersistentFlag,
)
from operator_core.world.orchestrator import WorldStateOrchestrator

logger = logging.getLogger(__name__)


def set_persistent_flag(state: CrossNightState, flag_id: str, origin_night_id: str, set_minute: int) -> None:
    existing = next((f for f in state.persistent_flags if f.flag_id == flag_id), None)
    if existing is not None:
        existing.is_set = True
        existing.set_minute = set_minute
        return
    state.persistent_flags.append(PersistentFlag(
        flag_id=flag_id,
        origin_night_id=origin_night_id,
        set_minute=set_minute,
        is_set=True,
    ))


def record_night(state: CrossNightState, summary: NightResultSummary) -> None:
    """
    Fold a finished night into the playthrough: replace any earlier result
    for the same night, mark its persistent flags, and collect its evidence.
    """
    state.night_results = [r for r in state.night_results if r.night_id != summary.night_id]
    state.night_results.append(summary)

    for flag in summary.persistent_flags:
        if flag.is_set:
            set_persistent_flag(state, flag.flag_id, summary.night_id, flag.set_minute)

    for evidence_id in summary.collected_evidence_ids:
        if evidence_id not in state.all_collected_evidence:
            state.all_collected_evidence.append(evidence_id)

    logger.info(
        "Recorded %s as %s (%d persistent flags)",
        summary.night_id, summary.end_state.value, len(summary.persistent_flags),
    )


def persistent_snapshot(state: CrossNightState) -> NightFlagSnapshot:
    """The playthrough's persistent flags, in the shape FlagStore.import_persistent takes."""
    return NightFlagSnapshot(
        night_id=state.current_night_id,
        flag_states=[
            FlagState(flag_id=f.flag_id, is_set=True, set_minute=f.set_minute)
            for f in state.persistent_flags if f.is_set
        ],
    )


def apply_night_effects(
    definition: NightEffectsDefinition,
    state: CrossNightState,
    flags: FlagStore,
    orchestrator: WorldStateOrchestrator,
    at_minute: int = 0,
) -> List[NightEffect]:
    """Apply every effect earned by earlier nights. Returns the effects applied."""
    applied = definition.get_applicable_effects(state)
    for effect in applied:
        logger.info("Applying night effect %s from %s", effect.effect_id, effect.source_night_id)
        flags.set_flags(effect.set_flags, at_minute)
        for call_id in effect.enable_call_ids:
            orchestrator.enable_call(call_id)
        for call_id in effect.disable_call_ids:
            orchestrator.disable_call(call_id)
    return applied
