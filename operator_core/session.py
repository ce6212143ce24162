"""
Operator Session — one playable night wired together.

Owns the shared EventBus and every store, injects them into CallFlow,
the resolver and the orchestrator, and exposes the command and query
surface used by the UI layer.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from operator_core.calls.flow import CallFlow
from operator_core.clock.clock import Clock
from operator_core.end_state.resolver import EndStateResolver
from operator_core.events import Event, EventBus, EventType
from operator_core.evidence.store import EvidenceStore, SimilarityCheck, never_similar
from operator_core.flags.store import FlagStore
from operator_core.models.config import CoreConfig
from operator_core.models.end_state import EndingResult
from operator_core.models.flags import NightFlagSnapshot
from operator_core.models.persistence import (
    CrossNightState,
    MidNightSnapshot,
    NightEffect,
    NightEffectsDefinition,
    NightResultSummary,
)
from operator_core.models.scenario import NightScenarioData
from operator_core.persistence.cross_night import apply_night_effects, persistent_snapshot
from operator_core.story.state import StoryState
from operator_core.trust.graph import TrustGraph
from operator_core.world.orchestrator import WorldStateOrchestrator

logger = logging.getLogger(__name__)


class OperatorSession:
    """All core components for one night, sharing one event bus."""

    def __init__(self, config: Optional[CoreConfig] = None, similarity: SimilarityCheck = never_similar):
        self.config = config or CoreConfig()
        self.bus = EventBus(history_size=self.config.event_history_size)

        self.clock = Clock(self.bus)
        self.flags = FlagStore(self.bus)
        self.trust = TrustGraph(self.bus, operator_id=self.config.operator_id)
        self.evidence = EvidenceStore(
            self.bus,
            similarity=similarity,
            dynamic_prefix=self.config.dynamic_evidence_prefix,
        )
        self.story = StoryState(self.flags, self.clock, self.bus)
        self.calls = CallFlow(self.story, self.flags, self.evidence, self.trust, self.clock, self.bus)
        self.resolver = EndStateResolver(self.flags, self.bus, self.config)
        self.orchestrator = WorldStateOrchestrator(self.clock, self.resolver, self.bus)

        self.scenario: Optional[NightScenarioData] = None
        self.applied_night_effects: List[NightEffect] = []

        self.bus.subscribe(EventType.CALL_TRIGGERED, self._on_call_triggered)
        self.bus.subscribe(EventType.ASSUMPTION_DISPROVEN, self._on_assumption_disproven)

    # --- Lifecycle ---

    def load_night(
        self,
        scenario: NightScenarioData,
        persistent: Optional[NightFlagSnapshot] = None,
        night_effects: Optional[NightEffectsDefinition] = None,
        cross_night: Optional[CrossNightState] = None,
    ) -> None:
        """Initialize every store from a scenario and start the clock."""
        self.scenario = scenario
        self.bus.clear_history()

        self.clock.initialize(
            scenario.start_time_minutes,
            scenario.end_time_minutes,
            scenario.real_seconds_per_game_minute,
        )
        self.flags.initialize(scenario.night_id, scenario.flags)
        self.trust.initialize(scenario.trust_graph)
        self.evidence.clear()
        self.evidence.load_templates(scenario.evidence_templates)
        self.story.reset()
        self.calls.configure(scenario.dispatch)
        self.resolver.initialize(scenario.end_state, scenario.endings)
        self.orchestrator.load_scenario(scenario)

        if persistent is None and cross_night is not None:
            persistent = persistent_snapshot(cross_night)
        if persistent is not None:
            self.flags.import_persistent(persistent)

        self.applied_night_effects = []
        if night_effects is not None and cross_night is not None:
            self.applied_night_effects = apply_night_effects(
                night_effects, cross_night, self.flags, self.orchestrator,
                at_minute=scenario.start_time_minutes,
            )

        self.clock.start()
        self.orchestrator.begin()
        logger.info("Night %s started", scenario.night_id)

    def update(self, delta_seconds: float) -> None:
        """Per-frame entry point: world time first, then call timers."""
        if self.scenario is None:
            return
        self.orchestrator.update(delta_seconds)
        if not self.orchestrator.is_ended:
            self.calls.update(delta_seconds)

    @property
    def is_ended(self) -> bool:
        return self.orchestrator.is_ended

    @property
    def result(self) -> Optional[EndingResult]:
        return self.orchestrator.result

    # --- Event wiring ---

    def _on_call_triggered(self, event: Event) -> None:
        call = event.payload.get("call")
        if call is not None:
            self.calls.add_incoming_call(call)

    def _on_assumption_disproven(self, event: Event) -> None:
        assumption = self.trust.get_assumption(event.payload["assumption_id"])
        if assumption is not None:
            self.story.apply_all(assumption.on_disproven)

    # --- Commands ---

    def answer_call(self, call_id: str) -> bool:
        return self.calls.answer_call(call_id)

    def hold_call(self) -> bool:
        return self.calls.hold_call()

    def resume_call(self, call_id: str) -> bool:
        return self.calls.resume_call(call_id)

    def end_call(self) -> bool:
        return self.calls.end_call()

    def select_response(self, response_id: str) -> bool:
        return self.calls.select_response(response_id)

    def select_silence(self) -> bool:
        return self.calls.select_silence()

    def record_dispatch(self) -> bool:
        return self.calls.record_dispatch()

    def set_flag(self, flag_id: str) -> bool:
        return self.flags.set_flag(flag_id, self.clock.current_minutes)

    def clear_flag(self, flag_id: str) -> bool:
        return self.flags.clear_flag(flag_id)

    def advance_time(self, minutes: int) -> None:
        self.clock.advance_time(minutes)

    def set_time(self, minutes: int) -> None:
        self.clock.set_time(minutes)

    def force_end(self) -> Optional[EndingResult]:
        return self.orchestrator.force_end()

    # --- Snapshots ---

    def mid_night_snapshot(self) -> Optional[MidNightSnapshot]:
        if self.scenario is None:
            return None
        return MidNightSnapshot(
            night_id=self.scenario.night_id,
            current_minutes=self.clock.current_minutes,
            flag_states=self.flags.create_snapshot().flag_states,
        )

    def restore_mid_night(self, snapshot: MidNightSnapshot) -> bool:
        """
        Restore flags and time. Calls scheduled up to that time are not replayed.

        The dispatch minute is recovered from the set_minute of the dispatch flag.
        """
        if self.scenario is None or snapshot.night_id != self.scenario.night_id:
            logger.warning("Snapshot for %s does not match the loaded night", snapshot.night_id)
            return False
        self.flags.restore_from_snapshot(
            NightFlagSnapshot(night_id=snapshot.night_id, flag_states=snapshot.flag_states)
        )
        self.orchestrator.mark_triggered_through(snapshot.current_minutes)
        self.clock.set_time(snapshot.current_minutes)
        self.clock.clear_dispatch_record()
        dispatch_flag = self.scenario.dispatch.dispatch_flag_id
        state = self.flags.get_flag_state(dispatch_flag) if dispatch_flag else None
        if state is not None and state.is_set:
            self.clock.record_dispatch_at(state.set_minute)
        return True

    def night_summary(self) -> Optional[NightResultSummary]:
        """Outcome of the night, once it has ended."""
        result = self.orchestrator.result
        if self.scenario is None or result is None:
            return None
        return NightResultSummary(
            night_id=self.scenario.night_id,
            end_state=result.end_state,
            ending_id=result.ending_id,
            victim_survived=result.victim_survived,
            dispatch_minute=result.dispatch_minute,
            persistent_flags=self.flags.export_persistent().flag_states,
            key_decisions=self.calls.key_decisions,
            collected_evidence_ids=[e.evidence_id for e in self.evidence.get_discovered_evidence()],
            completed_at=datetime.utcnow(),
        )

    # --- Queries ---

    def state(self) -> Dict[str, Any]:
        """Presentation-facing view of the night."""
        call = self.calls.current_call
        segment = self.calls.current_segment
        result = self.orchestrator.result
        return {
            "scenario_id": self.scenario.scenario_id if self.scenario else None,
            "night_id": self.scenario.night_id if self.scenario else None,
            "current_minutes": self.clock.current_minutes,
            "formatted_time": self.clock.formatted_time,
            "remaining_minutes": self.clock.remaining_minutes,
            "dispatch_minute": self.clock.dispatch_minute,
            "current_call_id": call.call_id if call else None,
            "current_segment_id": segment.segment_id if segment else None,
            "available_response_ids": [r.response_id for r in self.calls.get_available_responses()],
            "incoming_call_ids": [c.call_id for c in self.calls.incoming_calls],
            "on_hold_call_ids": [c.call_id for c in self.calls.on_hold_calls],
            "missed_call_ids": [c.call_id for c in self.calls.missed_calls],
            "evidence_ids": [e.evidence_id for e in self.evidence.get_discovered_evidence()],
            "set_flags": self.flags.get_set_flags(),
            "scores": {c.value: s for c, s in self.flags.get_all_scores().items()},
            "is_ended": self.orchestrator.is_ended,
            "result": result.model_dump(mode="json") if result else None,
        }
