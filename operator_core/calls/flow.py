"""
Call Flow — the per-call dialogue state machine.

Updated by: session (incoming calls, timers), UI commands
Queried by: UI (current call, available responses)

Behavioral Contract:
- At most one call is active; answering or resuming holds the active call
- A call whose trigger conditions fail is dropped, never queued
- An incoming call never auto-answers; ring timeout moves it to missed
- A response is available when its conditions hold and every required
  evidence id is discovered; availability is re-checked at selection time
- Response processing order: selected event → effects → flag lists →
  dispatch → trust → evidence discovery → evidence presentation →
  end call or transition
- Unknown call, segment or response ids are logged and ignored
"""

import logging
from typing import Dict, List, Optional

from operator_core.clock.clock import Clock
from operator_core.events import EventBus, EventType
from operator_core.evidence.store import EvidenceStore
from operator_core.flags.store import FlagStore
from operator_core.models.calls import CallData, CallSegment, CallState, ResponseData
from operator_core.models.persistence import KeyDecision
from operator_core.models.scenario import DispatchConfig
from operator_core.story.state import StoryState
from operator_core.trust.graph import TrustGraph

logger = logging.getLogger(__name__)


class CallFlow:
    """Dialogue state machine over the shared stores."""

    def __init__(
        self,
        story: StoryState,
        flags: FlagStore,
        evidence: EvidenceStore,
        trust: TrustGraph,
        clock: Clock,
        bus: Optional[EventBus] = None,
    ):
        self.story = story
        self.flags = flags
        self.evidence = evidence
        self.trust = trust
        self.clock = clock
        self.bus = bus or flags.bus
        self.dispatch = DispatchConfig()

        self._current_call: Optional[CallData] = None
        self._current_segment: Optional[CallSegment] = None
        self._incoming: List[CallData] = []
        self._on_hold: List[CallData] = []
        self._history: List[CallData] = []
        self._missed: List[CallData] = []
        self._call_states: Dict[str, CallState] = {}
        self._held_segments: Dict[str, Optional[CallSegment]] = {}
        self._key_decisions: List[KeyDecision] = []

        self._ring_elapsed: Dict[str, float] = {}
        self._response_elapsed = 0.0
        self._timed_out_segment: Optional[CallSegment] = None

    def configure(self, dispatch: Optional[DispatchConfig] = None) -> None:
        """Reset all call state for a new night."""
        self.dispatch = dispatch or DispatchConfig()
        self.clear()

    def clear(self) -> None:
        self._current_call = None
        self._current_segment = None
        self._incoming.clear()
        self._on_hold.clear()
        self._history.clear()
        self._missed.clear()
        self._call_states.clear()
        self._held_segments.clear()
        self._key_decisions.clear()
        self._ring_elapsed.clear()
        self._response_elapsed = 0.0
        self._timed_out_segment = None

    # --- Queries ---

    @property
    def current_call(self) -> Optional[CallData]:
        return self._current_call

    @property
    def current_segment(self) -> Optional[CallSegment]:
        return self._current_segment

    @property
    def incoming_calls(self) -> List[CallData]:
        return list(self._incoming)

    @property
    def on_hold_calls(self) -> List[CallData]:
        return list(self._on_hold)

    @property
    def call_history(self) -> List[CallData]:
        return list(self._history)

    @property
    def missed_calls(self) -> List[CallData]:
        return list(self._missed)

    @property
    def key_decisions(self) -> List[KeyDecision]:
        return list(self._key_decisions)

    def get_call_state(self, call_id: str) -> Optional[CallState]:
        return self._call_states.get(call_id)

    def get_missed_call_count(self) -> int:
        return len(self._missed)

    def is_response_available(self, response: ResponseData) -> bool:
        if not self.story.evaluate_all(response.conditions):
            return False
        return all(self.evidence.has_evidence(e) for e in response.required_evidence_ids)

    def get_available_responses(self) -> List[ResponseData]:
        if self._current_segment is None:
            return []
        return [r for r in self._current_segment.responses if self.is_response_available(r)]

    # --- Call lifecycle ---

    def add_incoming_call(self, call: CallData) -> bool:
        """Queue a call if its trigger conditions hold."""
        if call.call_id in self._call_states:
            logger.warning("Call %s is already known; ignoring", call.call_id)
            return False
        if not self.story.evaluate_all(call.trigger_conditions):
            logger.info("Call %s dropped: trigger conditions not met", call.call_id)
            return False

        self._incoming.append(call)
        self._call_states[call.call_id] = CallState.INCOMING
        self._ring_elapsed[call.call_id] = 0.0
        logger.info("Incoming call %s from %s", call.call_id, call.caller_name)
        self.bus.emit(EventType.INCOMING_CALL, call_id=call.call_id, caller_id=call.caller_id)
        return True

    def answer_call(self, call_id: str) -> bool:
        call = self._find(self._incoming, call_id)
        if call is None:
            logger.warning("Cannot answer %s: not incoming", call_id)
            return False

        if self._current_call is not None:
            self.hold_call()

        self._incoming.remove(call)
        self._ring_elapsed.pop(call_id, None)
        self._activate(call)
        logger.info("Answered call %s", call_id)

        start = call.get_start_segment()
        if start is not None:
            self.transition_to_segment(start)
        else:
            logger.warning("Call %s has no start segment", call_id)

        self.bus.emit(EventType.CALL_STARTED, call_id=call_id, caller_id=call.caller_id)
        return True

    def hold_call(self) -> bool:
        if self._current_call is None:
            logger.warning("Cannot hold: no active call")
            return False

        call = self._current_call
        self._held_segments[call.call_id] = self._current_segment
        self._on_hold.append(call)
        self._call_states[call.call_id] = CallState.ON_HOLD
        self._current_call = None
        self._current_segment = None
        self._response_elapsed = 0.0
        self._timed_out_segment = None

        logger.info("Call %s on hold", call.call_id)
        self.bus.emit(EventType.CALL_HELD, call_id=call.call_id)
        return True

    def resume_call(self, call_id: str) -> bool:
        call = self._find(self._on_hold, call_id)
        if call is None:
            logger.warning("Cannot resume %s: not on hold", call_id)
            return False

        if self._current_call is not None:
            self.hold_call()

        self._on_hold.remove(call)
        self._activate(call)
        self._current_segment = self._held_segments.pop(call_id, None)
        logger.info("Resumed call %s", call_id)

        self.bus.emit(EventType.CALL_STARTED, call_id=call_id, caller_id=call.caller_id)
        available = self.get_available_responses()
        if available:
            self.bus.emit(
                EventType.RESPONSES_PRESENTED,
                call_id=call_id,
                response_ids=[r.response_id for r in available],
            )
        return True

    def end_call(self) -> bool:
        if self._current_call is None:
            logger.warning("Cannot end: no active call")
            return False

        call = self._current_call
        self._history.append(call)
        self._call_states[call.call_id] = CallState.ENDED
        self.story.apply_all(call.on_end_effects)

        self._current_call = None
        self._current_segment = None
        self._response_elapsed = 0.0
        self._timed_out_segment = None

        logger.info("Call %s ended", call.call_id)
        self.bus.emit(EventType.CALL_ENDED, call_id=call.call_id, state=CallState.ENDED)
        return True

    def timeout_incoming_call(self, call_id: str) -> bool:
        """Move a ringing call to missed and apply its on-missed effects."""
        call = self._find(self._incoming, call_id)
        if call is None:
            return False

        self._incoming.remove(call)
        self._ring_elapsed.pop(call_id, None)
        self._missed.append(call)
        self._call_states[call_id] = CallState.MISSED
        self.story.apply_all(call.on_missed_effects)

        logger.info("Call %s missed", call_id)
        self.bus.emit(EventType.CALL_MISSED, call_id=call_id)
        return True

    def _activate(self, call: CallData) -> None:
        self._current_call = call
        self._current_segment = None
        self._call_states[call.call_id] = CallState.ACTIVE
        self._response_elapsed = 0.0
        self._timed_out_segment = None

    @staticmethod
    def _find(calls: List[CallData], call_id: str) -> Optional[CallData]:
        return next((c for c in calls if c.call_id == call_id), None)

    # --- Segments and responses ---

    def transition_to_segment(self, segment: CallSegment) -> None:
        self._current_segment = segment
        self._response_elapsed = 0.0
        self._timed_out_segment = None

        for evidence_id in segment.auto_discovered_evidence_ids:
            self.evidence.discover_evidence(evidence_id)

        call_id = self._current_call.call_id if self._current_call else None
        logger.debug("Segment %s of call %s", segment.segment_id, call_id)
        self.bus.emit(EventType.SEGMENT_CHANGED, call_id=call_id, segment_id=segment.segment_id)

        available = self.get_available_responses()
        if available:
            self.bus.emit(
                EventType.RESPONSES_PRESENTED,
                call_id=call_id,
                response_ids=[r.response_id for r in available],
            )

    def select_response(self, response_id: str) -> bool:
        if self._current_call is None or self._current_segment is None:
            logger.warning("Cannot select %s: no active segment", response_id)
            return False

        response = self._current_segment.get_response(response_id)
        if response is None:
            logger.warning(
                "Unknown response %s in segment %s", response_id, self._current_segment.segment_id
            )
            return False
        if not self.is_response_available(response):
            logger.warning("Response %s is not available", response_id)
            return False

        self._process_response(response)
        return True

    def select_silence(self) -> bool:
        """
        Fire the segment's silence response. Without one, fall back to the
        timeout response if it is currently available.
        """
        segment = self._current_segment
        if self._current_call is None or segment is None:
            return False

        silence = next((r for r in segment.responses if r.is_silence), None)
        if silence is not None:
            self._process_response(silence)
            return True

        timeout = segment.get_response(segment.timeout_response_id) if segment.timeout_response_id else None
        if timeout is not None and self.is_response_available(timeout):
            self._process_response(timeout)
            return True

        logger.debug("No silence response in segment %s", segment.segment_id)
        return False

    def _process_response(self, response: ResponseData) -> None:
        call = self._current_call
        minute = self.clock.current_minutes

        self.bus.emit(
            EventType.RESPONSE_SELECTED,
            call_id=call.call_id,
            response_id=response.response_id,
            is_silence=response.is_silence,
        )

        if response.key_decision_id:
            self._key_decisions.append(KeyDecision(
                decision_id=response.key_decision_id,
                chosen_option=response.response_id,
                related_call_id=call.call_id,
                time_minutes=minute,
            ))

        self.story.apply_all(response.effects)
        for flag_id in response.set_flags:
            if flag_id:
                self.flags.set_flag(flag_id, minute)
        for flag_id in response.clear_flags:
            if flag_id:
                self.flags.clear_flag(flag_id)

        if response.is_dispatch_action:
            self.record_dispatch()

        if response.trust_impact != 0 and call.caller_id:
            self.trust.modify_operator_trust(
                call.caller_id,
                response.trust_impact,
                response.display_text or response.response_id,
            )

        if response.discovers_evidence and response.discovered_evidence_id:
            self.evidence.discover_evidence(response.discovered_evidence_id)

        if response.presents_evidence and response.evidence_id_to_present:
            if self.evidence.use_evidence(response.evidence_id_to_present):
                template = self.evidence.get_template(response.evidence_id_to_present)
                if template is not None:
                    self.story.apply_all(template.use_effects)

        # Effects may have ended the call through a handler
        if self._current_call is not call:
            return

        if response.ends_call:
            self.end_call()
            return

        if response.next_segment_id:
            segment = call.get_segment(response.next_segment_id)
            if segment is None:
                logger.warning(
                    "Unknown segment %s in call %s", response.next_segment_id, call.call_id
                )
                return
            self.transition_to_segment(segment)

    def record_dispatch(self) -> bool:
        """
        Record a dispatch at the current minute and set the dispatch and timing flags.

        Returns False when a dispatch is already recorded.
        """
        if not self.clock.record_dispatch():
            logger.info("Dispatch already recorded; ignoring repeat")
            return False

        minute = self.clock.dispatch_minute
        if self.dispatch.dispatch_flag_id:
            self.flags.set_flag(self.dispatch.dispatch_flag_id, minute)

        for timing in sorted(self.dispatch.timing_flags, key=lambda t: t.max_minute):
            if minute <= timing.max_minute:
                self.flags.set_flag(timing.flag_id, minute)
                break
        return True

    # --- Timers ---

    def update(self, delta_seconds: float) -> None:
        """Advance ring and response timers by real seconds."""
        for call in list(self._incoming):
            if call.ring_duration <= 0:
                continue
            elapsed = self._ring_elapsed.get(call.call_id, 0.0) + delta_seconds
            self._ring_elapsed[call.call_id] = elapsed
            if elapsed >= call.ring_duration:
                self.timeout_incoming_call(call.call_id)

        segment = self._current_segment
        if self._current_call is None or segment is None or segment.response_time_limit <= 0:
            return
        if self._timed_out_segment is segment:
            return
        self._response_elapsed += delta_seconds
        if self._response_elapsed >= segment.response_time_limit:
            logger.info("Response time limit reached in segment %s", segment.segment_id)
            self._timed_out_segment = segment
            self.select_silence()
