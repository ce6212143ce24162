"""
End-to-end test: one full night and the night after it.

The mother calls at 01:45 about her missing daughter. Asking where the
daughter was surfaces the alibi; dispatching help before 02:49 saves her.
The neighbor calls at 02:20 and, left ringing, is missed. The night
resolves to FLAGGED with the rescue ending, and the police call carries
into night 2.
"""

from operator_core.events import EventType
from operator_core.models.end_state import EndStateType
from operator_core.models.persistence import CrossNightState, MidNightSnapshot
from operator_core.persistence.cross_night import record_night
from operator_core.session import OperatorSession


class TestFullNight:
    def setup_method(self):
        self.session = OperatorSession()

    def _play_rescue(self, scenario):
        session = self.session
        session.load_night(scenario)

        session.update(5.0)
        assert session.calls.get_call_state("call_mother") is not None
        assert session.answer_call("call_mother") is True
        assert session.select_response("ask_where") is True

        session.trust.modify_assumption_confidence("daughter_safe", -100)
        assert session.select_response("send_help") is True

        session.update(40.0)
        session.update(60.0)

    def test_rescue_night(self, night_scenario):
        self._play_rescue(night_scenario)
        session = self.session

        assert session.is_ended is True
        assert session.result.end_state == EndStateType.FLAGGED
        assert session.result.victim_survived is True
        assert session.result.ending_id == "ending_rescue"
        assert session.result.ending.title == "Sirens at Dawn"
        assert session.result.dispatch_minute == 105

    def test_clock_ratio_comes_from_scenario(self, night_scenario):
        self.session.load_night(night_scenario)
        assert self.session.clock.state.real_seconds_per_game_minute == 1.0
        self.session.update(5.0)
        assert self.session.clock.current_minutes == 105

    def test_rescue_night_state_along_the_way(self, night_scenario):
        self._play_rescue(night_scenario)
        flags = self.session.flags

        assert flags.get_flag("called_police") is True
        assert flags.get_flag("emergency_dispatched") is True
        assert flags.get_flag("dispatch_by_0249") is True
        assert flags.get_flag("mother_knows") is True
        assert flags.get_flag("ignored_neighbor") is True
        assert self.session.evidence.has_evidence("alibi")
        assert self.session.trust.get_operator_trust("mother") == 10
        assert [c.call_id for c in self.session.calls.missed_calls] == ["call_neighbor"]

    def test_night_summary(self, night_scenario):
        assert self.session.night_summary() is None
        self._play_rescue(night_scenario)

        summary = self.session.night_summary()
        assert summary.night_id == "night_01"
        assert summary.end_state == EndStateType.FLAGGED
        assert [f.flag_id for f in summary.persistent_flags] == ["called_police"]
        assert [(d.decision_id, d.chosen_option) for d in summary.key_decisions] == [
            ("first_response", "send_help"),
        ]
        assert summary.collected_evidence_ids == ["alibi"]

    def test_reassurance_night(self, night_scenario):
        session = self.session
        session.load_night(night_scenario)
        session.update(5.0)
        session.answer_call("call_mother")
        session.select_response("reassure")
        session.update(100.0)

        assert session.result.end_state == EndStateType.CONTAINED
        assert session.result.ending_id == "ending_quiet"
        assert session.result.victim_survived is False
        assert len(session.bus.recent_of_type(EventType.SCENARIO_ENDED)) == 1

    def test_dispatch_cancels_reassurance(self, night_scenario):
        session = self.session
        session.load_night(night_scenario)
        session.set_flag("reassured_mother")
        session.update(5.0)
        session.answer_call("call_mother")
        session.select_response("ask_where")
        session.select_response("send_help")

        assert session.flags.get_flag("reassured_mother") is False
        assert session.flags.get_cancelled_flags("called_police") == ["reassured_mother"]

    def test_state_view(self, night_scenario):
        session = self.session
        session.load_night(night_scenario)
        session.update(5.0)
        session.answer_call("call_mother")

        state = session.state()
        assert state["night_id"] == "night_01"
        assert state["formatted_time"] == "01:45"
        assert state["current_call_id"] == "call_mother"
        assert state["current_segment_id"] == "greeting"
        assert state["available_response_ids"] == ["ask_where", "reassure"]
        assert state["is_ended"] is False
        assert state["result"] is None

    def test_load_night_resets_previous_night(self, night_scenario):
        self._play_rescue(night_scenario)
        self.session.load_night(night_scenario)

        assert self.session.is_ended is False
        assert self.session.clock.current_minutes == 100
        assert self.session.clock.dispatch_minute is None
        assert self.session.flags.get_set_flags() == []
        assert self.session.calls.missed_calls == []


class TestMidNightRestore:
    def setup_method(self):
        self.session = OperatorSession()

    def test_restore_skips_delivered_calls(self, night_scenario):
        session = self.session
        session.load_night(night_scenario)
        session.update(5.0)
        session.set_flag("reassured_mother")
        session.update(5.0)
        snapshot = session.mid_night_snapshot()
        assert snapshot.current_minutes == 110

        session.update(40.0)
        session.load_night(night_scenario)
        assert session.restore_mid_night(snapshot) is True
        assert session.clock.current_minutes == 110
        assert session.flags.get_flag("reassured_mother") is True

        session.update(35.0)
        triggered = [e.payload["call_id"] for e in session.bus.recent_of_type(EventType.CALL_TRIGGERED)]
        assert triggered == ["call_neighbor"]

    def test_restore_recovers_dispatch_minute(self, night_scenario):
        session = self.session
        session.load_night(night_scenario)
        session.update(5.0)
        session.answer_call("call_mother")
        session.select_response("ask_where")
        session.select_response("send_help")
        snapshot = session.mid_night_snapshot()

        restored = OperatorSession()
        restored.load_night(night_scenario)
        assert restored.restore_mid_night(snapshot) is True
        assert restored.clock.dispatch_minute == 105

        result = restored.force_end()
        assert result.victim_survived is True
        assert result.ending_id == "ending_rescue"

    def test_restore_without_dispatch_clears_record(self, night_scenario):
        session = self.session
        session.load_night(night_scenario)
        snapshot = session.mid_night_snapshot()
        session.record_dispatch()
        assert session.restore_mid_night(snapshot) is True
        assert session.clock.dispatch_minute is None

    def test_restore_rejects_other_night(self, night_scenario):
        self.session.load_night(night_scenario)
        snapshot = MidNightSnapshot(night_id="night_07", current_minutes=150)
        assert self.session.restore_mid_night(snapshot) is False
        assert self.session.clock.current_minutes == 100


class TestCrossNight:
    def test_outcome_shapes_next_night(self, night_scenario, follow_up_scenario, night_effects):
        first = OperatorSession()
        first.load_night(night_scenario)
        first.update(5.0)
        first.answer_call("call_mother")
        first.select_response("ask_where")
        first.select_response("send_help")
        first.force_end()

        playthrough = CrossNightState()
        record_night(playthrough, first.night_summary())
        playthrough.current_night_id = "night_02"

        second = OperatorSession()
        second.load_night(follow_up_scenario, night_effects=night_effects, cross_night=playthrough)

        assert [e.effect_id for e in second.applied_night_effects] == ["police_remember"]
        assert second.flags.get_flag("called_police") is True
        assert second.flags.get_flag_state("called_police").set_minute == 105
        assert second.flags.get_flag("police_remember_you") is True
        assert second.flags.get_flag("nothing_happened") is False

        second.update(25.0)
        triggered = [e.payload["call_id"] for e in second.bus.recent_of_type(EventType.CALL_TRIGGERED)]
        assert triggered == ["routine", "police_follow_up"]
