"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from operator_core.api.app import create_app
from operator_core.session import OperatorSession


@pytest.fixture
def client():
    """Create a test client with a fresh session."""
    app = create_app(session=OperatorSession())
    return TestClient(app)


@pytest.fixture
def loaded(client, night_scenario):
    """A client with the first night loaded."""
    response = client.post("/night", json={"scenario": night_scenario.model_dump(mode="json")})
    assert response.status_code == 200
    return client


class TestNightEndpoints:
    def test_load_night(self, client, night_scenario):
        response = client.post("/night", json={"scenario": night_scenario.model_dump(mode="json")})
        assert response.status_code == 200
        data = response.json()
        assert data["accepted"] is True
        assert data["state"]["night_id"] == "night_01"
        assert data["state"]["formatted_time"] == "01:40"

    def test_invalid_scenario_rejected(self, client):
        response = client.post("/night", json={"scenario": {"title": "no id"}})
        assert response.status_code == 422

    def test_duplicate_call_ids_rejected(self, client):
        response = client.post("/night", json={"scenario": {
            "scenario_id": "dupes",
            "calls": [{"call_id": "c1"}, {"call_id": "c1"}],
        }})
        assert response.status_code == 422
        assert "Duplicate call id" in response.json()["detail"]

    def test_commands_need_a_night(self, client):
        assert client.post("/tick", json={"delta_seconds": 1.0}).status_code == 409
        assert client.post("/calls/c1/answer").status_code == 409
        assert client.get("/evidence").status_code == 409

    def test_state_without_night(self, client):
        response = client.get("/state")
        assert response.status_code == 200
        assert response.json()["night_id"] is None

    def test_tick(self, loaded):
        response = loaded.post("/tick", json={"delta_seconds": 5.0})
        state = response.json()["state"]
        assert state["current_minutes"] == 105
        assert state["incoming_call_ids"] == ["call_mother"]


class TestCallEndpoints:
    def test_answer_and_respond(self, loaded):
        loaded.post("/tick", json={"delta_seconds": 5.0})

        response = loaded.post("/calls/call_mother/answer")
        assert response.json()["accepted"] is True
        assert response.json()["state"]["current_segment_id"] == "greeting"

        responses = loaded.get("/responses").json()
        assert [r["response_id"] for r in responses] == ["ask_where", "reassure"]

        response = loaded.post("/responses/ask_where")
        state = response.json()["state"]
        assert state["current_segment_id"] == "details"
        assert state["evidence_ids"] == ["alibi"]

    def test_unknown_response_not_accepted(self, loaded):
        loaded.post("/tick", json={"delta_seconds": 5.0})
        loaded.post("/calls/call_mother/answer")
        response = loaded.post("/responses/shout")
        assert response.status_code == 200
        assert response.json()["accepted"] is False

    def test_hold_and_resume(self, loaded):
        loaded.post("/tick", json={"delta_seconds": 5.0})
        loaded.post("/calls/call_mother/answer")

        state = loaded.post("/calls/hold").json()["state"]
        assert state["on_hold_call_ids"] == ["call_mother"]
        assert state["current_call_id"] is None

        state = loaded.post("/calls/call_mother/resume").json()["state"]
        assert state["current_call_id"] == "call_mother"

    def test_silence_and_end(self, loaded):
        loaded.post("/tick", json={"delta_seconds": 5.0})
        loaded.post("/calls/call_mother/answer")
        loaded.post("/responses/ask_where")

        state = loaded.post("/silence").json()["state"]
        assert state["current_call_id"] is None
        assert loaded.post("/calls/end").json()["accepted"] is False


class TestDebugEndpoints:
    def test_set_and_clear_flag(self, loaded):
        state = loaded.post("/debug/flags/called_police").json()["state"]
        assert "called_police" in state["set_flags"]
        assert state["scores"]["escalation"] == 3

        state = loaded.delete("/debug/flags/called_police").json()["state"]
        assert state["set_flags"] == []

    def test_advance_time(self, loaded):
        state = loaded.post("/debug/time/advance", json={"minutes": 20}).json()["state"]
        assert state["current_minutes"] == 120
        assert state["incoming_call_ids"] == ["call_mother"]

    def test_set_time_by_clock_text(self, loaded):
        state = loaded.post("/debug/time/set", json={"time": "02:20"}).json()["state"]
        assert state["current_minutes"] == 140

    def test_set_time_requires_value(self, loaded):
        assert loaded.post("/debug/time/set", json={}).status_code == 422

    def test_dispatch(self, loaded):
        response = loaded.post("/dispatch")
        assert response.json()["accepted"] is True
        assert response.json()["state"]["dispatch_minute"] == 100
        assert "emergency_dispatched" in response.json()["state"]["set_flags"]
        assert "dispatch_by_0249" in response.json()["state"]["set_flags"]
        assert loaded.post("/dispatch").json()["accepted"] is False


class TestQueryEndpoints:
    def test_evidence_lookup(self, loaded):
        assert loaded.get("/evidence/alibi").status_code == 404

        loaded.post("/tick", json={"delta_seconds": 5.0})
        loaded.post("/calls/call_mother/answer")
        loaded.post("/responses/ask_where")

        evidence = loaded.get("/evidence/alibi").json()
        assert evidence["is_discovered"] is True
        assert evidence["source_caller_id"] == "mother"

    def test_trust_edges(self, loaded):
        loaded.post("/tick", json={"delta_seconds": 5.0})
        loaded.post("/calls/call_mother/answer")
        loaded.post("/responses/ask_where")

        edges = loaded.get("/trust/mother").json()
        assert len(edges) == 1
        assert edges[0]["trust_value"] == 10

    def test_ending_and_summary(self, loaded):
        assert loaded.get("/ending").status_code == 404
        assert loaded.get("/summary").status_code == 404

        loaded.post("/tick", json={"delta_seconds": 5.0})
        loaded.post("/calls/call_mother/answer")
        loaded.post("/responses/ask_where")
        loaded.post("/responses/send_help")
        assert loaded.post("/end").json()["accepted"] is True

        ending = loaded.get("/ending").json()
        assert ending["end_state"] == "flagged"
        assert ending["ending_id"] == "ending_rescue"
        assert ending["victim_survived"] is True

        summary = loaded.get("/summary").json()
        assert summary["night_id"] == "night_01"
        assert summary["persistent_flags"][0]["flag_id"] == "called_police"

    def test_events(self, loaded):
        loaded.post("/tick", json={"delta_seconds": 5.0})
        events = loaded.get("/events", params={"limit": 3}).json()
        assert len(events) == 3
        assert events[-1]["type"] == "incoming_call"
