"""
Operator Core API — FastAPI endpoints.

A local bridge for the UI and debug tooling:
- Night loading
- Per-frame ticks
- Call commands (answer, hold, resume, end, respond)
- Debug overrides (flags, time)
- State, evidence, trust and ending queries
"""

from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from operator_core.clock.clock import parse_time
from operator_core.errors import ScenarioLoadError
from operator_core.models.flags import NightFlagSnapshot
from operator_core.models.persistence import CrossNightState, NightEffectsDefinition
from operator_core.scenario.loader import parse_night_effects, parse_scenario
from operator_core.session import OperatorSession


# --- Request/Response Models ---

class LoadNightRequest(BaseModel):
    scenario: dict
    persistent: Optional[NightFlagSnapshot] = None
    night_effects: Optional[dict] = None
    cross_night: Optional[CrossNightState] = None


class TickRequest(BaseModel):
    delta_seconds: float


class AdvanceTimeRequest(BaseModel):
    minutes: int


class SetTimeRequest(BaseModel):
    minutes: Optional[int] = None
    time: Optional[str] = None          # "HH:MM"


class CommandResponse(BaseModel):
    accepted: bool
    state: dict


# --- Application Factory ---

def create_app(session: Optional[OperatorSession] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Operator Core API",
        description="Decision and state core for Operator Mode",
        version="0.1.0",
    )

    app.state.session = session or OperatorSession()

    def _session() -> OperatorSession:
        s = app.state.session
        if s.scenario is None:
            raise HTTPException(409, "No night loaded")
        return s

    def _command(accepted: bool) -> CommandResponse:
        return CommandResponse(accepted=accepted, state=app.state.session.state())

    # === NIGHT ===

    @app.post("/night", response_model=CommandResponse)
    def load_night(req: LoadNightRequest):
        """Load a scenario and start its clock."""
        try:
            scenario = parse_scenario(req.scenario)
            effects: Optional[NightEffectsDefinition] = (
                parse_night_effects(req.night_effects) if req.night_effects is not None else None
            )
        except ScenarioLoadError as exc:
            raise HTTPException(422, str(exc))

        app.state.session.load_night(
            scenario,
            persistent=req.persistent,
            night_effects=effects,
            cross_night=req.cross_night,
        )
        return _command(True)

    @app.get("/state")
    def get_state():
        return app.state.session.state()

    @app.post("/tick", response_model=CommandResponse)
    def tick(req: TickRequest):
        s = _session()
        s.update(req.delta_seconds)
        return _command(True)

    @app.post("/end", response_model=CommandResponse)
    def force_end():
        """Finalize the night immediately."""
        s = _session()
        return _command(s.force_end() is not None)

    # === CALLS ===

    @app.post("/calls/{call_id}/answer", response_model=CommandResponse)
    def answer_call(call_id: str):
        return _command(_session().answer_call(call_id))

    @app.post("/calls/hold", response_model=CommandResponse)
    def hold_call():
        return _command(_session().hold_call())

    @app.post("/calls/{call_id}/resume", response_model=CommandResponse)
    def resume_call(call_id: str):
        return _command(_session().resume_call(call_id))

    @app.post("/calls/end", response_model=CommandResponse)
    def end_call():
        return _command(_session().end_call())

    @app.post("/responses/{response_id}", response_model=CommandResponse)
    def select_response(response_id: str):
        return _command(_session().select_response(response_id))

    @app.post("/silence", response_model=CommandResponse)
    def select_silence():
        return _command(_session().select_silence())

    @app.post("/dispatch", response_model=CommandResponse)
    def record_dispatch():
        return _command(_session().record_dispatch())

    # === DEBUG ===

    @app.post("/debug/flags/{flag_id}", response_model=CommandResponse)
    def set_flag(flag_id: str):
        return _command(_session().set_flag(flag_id))

    @app.delete("/debug/flags/{flag_id}", response_model=CommandResponse)
    def clear_flag(flag_id: str):
        return _command(_session().clear_flag(flag_id))

    @app.post("/debug/time/advance", response_model=CommandResponse)
    def advance_time(req: AdvanceTimeRequest):
        s = _session()
        s.advance_time(req.minutes)
        return _command(req.minutes > 0)

    @app.post("/debug/time/set", response_model=CommandResponse)
    def set_time(req: SetTimeRequest):
        s = _session()
        if req.minutes is not None:
            minutes = req.minutes
        elif req.time is not None:
            minutes = parse_time(req.time)
        else:
            raise HTTPException(422, "Either minutes or time is required")
        s.set_time(minutes)
        return _command(True)

    # === QUERIES ===

    @app.get("/responses")
    def available_responses() -> List[dict]:
        s = _session()
        return [r.model_dump(mode="json") for r in s.calls.get_available_responses()]

    @app.get("/evidence")
    def list_evidence():
        s = _session()
        return [e.model_dump(mode="json") for e in s.evidence.get_discovered_evidence()]

    @app.get("/evidence/{evidence_id}")
    def get_evidence(evidence_id: str):
        evidence = _session().evidence.get_evidence(evidence_id)
        if evidence is None:
            raise HTTPException(404, "Evidence not found")
        return evidence.model_dump(mode="json")

    @app.get("/trust/{node_id}")
    def trust_edges(node_id: str):
        s = _session()
        return [e.model_dump(mode="json") for e in s.trust.get_all_trust_edges_for(node_id)]

    @app.get("/ending")
    def get_ending():
        result = _session().result
        if result is None:
            raise HTTPException(404, "Night has not ended")
        return result.model_dump(mode="json")

    @app.get("/summary")
    def get_summary():
        summary = _session().night_summary()
        if summary is None:
            raise HTTPException(404, "Night has not ended")
        return summary.model_dump(mode="json")

    @app.get("/events")
    def recent_events(limit: int = 20):
        return [e.model_dump(mode="json") for e in app.state.session.bus.recent(limit)]

    return app
