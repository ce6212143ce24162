"""Core configuration."""

from pydantic import BaseModel

from operator_core.models.end_state import DEFAULT_ENDING_ID, EndStateType


class CoreConfig(BaseModel):
    """Tunables shared by every component of a session."""

    operator_id: str = "_operator_"                 # Synthetic trust-graph node
    default_end_state: EndStateType = EndStateType.CONTAINED
    default_ending_id: str = DEFAULT_ENDING_ID
    event_history_size: int = 256
    dynamic_evidence_prefix: str = "dynamic_statement_"
