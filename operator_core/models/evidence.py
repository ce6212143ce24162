"""Evidence — information gathered during calls."""

from enum import Enum
from typing import List

from pydantic import BaseModel

from operator_core.models.conditions import StoryEffect


class EvidenceType(str, Enum):
    STATEMENT = "statement"         # Something someone said
    TIMESTAMP = "timestamp"
    LOCATION = "location"
    CONTRADICTION = "contradiction"
    SILENCE = "silence"             # Not answering is information too
    EMOTION = "emotion"
    RELATIONSHIP = "relationship"
    PHYSICAL = "physical"           # Background sounds and the like
    DOCUMENT = "document"


class EvidenceReliability(str, Enum):
    UNVERIFIED = "unverified"
    DOUBTFUL = "doubtful"
    PARTIALLY_VERIFIED = "partially_verified"
    VERIFIED = "verified"
    DISPROVEN = "disproven"


class EvidenceData(BaseModel):
    """A single piece of evidence."""

    evidence_id: str
    title: str = ""
    evidence_type: EvidenceType = EvidenceType.STATEMENT
    content: str = ""
    description: str = ""
    source_caller_id: str = ""
    source_call_id: str = ""
    timestamp: str = ""                     # In-game "HH:MM"
    reliability: EvidenceReliability = EvidenceReliability.UNVERIFIED
    is_actually_true: bool = True           # Ground truth, never shown
    related_caller_ids: List[str] = []
    contradicting_evidence_ids: List[str] = []
    supporting_evidence_ids: List[str] = []
    is_discovered: bool = False
    is_usable: bool = True
    use_count: int = 0


class EvidenceTemplate(BaseModel):
    """Authored evidence. Discovery instantiates a copy of `data`."""

    data: EvidenceData
    use_effects: List[StoryEffect] = []
