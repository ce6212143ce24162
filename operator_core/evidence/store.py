"""
Evidence Store — discovered evidence and the contradictions between it.

Updated by: CallFlow (discovery, presentation), story content
Queried by: CallFlow (required evidence), UI

Behavioral Contract:
- Templates are indexed by evidence id; loading replaces prior templates
- Discovery instantiates a copy of the template; evidence is never deleted
  within a session
- Every discovery runs a contradiction check against all other discovered
  evidence: template-declared contradicting ids in either direction, and
  the similar-content check for opposite-truth statements
- Contradictions are recorded symmetrically and reported once per pair
"""

import logging
from typing import Callable, Dict, FrozenSet, List, Optional, Set

from operator_core.events import EventBus, EventType
from operator_core.models.evidence import (
    EvidenceData,
    EvidenceReliability,
    EvidenceTemplate,
    EvidenceType,
)

logger = logging.getLogger(__name__)

SimilarityCheck = Callable[[str, str], bool]


def never_similar(content_a: str, content_b: str) -> bool:
    """Default content similarity: no two statements are considered the same topic."""
    return False


class EvidenceStore:
    """In-memory evidence store for one night."""

    def __init__(
        self,
        bus: Optional[EventBus] = None,
        similarity: SimilarityCheck = never_similar,
        dynamic_prefix: str = "dynamic_statement_",
    ):
        self.bus = bus or EventBus()
        self.similarity = similarity
        self.dynamic_prefix = dynamic_prefix
        self._templates: Dict[str, EvidenceTemplate] = {}
        self._discovered: Dict[str, EvidenceData] = {}
        self._reported_pairs: Set[FrozenSet[str]] = set()
        self._dynamic_counter = 0

    def load_templates(self, templates: List[EvidenceTemplate]) -> None:
        """Index templates by evidence id, replacing any prior templates."""
        self._templates = {t.data.evidence_id: t for t in templates if t.data.evidence_id}
        logger.info("Loaded %d evidence templates", len(self._templates))

    def get_template(self, evidence_id: str) -> Optional[EvidenceTemplate]:
        return self._templates.get(evidence_id)

    def clear(self) -> None:
        """Forget discovered evidence. Templates stay loaded."""
        self._discovered.clear()
        self._reported_pairs.clear()
        self._dynamic_counter = 0

    # --- Discovery ---

    def discover_evidence(self, evidence_id: str) -> bool:
        """
        Instantiate a template as discovered evidence.
        Returns False if already discovered or no template exists.
        """
        if evidence_id in self._discovered:
            logger.debug("Evidence %s already discovered", evidence_id)
            return False

        template = self._templates.get(evidence_id)
        if template is None:
            logger.warning("No evidence template for %s", evidence_id)
            return False

        evidence = template.data.model_copy(deep=True)
        evidence.is_discovered = True
        evidence.contradicting_evidence_ids = []
        self._discovered[evidence_id] = evidence

        logger.info("Evidence discovered: %s", evidence_id)
        self.bus.emit(EventType.EVIDENCE_DISCOVERED, evidence_id=evidence_id)

        self._check_for_contradictions(evidence)
        return True

    def create_statement_evidence(
        self,
        source_caller_id: str,
        source_call_id: str,
        content: str,
        is_actually_true: bool = True,
        timestamp: str = "",
    ) -> EvidenceData:
        """Record something said in a call as new, untemplated statement evidence."""
        self._dynamic_counter += 1
        evidence = EvidenceData(
            evidence_id=f"{self.dynamic_prefix}{self._dynamic_counter}",
            evidence_type=EvidenceType.STATEMENT,
            content=content,
            source_caller_id=source_caller_id,
            source_call_id=source_call_id,
            timestamp=timestamp,
            is_actually_true=is_actually_true,
            related_caller_ids=[source_caller_id] if source_caller_id else [],
            is_discovered=True,
        )
        self._discovered[evidence.evidence_id] = evidence

        logger.info("Statement evidence created: %s", evidence.evidence_id)
        self.bus.emit(EventType.EVIDENCE_DISCOVERED, evidence_id=evidence.evidence_id)

        self._check_for_contradictions(evidence)
        return evidence

    # --- Mutation ---

    def use_evidence(self, evidence_id: str) -> bool:
        """Present evidence. Fails if it is not discovered or not usable."""
        evidence = self._discovered.get(evidence_id)
        if evidence is None:
            logger.warning("Cannot use undiscovered evidence %s", evidence_id)
            return False
        if not evidence.is_usable:
            logger.info("Evidence %s is not usable", evidence_id)
            return False

        evidence.use_count += 1
        logger.debug("Evidence %s used (%d times)", evidence_id, evidence.use_count)
        return True

    def update_reliability(self, evidence_id: str, reliability: EvidenceReliability) -> bool:
        evidence = self._discovered.get(evidence_id)
        if evidence is None:
            return False

        old = evidence.reliability
        evidence.reliability = reliability
        logger.debug("Evidence %s reliability %s -> %s", evidence_id, old.value, reliability.value)
        self.bus.emit(
            EventType.EVIDENCE_UPDATED,
            evidence_id=evidence_id,
            old_reliability=old,
            reliability=reliability,
        )
        return True

    def check_contradiction(self, evidence_id_a: str, evidence_id_b: str) -> bool:
        """True if two discovered items contradict. Records the pair if newly found."""
        a = self._discovered.get(evidence_id_a)
        b = self._discovered.get(evidence_id_b)
        if a is None or b is None:
            return False
        if evidence_id_b in a.contradicting_evidence_ids:
            return True
        if self._contradicts(a, b):
            self._record_contradiction(a, b)
            return True
        return False

    # --- Contradictions ---

    def _declared_contradictions(self, evidence_id: str) -> List[str]:
        template = self._templates.get(evidence_id)
        return template.data.contradicting_evidence_ids if template else []

    def _contradicts(self, a: EvidenceData, b: EvidenceData) -> bool:
        if b.evidence_id in self._declared_contradictions(a.evidence_id):
            return True
        if a.evidence_id in self._declared_contradictions(b.evidence_id):
            return True
        return (
            a.evidence_type == EvidenceType.STATEMENT
            and b.evidence_type == EvidenceType.STATEMENT
            and a.is_actually_true != b.is_actually_true
            and self.similarity(a.content, b.content)
        )

    def _check_for_contradictions(self, evidence: EvidenceData) -> None:
        for existing in list(self._discovered.values()):
            if existing.evidence_id == evidence.evidence_id:
                continue
            if self._contradicts(evidence, existing):
                self._record_contradiction(evidence, existing)

    def _record_contradiction(self, a: EvidenceData, b: EvidenceData) -> None:
        if b.evidence_id not in a.contradicting_evidence_ids:
            a.contradicting_evidence_ids.append(b.evidence_id)
        if a.evidence_id not in b.contradicting_evidence_ids:
            b.contradicting_evidence_ids.append(a.evidence_id)

        pair = frozenset((a.evidence_id, b.evidence_id))
        if pair in self._reported_pairs:
            return
        self._reported_pairs.add(pair)

        logger.info("Contradiction found: %s <-> %s", a.evidence_id, b.evidence_id)
        self.bus.emit(
            EventType.CONTRADICTION_FOUND,
            evidence_id_a=a.evidence_id,
            evidence_id_b=b.evidence_id,
        )

    # --- Queries ---

    def has_evidence(self, evidence_id: str) -> bool:
        return evidence_id in self._discovered

    def get_evidence(self, evidence_id: str) -> Optional[EvidenceData]:
        return self._discovered.get(evidence_id)

    def get_discovered_evidence(self) -> List[EvidenceData]:
        return list(self._discovered.values())

    def get_evidence_for_caller(self, caller_id: str) -> List[EvidenceData]:
        return [
            e for e in self._discovered.values()
            if e.source_caller_id == caller_id or caller_id in e.related_caller_ids
        ]

    def get_evidence_by_type(self, evidence_type: EvidenceType) -> List[EvidenceData]:
        return [e for e in self._discovered.values() if e.evidence_type == evidence_type]

    def get_usable_evidence(self) -> List[EvidenceData]:
        return [e for e in self._discovered.values() if e.is_usable]
