"""
Trust Graph — directed, weighted trust between callers and the operator.

Updated by: CallFlow (response trust impact), story content
Queried by: UI, story conditions

Behavioral Contract:
- Edges are created lazily on first modification with value 0 / Neutral
- At most one edge per ordered (from, to) pair
- Every modification appends (delta, reason) to the edge history
- trust_changed fires on every modification; trust_threshold_crossed fires
  additionally when the discrete level changes
- Operator edges use the reserved operator node as `to_id`
- Assumption confidence stays in [0, 100]; reaching 0 disproves the
  assumption exactly once
"""

import logging
from typing import Dict, List, Optional, Tuple

from operator_core.events import EventBus, EventType
from operator_core.models.trust import (
    CallerAssumption,
    TrustEdge,
    TrustGraphData,
    TrustLevel,
    TrustTargetType,
)

logger = logging.getLogger(__name__)

OPERATOR_ID = "_operator_"


class TrustGraph:
    """In-memory trust graph for one night."""

    def __init__(self, bus: Optional[EventBus] = None, operator_id: str = OPERATOR_ID):
        self.bus = bus or EventBus()
        self.operator_id = operator_id
        self._edges: Dict[Tuple[str, str], TrustEdge] = {}
        self._assumptions: Dict[str, CallerAssumption] = {}

    def initialize(self, data: Optional[TrustGraphData] = None) -> None:
        """Drop all state and seed edges and assumptions from scenario data."""
        self._edges.clear()
        self._assumptions.clear()
        if data is None:
            return

        for edge in data.initial_edges:
            self._seed(edge.from_id, edge.to_id, edge.target_type, edge.trust_value)
        for seed in data.initial_operator_trust:
            self._seed(seed.caller_id, self.operator_id, TrustTargetType.OPERATOR, seed.trust_value)
        for assumption in data.initial_assumptions:
            self._assumptions[assumption.assumption_id] = assumption.model_copy(deep=True)

        logger.info(
            "Trust graph initialized with %d edges and %d assumptions",
            len(self._edges), len(self._assumptions),
        )

    def _seed(self, from_id: str, to_id: str, target_type: TrustTargetType, value: int) -> None:
        edge = self._get_or_create(from_id, to_id, target_type)
        edge.trust_value = 0
        edge.apply_delta(value, "initial")

    def _get_or_create(self, from_id: str, to_id: str, target_type: TrustTargetType) -> TrustEdge:
        key = (from_id, to_id)
        edge = self._edges.get(key)
        if edge is None:
            edge = TrustEdge(from_id=from_id, to_id=to_id, target_type=target_type)
            self._edges[key] = edge
        return edge

    # --- Trust ---

    def modify_trust(
        self,
        from_id: str,
        to_id: str,
        target_type: TrustTargetType,
        delta: int,
        reason: str = "",
    ) -> Optional[TrustEdge]:
        """Apply a delta to the (from, to) edge, creating it if needed."""
        if not from_id or not to_id:
            logger.warning("Ignoring trust change with empty endpoint: %r -> %r", from_id, to_id)
            return None

        edge = self._get_or_create(from_id, to_id, target_type)
        old_level = edge.trust_level
        edge.apply_delta(delta, reason)

        logger.debug(
            "Trust %s -> %s: %+d = %d (%s)",
            from_id, to_id, delta, edge.trust_value, edge.trust_level.value,
        )
        self.bus.emit(
            EventType.TRUST_CHANGED,
            from_id=from_id,
            to_id=to_id,
            delta=delta,
            trust_value=edge.trust_value,
            reason=reason,
        )
        if edge.trust_level != old_level:
            self.bus.emit(
                EventType.TRUST_THRESHOLD_CROSSED,
                from_id=from_id,
                to_id=to_id,
                old_level=old_level,
                new_level=edge.trust_level,
            )
        return edge

    def modify_operator_trust(self, caller_id: str, delta: int, reason: str = "") -> Optional[TrustEdge]:
        """Caller → operator trust change."""
        return self.modify_trust(caller_id, self.operator_id, TrustTargetType.OPERATOR, delta, reason)

    def get_edge(self, from_id: str, to_id: str) -> Optional[TrustEdge]:
        return self._edges.get((from_id, to_id))

    def get_trust(self, from_id: str, to_id: str) -> int:
        edge = self.get_edge(from_id, to_id)
        return edge.trust_value if edge else 0

    def get_trust_level(self, from_id: str, to_id: str) -> TrustLevel:
        edge = self.get_edge(from_id, to_id)
        return edge.trust_level if edge else TrustLevel.NEUTRAL

    def get_operator_trust(self, caller_id: str) -> int:
        return self.get_trust(caller_id, self.operator_id)

    def get_operator_trust_level(self, caller_id: str) -> TrustLevel:
        return self.get_trust_level(caller_id, self.operator_id)

    def get_all_trust_edges_for(self, node_id: str) -> List[TrustEdge]:
        """Outgoing and incoming edges touching `node_id`."""
        return [
            edge for (from_id, to_id), edge in self._edges.items()
            if from_id == node_id or to_id == node_id
        ]

    def get_all_edges(self) -> List[TrustEdge]:
        return list(self._edges.values())

    # --- Assumptions ---

    def add_assumption(self, assumption: CallerAssumption) -> None:
        self._assumptions[assumption.assumption_id] = assumption

    def get_assumption(self, assumption_id: str) -> Optional[CallerAssumption]:
        return self._assumptions.get(assumption_id)

    def get_assumptions_held_by(self, caller_id: str) -> List[CallerAssumption]:
        return [a for a in self._assumptions.values() if a.holder_caller_id == caller_id]

    def modify_assumption_confidence(self, assumption_id: str, delta: int) -> bool:
        """
        Shift an assumption's confidence, clamped to [0, 100].
        Reaching 0 disproves it. Returns False for unknown ids.
        """
        assumption = self._assumptions.get(assumption_id)
        if assumption is None:
            logger.warning("Unknown assumption: %s", assumption_id)
            return False
        if assumption.is_disproven:
            return True

        assumption.confidence = max(0, min(100, assumption.confidence + delta))
        logger.debug("Assumption %s confidence now %d", assumption_id, assumption.confidence)

        if assumption.confidence <= 0:
            self.disprove_assumption(assumption_id)
        return True

    def disprove_assumption(self, assumption_id: str) -> bool:
        """
        Mark an assumption disproven and emit assumption_disproven.
        Returns True only on the first call for a given assumption.
        """
        assumption = self._assumptions.get(assumption_id)
        if assumption is None:
            logger.warning("Unknown assumption: %s", assumption_id)
            return False
        if assumption.is_disproven:
            return False

        assumption.is_disproven = True
        assumption.confidence = 0
        logger.info("Assumption disproven: %s (held by %s)", assumption_id, assumption.holder_caller_id)
        self.bus.emit(
            EventType.ASSUMPTION_DISPROVEN,
            assumption_id=assumption_id,
            holder_caller_id=assumption.holder_caller_id,
        )
        return True
