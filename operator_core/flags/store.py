"""
Flag Store — named boolean facts and their weighted category scores.

Updated by: CallFlow (response effects), StoryState, debug commands
Queried by: EndStateResolver, StoryState (conditions), WorldState

Behavioral Contract:
- set_flag is idempotent: setting a set flag is a silent no-op
- Ordering per set_flag: mutation → mutual-exclusion cascade → score
  recompute → score_changed events
- The cascade clears every flag cancelled by the set flag, then follows the
  cancelled flags' own cancel lists; each flag id is processed at most once
  per top-level set_flag call, so the cascade always terminates
- clear_flag never cascades
- Category scores are cached and invalidated by any set/clear
"""

import logging
from typing import Dict, List, Optional, Set

from operator_core.events import EventBus, EventType
from operator_core.models.flags import (
    FlagCategory,
    FlagState,
    NightFlagsDefinition,
    NightFlagSnapshot,
)

logger = logging.getLogger(__name__)


class FlagStore:
    """In-memory flag store for one night."""

    def __init__(self, bus: Optional[EventBus] = None):
        self.bus = bus or EventBus()
        self._night_id = ""
        self._definition = NightFlagsDefinition()
        self._states: Dict[str, FlagState] = {}
        self._score_cache: Dict[FlagCategory, int] = {}

    @property
    def night_id(self) -> str:
        return self._night_id

    @property
    def definition(self) -> NightFlagsDefinition:
        return self._definition

    def initialize(self, night_id: str, definition: NightFlagsDefinition) -> None:
        """Load a night's flag definitions and drop all runtime state."""
        self._night_id = night_id
        self._definition = definition
        self._states.clear()
        self._score_cache.clear()
        logger.info(
            "Flag store initialized for %s with %d definitions",
            night_id, len(definition.flag_definitions),
        )

    def clear_all_flags(self) -> None:
        """Reset every flag. Emits flag_changed for each previously set flag."""
        previously_set = self.get_set_flags()
        self._states.clear()
        self._score_cache.clear()

        for flag_id in previously_set:
            self.bus.emit(EventType.FLAG_CHANGED, flag_id=flag_id, is_set=False)
        for category in FlagCategory:
            self.bus.emit(EventType.SCORE_CHANGED, category=category, score=0)

    # --- Mutation ---

    def set_flag(self, flag_id: str, at_minute: int = 0) -> bool:
        """
        Set a flag. Returns False when the id is empty or the flag is already set.
        """
        if not flag_id:
            logger.warning("Refusing to set a flag with an empty id")
            return False
        if self.get_flag(flag_id):
            return False

        if self._definition.get_flag_definition(flag_id) is None:
            logger.debug("Setting undefined flag %s; it carries no weight", flag_id)

        self._states[flag_id] = FlagState(flag_id=flag_id, is_set=True, set_minute=at_minute)
        self._score_cache.clear()
        logger.debug("Flag set: %s at minute %d", flag_id, at_minute)
        self.bus.emit(EventType.FLAG_CHANGED, flag_id=flag_id, is_set=True)

        cancelled = self._apply_mutual_exclusion(flag_id, processed={flag_id})

        self._notify_scores([flag_id] + cancelled)
        return True

    def clear_flag(self, flag_id: str) -> bool:
        """Clear a flag. No exclusion cascade. Returns False if it was not set."""
        if not self._clear(flag_id):
            return False
        self._notify_scores([flag_id])
        return True

    def set_flags(self, flag_ids: List[str], at_minute: int = 0) -> None:
        for flag_id in flag_ids:
            self.set_flag(flag_id, at_minute)

    def clear_flags(self, flag_ids: List[str]) -> None:
        for flag_id in flag_ids:
            self.clear_flag(flag_id)

    def _clear(self, flag_id: str) -> bool:
        """Clear without score notification."""
        state = self._states.get(flag_id) if flag_id else None
        if state is None or not state.is_set:
            return False

        state.is_set = False
        self._score_cache.clear()
        logger.debug("Flag cleared: %s", flag_id)
        self.bus.emit(EventType.FLAG_CHANGED, flag_id=flag_id, is_set=False)
        return True

    def _apply_mutual_exclusion(self, flag_id: str, processed: Set[str]) -> List[str]:
        """Clear flags cancelled by `flag_id`, following their cancel lists. Returns cleared ids."""
        cleared: List[str] = []
        for cancel_id in self._definition.get_cancelled_flags(flag_id):
            if cancel_id in processed:
                continue
            processed.add(cancel_id)
            if not self.get_flag(cancel_id):
                continue

            logger.debug("Mutual exclusion: %s cancels %s", flag_id, cancel_id)
            self._clear(cancel_id)
            cleared.append(cancel_id)
            cleared.extend(self._apply_mutual_exclusion(cancel_id, processed))
        return cleared

    def _notify_scores(self, flag_ids: List[str]) -> None:
        """Emit score_changed once per category touched by `flag_ids`, in first-touch order."""
        categories: List[FlagCategory] = []
        for flag_id in flag_ids:
            definition = self._definition.get_flag_definition(flag_id)
            if definition and definition.category not in categories:
                categories.append(definition.category)

        for category in categories:
            self.bus.emit(
                EventType.SCORE_CHANGED,
                category=category,
                score=self.get_category_score(category),
            )

    # --- Queries ---

    def get_flag(self, flag_id: str) -> bool:
        state = self._states.get(flag_id) if flag_id else None
        return state is not None and state.is_set

    def get_flag_state(self, flag_id: str) -> Optional[FlagState]:
        return self._states.get(flag_id) if flag_id else None

    def get_category_score(self, category: FlagCategory) -> int:
        """Sum of weights of the set flags in a category."""
        if category not in self._score_cache:
            self._score_cache[category] = sum(
                d.weight
                for d in self._definition.get_flags_by_category(category)
                if self.get_flag(d.flag_id)
            )
        return self._score_cache[category]

    def get_all_scores(self) -> Dict[FlagCategory, int]:
        return {category: self.get_category_score(category) for category in FlagCategory}

    def get_cancelled_flags(self, flag_id: str) -> List[str]:
        """Flags that setting `flag_id` would cancel. Unknown ids yield []."""
        return self._definition.get_cancelled_flags(flag_id)

    def get_set_flags(self) -> List[str]:
        return [flag_id for flag_id, state in self._states.items() if state.is_set]

    def get_set_flags_by_category(self, category: FlagCategory) -> List[str]:
        return [
            d.flag_id
            for d in self._definition.get_flags_by_category(category)
            if self.get_flag(d.flag_id)
        ]

    def get_all_flag_states(self) -> Dict[str, FlagState]:
        return dict(self._states)

    # --- Persistence ---

    def _snapshot_of(self, states: List[FlagState]) -> NightFlagSnapshot:
        set_ids = {s.flag_id for s in states if s.is_set}
        scores = {
            category: sum(
                d.weight for d in self._definition.get_flags_by_category(category)
                if d.flag_id in set_ids
            )
            for category in FlagCategory
        }
        return NightFlagSnapshot(
            night_id=self._night_id,
            flag_states=[s.model_copy() for s in states],
            calculated_scores=scores,
        )

    def create_snapshot(self) -> NightFlagSnapshot:
        """Snapshot of every flag state, set or cleared."""
        return self._snapshot_of(list(self._states.values()))

    def restore_from_snapshot(self, snapshot: NightFlagSnapshot) -> None:
        """Replace all runtime state with a snapshot. Emits nothing."""
        self._night_id = snapshot.night_id
        self._states = {s.flag_id: s.model_copy() for s in snapshot.flag_states}
        self._score_cache.clear()
        logger.info(
            "Flags restored from snapshot of %s (%d states)",
            snapshot.night_id, len(snapshot.flag_states),
        )

    def export_persistent(self) -> NightFlagSnapshot:
        """Set flags whose definition persists across nights."""
        persistent = [
            state for flag_id, state in self._states.items()
            if state.is_set
            and (d := self._definition.get_flag_definition(flag_id)) is not None
            and d.persists_across_nights
        ]
        return self._snapshot_of(persistent)

    def import_persistent(self, snapshot: NightFlagSnapshot) -> int:
        """Merge set flags from a previous night, keeping their set times. Returns the count imported."""
        imported = 0
        for state in snapshot.flag_states:
            if state.is_set:
                self._states[state.flag_id] = state.model_copy()
                imported += 1
        self._score_cache.clear()
        logger.info("Imported %d persistent flags from %s", imported, snapshot.night_id)
        return imported
