"""
End-State Resolver — turns a finished night into an end-state and an ending.

Reads: FlagStore (scores and flags), the recorded dispatch minute
Owns: only its last computed result

Behavioral Contract:
- Survival: no dispatch requirement → survived; otherwise no dispatch or a
  dispatch after the allowed minute → died
- End-state: first condition in ascending priority whose score and flag
  conditions all hold; otherwise the definition's default
- Ending: the survival-independent id when mapped, else the survived/died
  id, else the definition's default ending id
- Without a loaded definition the night resolves to the configured default
  end-state and ending, with the victim not surviving
"""

import logging
from typing import List, Optional

from operator_core.errors import ConfigurationError
from operator_core.events import EventBus, EventType
from operator_core.flags.store import FlagStore
from operator_core.models.config import CoreConfig
from operator_core.models.end_state import (
    EndingResult,
    EndStateCondition,
    EndStateDefinition,
    EndStateType,
    ScenarioEnding,
)

logger = logging.getLogger(__name__)


class EndStateResolver:
    """Priority-ordered rule matching over the flag store."""

    def __init__(
        self,
        flags: FlagStore,
        bus: Optional[EventBus] = None,
        config: Optional[CoreConfig] = None,
    ):
        self.flags = flags
        self.bus = bus or flags.bus
        self.config = config or CoreConfig()
        self.definition: Optional[EndStateDefinition] = None
        self._scenario_endings: List[ScenarioEnding] = []

        self.current_end_state: Optional[EndStateType] = None
        self.victim_survived: Optional[bool] = None
        self.selected_ending_id: Optional[str] = None

    def initialize(
        self,
        definition: Optional[EndStateDefinition],
        scenario_endings: Optional[List[ScenarioEnding]] = None,
    ) -> None:
        self.definition = definition
        self._scenario_endings = list(scenario_endings or [])
        self.current_end_state = None
        self.victim_survived = None
        self.selected_ending_id = None
        if definition is None:
            logger.warning("No end-state definition loaded; nights resolve to defaults")

    # --- Conditions ---

    def _evaluate(self, condition: EndStateCondition) -> bool:
        try:
            for score_condition in condition.score_conditions:
                score = self.flags.get_category_score(score_condition.category)
                if not score_condition.evaluate(score):
                    return False
        except ConfigurationError as exc:
            logger.error("End-state condition %s treated as unmet: %s", condition.end_state.value, exc)
            return False

        return all(
            self.flags.get_flag(fc.flag_id) == fc.required_value
            for fc in condition.flag_conditions
        )

    def check_end_state_condition(self, end_state: EndStateType) -> bool:
        """Whether the first condition authored for `end_state` currently holds."""
        if self.definition is None:
            return False
        condition = next((c for c in self.definition.conditions if c.end_state == end_state), None)
        if condition is None:
            return False
        return self._evaluate(condition)

    # --- Resolution ---

    def calculate_victim_survival(self, dispatch_minute: Optional[int]) -> bool:
        survived = self._survival(dispatch_minute)
        self.victim_survived = survived
        logger.info("Victim survival: %s (dispatch at %s)", survived, dispatch_minute)
        self.bus.emit(EventType.VICTIM_SURVIVAL_CALCULATED, survived=survived)
        return survived

    def _survival(self, dispatch_minute: Optional[int]) -> bool:
        if self.definition is None:
            return False

        rule = self.definition.victim_survival
        if not rule.requires_dispatch:
            return True
        if dispatch_minute is None:
            return False
        if dispatch_minute > rule.max_dispatch_time_minutes:
            return False
        if rule.dispatch_flag_id and not self.flags.get_flag(rule.dispatch_flag_id):
            return False
        return True

    def calculate_end_state(self) -> EndStateType:
        if self.definition is None:
            end_state = self.config.default_end_state
        else:
            match = next(
                (c for c in self.definition.get_sorted_conditions() if self._evaluate(c)),
                None,
            )
            end_state = match.end_state if match else self.definition.default_end_state

        self.current_end_state = end_state
        logger.info("End state: %s", end_state.value)
        self.bus.emit(EventType.END_STATE_CALCULATED, end_state=end_state)
        return end_state

    def select_ending(self, end_state: EndStateType, victim_survived: bool) -> str:
        if self.definition is None:
            ending_id = self.config.default_ending_id
        else:
            ending_id = self.definition.get_ending_id(end_state, victim_survived)

        self.selected_ending_id = ending_id
        logger.info("Ending selected: %s", ending_id)
        self.bus.emit(EventType.ENDING_SELECTED, ending_id=ending_id)
        return ending_id

    def determine_ending(self, dispatch_minute: Optional[int]) -> EndingResult:
        """Survival, then end-state, then ending."""
        survived = self.calculate_victim_survival(dispatch_minute)
        end_state = self.calculate_end_state()
        ending_id = self.select_ending(end_state, survived)
        return EndingResult(
            end_state=end_state,
            victim_survived=survived,
            ending_id=ending_id,
            ending=self.get_ending(ending_id),
            dispatch_minute=dispatch_minute,
        )

    def get_ending(self, ending_id: str) -> Optional[ScenarioEnding]:
        """Look the ending up in the definition, then in the scenario."""
        if self.definition is not None:
            ending = self.definition.get_ending_by_id(ending_id)
            if ending is not None:
                return ending
        return next((e for e in self._scenario_endings if e.ending_id == ending_id), None)
