"""
Story State — evaluates authored conditions and applies authored effects.

Boolean variables are flags in the FlagStore. Integer variables named
`<category>_score` read the live category score and cannot be written.
Every other variable lives in this object's own map.

Behavioral Contract:
- A variable with no value never satisfies a condition
- A condition that cannot be evaluated (bad operator/type pairing) is
  logged and treated as unsatisfied
- An effect that cannot be applied is logged and skipped
"""

import logging
from typing import Dict, List, Optional, Union

from operator_core.clock.clock import Clock
from operator_core.errors import ConfigurationError
from operator_core.events import EventBus, EventType
from operator_core.flags.store import FlagStore
from operator_core.models.conditions import StoryCondition, StoryEffect, VariableType
from operator_core.models.flags import FlagCategory

logger = logging.getLogger(__name__)

SCORE_SUFFIX = "_score"

Value = Union[int, bool, str]


class StoryState:
    """FlagStore-backed story variables."""

    def __init__(self, flags: FlagStore, clock: Optional[Clock] = None, bus: Optional[EventBus] = None):
        self.flags = flags
        self.clock = clock
        self.bus = bus or flags.bus
        self._variables: Dict[str, Value] = {}

    def reset(self) -> None:
        self._variables.clear()

    def _score_category(self, name: str) -> Optional[FlagCategory]:
        if not name.endswith(SCORE_SUFFIX):
            return None
        try:
            return FlagCategory(name[: -len(SCORE_SUFFIX)])
        except ValueError:
            return None

    def get_value(self, name: str, variable_type: VariableType) -> Optional[Value]:
        """Current value of a variable, or None if it has none."""
        if variable_type == VariableType.BOOLEAN:
            return self.flags.get_flag(name)
        if variable_type == VariableType.INTEGER:
            category = self._score_category(name)
            if category is not None:
                return self.flags.get_category_score(category)
        return self._variables.get(name)

    def set_value(self, name: str, variable_type: VariableType, value: Value) -> None:
        if variable_type == VariableType.BOOLEAN:
            if value:
                minute = self.clock.current_minutes if self.clock else 0
                self.flags.set_flag(name, minute)
            else:
                self.flags.clear_flag(name)
            return

        if variable_type == VariableType.INTEGER and self._score_category(name) is not None:
            logger.warning("Score variable %s is read-only; effect ignored", name)
            return

        old = self._variables.get(name)
        self._variables[name] = value
        if old != value:
            self.bus.emit(EventType.VARIABLE_CHANGED, name=name, old_value=old, value=value)

    # --- Conditions ---

    def evaluate(self, condition: StoryCondition) -> bool:
        value = self.get_value(condition.variable_name, condition.variable_type)
        try:
            return condition.evaluate(value)
        except ConfigurationError as exc:
            logger.error("Condition on %s treated as false: %s", condition.variable_name, exc)
            return False

    def evaluate_all(self, conditions: List[StoryCondition]) -> bool:
        """True when every condition holds. An empty list holds."""
        return all(self.evaluate(c) for c in conditions)

    # --- Effects ---

    def apply(self, effect: StoryEffect) -> None:
        current = self.get_value(effect.variable_name, effect.variable_type)
        try:
            new_value = effect.apply(current)
        except ConfigurationError as exc:
            logger.error("Effect on %s skipped: %s", effect.variable_name, exc)
            return
        self.set_value(effect.variable_name, effect.variable_type, new_value)

    def apply_all(self, effects: List[StoryEffect]) -> None:
        for effect in effects:
            self.apply(effect)

    def get_variables(self) -> Dict[str, Value]:
        return dict(self._variables)
