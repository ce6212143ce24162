"""Story conditions and effects — the predicate/effect vocabulary of authored content."""

from enum import Enum
from typing import Union

from pydantic import BaseModel

from operator_core.errors import ConfigurationError


class ComparisonOperator(str, Enum):
    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    GREATER_THAN = "greater_than"
    GREATER_OR_EQUAL = "greater_or_equal"
    LESS_THAN = "less_than"
    LESS_OR_EQUAL = "less_or_equal"


class VariableType(str, Enum):
    INTEGER = "integer"     # Scores, counters
    BOOLEAN = "boolean"     # Flags
    STRING = "string"


class EffectOperation(str, Enum):
    SET = "set"
    ADD = "add"
    SUBTRACT = "subtract"
    TOGGLE = "toggle"       # Boolean only


def as_integer(variable_name: str, value) -> int:
    """Coerce a stored value to int. A non-numeric value is a configuration error."""
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Variable '{variable_name}' holds {value!r}, which is not an integer"
        ) from exc


def compare(current: Union[int, bool, str], operator: ComparisonOperator, threshold) -> bool:
    """
    Evaluate `current <operator> threshold`.

    Raises ConfigurationError for an operator this function does not know;
    callers decide how to degrade.
    """
    if operator == ComparisonOperator.EQUAL:
        return current == threshold
    if operator == ComparisonOperator.NOT_EQUAL:
        return current != threshold
    if operator == ComparisonOperator.GREATER_THAN:
        return current > threshold
    if operator == ComparisonOperator.GREATER_OR_EQUAL:
        return current >= threshold
    if operator == ComparisonOperator.LESS_THAN:
        return current < threshold
    if operator == ComparisonOperator.LESS_OR_EQUAL:
        return current <= threshold
    raise ConfigurationError(f"Unknown comparison operator: {operator!r}")


class StoryCondition(BaseModel):
    """A predicate over one story variable. Gates calls and responses."""

    variable_name: str
    variable_type: VariableType = VariableType.INTEGER
    comparison: ComparisonOperator = ComparisonOperator.GREATER_OR_EQUAL
    int_value: int = 0
    bool_value: bool = True
    string_value: str = ""

    def evaluate(self, current_value) -> bool:
        """
        Evaluate against the variable's current value.

        A missing value never satisfies a condition. Booleans and strings
        only support equality; any other operator is a configuration error.
        """
        if current_value is None:
            return False

        if self.variable_type == VariableType.INTEGER:
            return compare(as_integer(self.variable_name, current_value), self.comparison, self.int_value)

        if self.variable_type == VariableType.BOOLEAN:
            threshold = self.bool_value
            current = bool(current_value)
        elif self.variable_type == VariableType.STRING:
            threshold = self.string_value
            current = str(current_value)
        else:
            raise ConfigurationError(f"Unknown variable type: {self.variable_type!r}")

        if self.comparison not in (ComparisonOperator.EQUAL, ComparisonOperator.NOT_EQUAL):
            raise ConfigurationError(
                f"Operator {self.comparison.value} is not defined for "
                f"{self.variable_type.value} variable '{self.variable_name}'"
            )
        return compare(current, self.comparison, threshold)


class StoryEffect(BaseModel):
    """A mutation of one story variable, applied when content says so."""

    variable_name: str
    variable_type: VariableType = VariableType.INTEGER
    operation: EffectOperation = EffectOperation.ADD
    int_value: int = 0
    bool_value: bool = True
    string_value: str = ""

    def apply(self, current_value):
        """Return the variable's value after this effect."""
        if self.variable_type == VariableType.INTEGER:
            if self.operation == EffectOperation.SET:
                return self.int_value
            current = as_integer(self.variable_name, current_value) if current_value is not None else 0
            if self.operation == EffectOperation.ADD:
                return current + self.int_value
            if self.operation == EffectOperation.SUBTRACT:
                return current - self.int_value
        elif self.variable_type == VariableType.BOOLEAN:
            current = bool(current_value) if current_value is not None else False
            if self.operation == EffectOperation.SET:
                return self.bool_value
            if self.operation == EffectOperation.TOGGLE:
                return not current
        elif self.variable_type == VariableType.STRING:
            if self.operation == EffectOperation.SET:
                return self.string_value

        raise ConfigurationError(
            f"Operation {self.operation.value} is not defined for "
            f"{self.variable_type.value} variable '{self.variable_name}'"
        )
