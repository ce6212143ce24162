"""Scenario loading — JSON assets into validated models."""

import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from operator_core.errors import ScenarioLoadError
from operator_core.models.persistence import NightEffectsDefinition
from operator_core.models.scenario import NightScenarioData

logger = logging.getLogger(__name__)


def parse_scenario(data: Union[str, bytes, dict]) -> NightScenarioData:
    """Parse and validate a scenario document, given as JSON text or an already decoded dict."""
    try:
        if isinstance(data, dict):
            scenario = NightScenarioData.model_validate(data)
        else:
            scenario = NightScenarioData.model_validate_json(data)
    except ValidationError as exc:
        raise ScenarioLoadError(f"Invalid scenario: {exc}") from exc

    seen = set()
    for call in scenario.calls:
        if call.call_id in seen:
            raise ScenarioLoadError(f"Duplicate call id: {call.call_id}")
        seen.add(call.call_id)

    if not scenario.night_id:
        scenario.night_id = scenario.flags.night_id or scenario.scenario_id

    logger.info("Parsed scenario %s (%s)", scenario.scenario_id, scenario.night_id)
    return scenario


def load_scenario(path: Union[str, Path]) -> NightScenarioData:
    """Read a scenario JSON file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ScenarioLoadError(f"Cannot read scenario {path}: {exc}") from exc
    return parse_scenario(text)


def parse_night_effects(data: Union[str, bytes, dict]) -> NightEffectsDefinition:
    try:
        if isinstance(data, dict):
            return NightEffectsDefinition.model_validate(data)
        return NightEffectsDefinition.model_validate_json(data)
    except ValidationError as exc:
        raise ScenarioLoadError(f"Invalid night effects: {exc}") from exc
