"""
LineSelectionPipeline — the plant -> sector -> line cascade as an explicit state machine.

Each step holds its own loading/loaded/error state. A step can only load once
the step before it has a selection, and changing a selection resets every
step after it.
"""
from __future__ import annotations

import dataclasses
import enum
import logging

from .api.auth import get_standard_headers
from .api.reference import fetch_lines, fetch_plants, fetch_sectors
from .models import FetchResult, ReferenceOption

_LOGGER = logging.getLogger(__name__)


class SelectionStep(str, enum.Enum):
    PLANTS = "plants"
    SECTORS = "sectors"
    LINES = "lines"


class StepStatus(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


STEP_ORDER: tuple[SelectionStep, ...] = (SelectionStep.PLANTS, SelectionStep.SECTORS, SelectionStep.LINES)


@dataclasses.dataclass(frozen=True)
class StepState:
    status: StepStatus = StepStatus.IDLE
    options: tuple[ReferenceOption, ...] = ()
    selected: ReferenceOption | None = None
    error: str | None = None


class LineSelectionPipeline:
    """Loads and tracks the plant, sector and line choices of one selection session."""

    def __init__(self, api_url: str, token: str) -> None:
        self._api_url = api_url
        self._headers = get_standard_headers(token)
        self.steps: dict[SelectionStep, StepState] = {step: StepState() for step in STEP_ORDER}

    def state(self, step: SelectionStep) -> StepState:
        return self.steps[step]

    @property
    def is_complete(self) -> bool:
        return all(self.steps[step].selected is not None for step in STEP_ORDER)

    async def async_load(self, step: SelectionStep) -> StepState:
        """Fetch the options of step. The previous step must have a selection."""
        index = STEP_ORDER.index(step)
        if index > 0 and self.steps[STEP_ORDER[index - 1]].selected is None:
            raise ValueError(f"cannot load {step.value} before {STEP_ORDER[index - 1].value} is selected")

        self.steps[step] = StepState(status=StepStatus.LOADING)
        result = await self._async_fetch(step)
        if not result.ok:
            _LOGGER.warning("Failed to load %s: %s", step.value, result.error.message)
            self.steps[step] = StepState(status=StepStatus.ERROR, error=result.error.message)
        else:
            self.steps[step] = StepState(status=StepStatus.LOADED, options=tuple(result.value))
        return self.steps[step]

    def select(self, step: SelectionStep, option_id: str) -> ReferenceOption:
        """Pick one of the loaded options of step and reset everything downstream."""
        current = self.steps[step]
        option = next((o for o in current.options if o.id == option_id), None)
        if option is None:
            raise ValueError(f"unknown {step.value} option: {option_id}")

        self.steps[step] = dataclasses.replace(current, selected=option)
        for later in STEP_ORDER[STEP_ORDER.index(step) + 1:]:
            self.steps[later] = StepState()
        return option

    def as_settings(self) -> dict[str, str | bool]:
        """The DeviceSettings fields produced by a complete selection."""
        if not self.is_complete:
            raise ValueError("line selection is incomplete")
        plant = self.steps[SelectionStep.PLANTS].selected
        sector = self.steps[SelectionStep.SECTORS].selected
        line = self.steps[SelectionStep.LINES].selected
        return {
            "plant_id": plant.id,
            "plant_name": plant.name,
            "sector_id": sector.id,
            "sector_name": sector.name,
            "line_id": line.id,
            "line_name": line.name,
            "is_configured": True,
        }

    async def _async_fetch(self, step: SelectionStep) -> FetchResult[list[ReferenceOption]]:
        if step is SelectionStep.PLANTS:
            return await fetch_plants(self._api_url, self._headers)
        plant = self.steps[SelectionStep.PLANTS].selected
        if step is SelectionStep.SECTORS:
            return await fetch_sectors(self._api_url, self._headers, plant.id)
        sector = self.steps[SelectionStep.SECTORS].selected
        return await fetch_lines(self._api_url, self._headers, plant.id, sector.id)
