"""
ProductionSnapshot — immutable snapshot of the production state shared with entities.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime

from .models import (
    DeviceSettings,
    LiveMetrics,
    MachineStatus,
    ProductionJob,
    ProductionStatus,
    ProgressPercentages,
    Shift,
    ViewState,
)


@dataclasses.dataclass(frozen=True)
class ProductionSnapshot:
    """
    Typed, copy-on-write snapshot of everything the operator sees.

    Always replace via dataclasses.replace(), never mutate in place.
    """

    # Line selection this snapshot belongs to
    settings: DeviceSettings = dataclasses.field(default_factory=DeviceSettings)

    # Shift catalog of the configured line, loaded once per session
    shifts: tuple[Shift, ...] = ()

    # Active shift; shift_version only changes when the shift identity changes
    current_shift: Shift | None = None
    shift_version: int = 0

    # Figures of the last successful live-data fetch
    metrics: LiveMetrics = dataclasses.field(default_factory=LiveMetrics)
    progress: ProgressPercentages = dataclasses.field(default_factory=ProgressPercentages)
    machine_status: MachineStatus = MachineStatus.STANDBY
    status: ProductionStatus = dataclasses.field(default_factory=ProductionStatus)

    # Active production order, None when no order is running
    job: ProductionJob | None = None

    view: ViewState = ViewState.DASHBOARD
    initialized: bool = False
    last_update: datetime | None = None
