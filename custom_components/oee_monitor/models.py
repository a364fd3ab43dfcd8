"""
Domain models for the OEE monitor integration.

This module contains pure data classes representing production entities.
These classes have no dependencies on HTTP, API logic, or Home Assistant internals.
Every model is frozen: replace via dataclasses.replace(), never mutate in place.
"""
from __future__ import annotations

import dataclasses
import enum
from datetime import time
from typing import Generic, TypeVar

T = TypeVar("T")


class MachineStatus(str, enum.Enum):
    """Operating state of the monitored line, derived from live counters."""

    RUNNING = "RUNNING"
    DOWN = "DOWN"
    PAUSED = "PAUSED"
    SETUP = "SETUP"
    STANDBY = "STANDBY"


class ViewState(str, enum.Enum):
    """Dashboard view currently shown to the operator."""

    DASHBOARD = "DASHBOARD"
    OEE = "OEE"
    STOP_REASON = "STOP_REASON"
    PAUSE_REASON = "PAUSE_REASON"
    SETUP = "SETUP"
    HELP = "HELP"
    DOWNTIME = "DOWNTIME"


# Views during which live counters are polled
MONITORING_VIEWS = frozenset({ViewState.DASHBOARD, ViewState.OEE})


@dataclasses.dataclass(frozen=True)
class Shift:
    """A recurring named time-of-day window. end_time < start_time wraps past midnight."""

    id: str
    name: str
    start_time: time
    end_time: time


@dataclasses.dataclass(frozen=True)
class DeviceSettings:
    """Line/plant/sector selection of this device."""

    plant_id: str = ""
    plant_name: str = ""
    sector_id: str = ""
    sector_name: str = ""
    line_id: str = ""
    line_name: str = ""
    product_id: str = ""
    product_name: str = ""
    is_configured: bool = False
    last_setup_date: str | None = None


@dataclasses.dataclass(frozen=True)
class DeviceRecord:
    """Minimal entry of the persisted device list."""

    id: str
    name: str
    line_id: str
    line_name: str


@dataclasses.dataclass(frozen=True)
class ReferenceOption:
    """One selectable plant, sector or line."""

    id: str
    name: str


@dataclasses.dataclass(frozen=True)
class ProductionJob:
    """Production order currently running on the line."""

    order_id: str
    order_quantity: int
    product_id: str
    product_name: str


@dataclasses.dataclass(frozen=True)
class LiveCounters:
    """Raw counters of a single live-data fetch. Times are in seconds."""

    count: int = 0
    good: int = 0
    throughput: float = 0.0
    instant_speed: float = 0.0
    cycle_time: float = 0.0
    cycle_time_avg: float = 0.0
    running_time: int = 0
    stopped_time: int = 0
    stopped_status: int = 0


@dataclasses.dataclass(frozen=True)
class LiveReading:
    """Everything one live-data fetch returns."""

    counters: LiveCounters
    job: ProductionJob | None = None


@dataclasses.dataclass(frozen=True)
class LiveMetrics:
    """Derived live figures. Percentages are 0-100, times are hours."""

    total: int = 0
    good: int = 0
    oee: float = 0.0
    availability: float = 0.0
    performance: float = 0.0
    quality: float = 0.0
    production_order_progress: int = 0
    possible_production: int = 0
    time_in_shift: float = 0.0
    total_shift_time: float = 0.0
    avg_speed: float = 0.0
    instant_speed: float = 0.0


@dataclasses.dataclass(frozen=True)
class ProgressPercentages:
    order: float = 0.0
    time: float = 0.0
    speed: float = 0.0


@dataclasses.dataclass(frozen=True)
class ProductionStatus:
    """Presentation of the line status. Durations are formatted HH:MM:SS."""

    status: str = "STANDBY"
    color: str = "#f59e0b"
    icon: str = "mdi:pause"
    producing_time: str = "00:00:00"
    stopped_time: str = "00:00:00"
    producing_percentage: float = 0.0


class FetchErrorKind(str, enum.Enum):
    GATED = "gated"            # device not configured, nothing was sent
    TRANSIENT = "transient"    # network, timeout or HTTP error
    MALFORMED = "malformed"    # response body did not have the expected shape


@dataclasses.dataclass(frozen=True)
class FetchError:
    kind: FetchErrorKind
    message: str = ""


@dataclasses.dataclass(frozen=True)
class FetchResult(Generic[T]):
    """
    Outcome of a remote fetch: either a value or an error, never an exception.

    Callers decide explicitly what to do with a failure.
    """

    value: T | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: FetchErrorKind, message: str = "") -> "FetchResult[T]":
        return cls(error=FetchError(kind, message))
