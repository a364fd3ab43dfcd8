"""
Pure derivation of OEE figures from raw live counters.

No I/O and no state: every function here is a plain function of its arguments,
so one fetch result always yields one complete, consistent set of figures.
"""
from __future__ import annotations

import dataclasses
import math
from datetime import datetime

from .const import (
    SPEED_SCALE_FACTOR,
    STATUS_COLORS,
    STATUS_ICONS,
    STATUS_PRODUCING,
    STATUS_SETUP,
    STATUS_STANDBY,
    STATUS_STOPPED,
)
from .models import (
    LiveCounters,
    LiveMetrics,
    MachineStatus,
    ProductionJob,
    ProductionStatus,
    ProgressPercentages,
    Shift,
)
from .shift_scheduler import minutes_into_shift, shift_duration_minutes

SECONDS_PER_HOUR = 3600

_STATUS_LABELS: dict[MachineStatus, str] = {
    MachineStatus.RUNNING: STATUS_PRODUCING,
    MachineStatus.DOWN: STATUS_STOPPED,
    MachineStatus.SETUP: STATUS_SETUP,
    MachineStatus.PAUSED: STATUS_STANDBY,
    MachineStatus.STANDBY: STATUS_STANDBY,
}


@dataclasses.dataclass(frozen=True)
class MetricsSnapshot:
    """Everything derived from a single fetch, computed together."""

    metrics: LiveMetrics
    progress: ProgressPercentages
    machine_status: MachineStatus
    status: ProductionStatus


def clamp_percentage(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


def safe_percentage(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0 when the denominator is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def calculate_oee(availability: float, performance: float, quality: float) -> float:
    """OEE in percent from three percentages, each clamped to [0, 100]."""
    return (
        clamp_percentage(availability)
        * clamp_percentage(performance)
        * clamp_percentage(quality)
        / 10000
    )


def format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS; hours may exceed 24."""
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def derive_machine_status(counters: LiveCounters) -> MachineStatus:
    if counters.stopped_status == 1:
        return MachineStatus.DOWN
    if counters.running_time > 0 and counters.stopped_time == 0:
        return MachineStatus.RUNNING
    if counters.stopped_time > 0:
        return MachineStatus.PAUSED
    return MachineStatus.SETUP


def calculate_live_metrics(
    counters: LiveCounters,
    shift: Shift | None,
    job: ProductionJob | None,
    now: datetime,
) -> LiveMetrics:
    availability = clamp_percentage(
        safe_percentage(counters.running_time, counters.running_time + counters.stopped_time)
    )
    performance = clamp_percentage(safe_percentage(counters.cycle_time, counters.cycle_time_avg))
    if counters.count > 0:
        quality = clamp_percentage(safe_percentage(counters.good, counters.count))
    else:
        quality = 100.0

    if shift is not None:
        total_shift_time = shift_duration_minutes(shift) / 60
        time_in_shift = minutes_into_shift(shift, now) / 60
    else:
        total_shift_time = (counters.running_time + counters.stopped_time) / SECONDS_PER_HOUR
        time_in_shift = counters.running_time / SECONDS_PER_HOUR

    if job is not None:
        possible_production = max(0, job.order_quantity)
    else:
        throughput = counters.throughput if math.isfinite(counters.throughput) else 0.0
        possible_production = max(0, math.floor(throughput))

    return LiveMetrics(
        total=max(0, counters.count),
        good=max(0, counters.good),
        oee=calculate_oee(availability, performance, quality),
        availability=availability,
        performance=performance,
        quality=quality,
        production_order_progress=max(0, counters.count),
        possible_production=possible_production,
        time_in_shift=time_in_shift,
        total_shift_time=total_shift_time,
        avg_speed=max(0.0, counters.throughput),
        instant_speed=max(0.0, counters.instant_speed),
    )


def calculate_progress(metrics: LiveMetrics) -> ProgressPercentages:
    """
    Progress gauges. The speed gauge is scaled to 120% of the average speed
    and is not clamped: running faster than that reads above 100.
    """
    return ProgressPercentages(
        order=safe_percentage(metrics.production_order_progress, metrics.possible_production),
        time=safe_percentage(metrics.time_in_shift, metrics.total_shift_time),
        speed=safe_percentage(metrics.instant_speed, metrics.avg_speed * SPEED_SCALE_FACTOR),
    )


def calculate_production_status(
    machine_status: MachineStatus, producing_seconds: float, stopped_seconds: float
) -> ProductionStatus:
    label = _STATUS_LABELS.get(machine_status, STATUS_STANDBY)
    return ProductionStatus(
        status=label,
        color=STATUS_COLORS[label],
        icon=STATUS_ICONS[label],
        producing_time=format_duration(producing_seconds),
        stopped_time=format_duration(stopped_seconds),
        producing_percentage=safe_percentage(producing_seconds, producing_seconds + stopped_seconds),
    )


def compute_snapshot(
    counters: LiveCounters,
    shift: Shift | None,
    job: ProductionJob | None,
    now: datetime,
) -> MetricsSnapshot:
    """Derive metrics, progress and status from one fetch in a single step."""
    metrics = calculate_live_metrics(counters, shift, job, now)
    machine_status = derive_machine_status(counters)
    return MetricsSnapshot(
        metrics=metrics,
        progress=calculate_progress(metrics),
        machine_status=machine_status,
        status=calculate_production_status(
            machine_status, counters.running_time, counters.stopped_time
        ),
    )
