"""
Tests for the pure OEE calculations in calculator.py.
"""

from __future__ import annotations

import unittest

from custom_components.oee_monitor.calculator import (
    calculate_live_metrics,
    calculate_oee,
    calculate_production_status,
    calculate_progress,
    clamp_percentage,
    compute_snapshot,
    derive_machine_status,
    format_duration,
    safe_percentage,
)
from custom_components.oee_monitor.models import LiveMetrics, MachineStatus

from .test_common import at, make_counters, make_job, make_shift


class TestPercentages(unittest.TestCase):

    def test_oee_is_product_of_factors(self):
        self.assertAlmostEqual(calculate_oee(80, 90, 100), 72.0)
        self.assertAlmostEqual(calculate_oee(100, 100, 100), 100.0)

    def test_oee_inputs_are_clamped(self):
        self.assertAlmostEqual(calculate_oee(150, 100, 100), 100.0)
        self.assertAlmostEqual(calculate_oee(-10, 100, 100), 0.0)

    def test_safe_percentage_zero_guard(self):
        self.assertEqual(safe_percentage(5, 0), 0.0)
        self.assertEqual(safe_percentage(5, -1), 0.0)
        self.assertEqual(safe_percentage(1, 4), 25.0)

    def test_clamp_handles_nan(self):
        self.assertEqual(clamp_percentage(float("nan")), 0.0)
        self.assertEqual(clamp_percentage(250), 100.0)

    def test_format_duration(self):
        self.assertEqual(format_duration(0), "00:00:00")
        self.assertEqual(format_duration(3661), "01:01:01")
        self.assertEqual(format_duration(90000), "25:00:00")
        self.assertEqual(format_duration(-5), "00:00:00")


class TestMachineStatus(unittest.TestCase):

    def test_derivation_rules(self):
        cases = [
            (dict(stopped_status=1, running_time=100, stopped_time=0), MachineStatus.DOWN),
            (dict(running_time=100, stopped_time=0), MachineStatus.RUNNING),
            (dict(running_time=100, stopped_time=10), MachineStatus.PAUSED),
            (dict(running_time=0, stopped_time=0), MachineStatus.SETUP),
        ]
        for counters, expected in cases:
            with self.subTest(counters=counters):
                self.assertEqual(derive_machine_status(make_counters(**counters)), expected)

    def test_status_presentation(self):
        running = calculate_production_status(MachineStatus.RUNNING, 3600, 0)
        self.assertEqual((running.status, running.color, running.icon), ("PRODUCING", "#22c55e", "mdi:play"))
        self.assertEqual(running.producing_time, "01:00:00")
        self.assertEqual(running.producing_percentage, 100.0)

        paused = calculate_production_status(MachineStatus.PAUSED, 0, 0)
        self.assertEqual(paused.status, "STANDBY")
        self.assertEqual(paused.producing_percentage, 0.0)

        self.assertEqual(calculate_production_status(MachineStatus.DOWN, 1, 1).color, "#ef4444")
        self.assertEqual(calculate_production_status(MachineStatus.SETUP, 1, 1).icon, "mdi:wrench")


class TestLiveMetrics(unittest.TestCase):

    def test_factors_from_counters(self):
        counters = make_counters(count=100, good=90, cycle_time=8, cycle_time_avg=10, running_time=3000, stopped_time=1000)
        metrics = calculate_live_metrics(counters, None, None, at("10:00"))

        self.assertAlmostEqual(metrics.availability, 75.0)
        self.assertAlmostEqual(metrics.performance, 80.0)
        self.assertAlmostEqual(metrics.quality, 90.0)
        self.assertAlmostEqual(metrics.oee, 54.0)
        self.assertEqual(metrics.total, 100)
        self.assertEqual(metrics.good, 90)

    def test_all_zero_counters_never_divide_by_zero(self):
        counters = make_counters(count=0, good=0, throughput=0, instant_speed=0, cycle_time=0,
                                 cycle_time_avg=0, running_time=0, stopped_time=0)
        metrics = calculate_live_metrics(counters, None, None, at("10:00"))
        progress = calculate_progress(metrics)

        self.assertEqual(metrics.availability, 0.0)
        self.assertEqual(metrics.performance, 0.0)
        self.assertEqual(metrics.quality, 100.0)
        self.assertEqual(metrics.oee, 0.0)
        self.assertEqual((progress.order, progress.time, progress.speed), (0.0, 0.0, 0.0))

    def test_performance_above_average_is_clamped(self):
        metrics = calculate_live_metrics(make_counters(cycle_time=15, cycle_time_avg=10), None, None, at("10:00"))
        self.assertEqual(metrics.performance, 100.0)

    def test_possible_production_from_job_or_throughput(self):
        with_job = calculate_live_metrics(make_counters(), None, make_job(order_quantity=500), at("10:00"))
        self.assertEqual(with_job.possible_production, 500)

        without_job = calculate_live_metrics(make_counters(throughput=120.7), None, None, at("10:00"))
        self.assertEqual(without_job.possible_production, 120)

    def test_nan_throughput_gives_no_possible_production(self):
        metrics = calculate_live_metrics(make_counters(throughput=float("nan")), None, None, at("10:00"))
        self.assertEqual(metrics.possible_production, 0)

    def test_shift_times_from_active_window(self):
        metrics = calculate_live_metrics(make_counters(), make_shift("1", "06:00", "14:00"), None, at("10:00"))
        self.assertAlmostEqual(metrics.total_shift_time, 8.0)
        self.assertAlmostEqual(metrics.time_in_shift, 4.0)

    def test_shift_times_without_shift_come_from_counters(self):
        metrics = calculate_live_metrics(make_counters(running_time=3600, stopped_time=3600), None, None, at("10:00"))
        self.assertAlmostEqual(metrics.total_shift_time, 2.0)
        self.assertAlmostEqual(metrics.time_in_shift, 1.0)


class TestProgress(unittest.TestCase):

    def test_progress_percentages(self):
        metrics = LiveMetrics(
            production_order_progress=250, possible_production=500,
            time_in_shift=2, total_shift_time=8, avg_speed=100, instant_speed=60,
        )
        progress = calculate_progress(metrics)
        self.assertAlmostEqual(progress.order, 50.0)
        self.assertAlmostEqual(progress.time, 25.0)
        self.assertAlmostEqual(progress.speed, 50.0)

    def test_speed_progress_is_not_clamped(self):
        progress = calculate_progress(LiveMetrics(avg_speed=100, instant_speed=150))
        self.assertAlmostEqual(progress.speed, 125.0)


class TestComputeSnapshot(unittest.TestCase):

    def test_snapshot_is_consistent(self):
        counters = make_counters(running_time=3000, stopped_time=600)
        snapshot = compute_snapshot(counters, make_shift(), make_job(), at("10:00"))

        self.assertEqual(snapshot.machine_status, MachineStatus.PAUSED)
        self.assertEqual(snapshot.status.status, "STANDBY")
        self.assertEqual(snapshot.status.producing_time, "00:50:00")
        self.assertEqual(snapshot.status.stopped_time, "00:10:00")
        self.assertEqual(snapshot.progress, calculate_progress(snapshot.metrics))
