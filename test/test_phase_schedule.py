"""Test suite for phase schedules, skier partitioning and phase timing."""

import sys
import os
from fractions import Fraction

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from common.phase_manager import (
    PhaseManager,
    PhaseSpecification,
    build_phase_schedule,
    partition_skier_ids,
    trigger_count,
)
from configuration import WARM_UP_PHASE_ID, PEAK_PHASE_ID, COOLDOWN_PHASE_ID


class TestTriggerCount:
    """Trigger count is the thread count times the fraction, rounded up."""

    @pytest.mark.parametrize("threads, expected", [(1, 1), (4, 1), (10, 1), (11, 2), (37, 4), (100, 10)])
    def test_one_tenth(self, threads, expected):
        assert trigger_count(threads) == expected

    def test_zero_threads(self):
        assert trigger_count(0) == 0

    def test_custom_fraction(self):
        assert trigger_count(10, Fraction(1, 3)) == 4


class TestPartitionSkierIds:

    def test_even_split(self):
        assert partition_skier_ids(12, 4) == [(1, 3), (4, 6), (7, 9), (10, 12)]

    def test_last_thread_absorbs_remainder(self):
        assert partition_skier_ids(10, 3) == [(1, 3), (4, 6), (7, 10)]

    def test_every_id_covered_once(self):
        ranges = partition_skier_ids(50000, 37)
        covered = [i for low, high in ranges for i in range(low, high + 1)]
        assert covered == list(range(1, 50001))

    def test_fewer_skiers_than_threads_gives_inverted_ranges(self):
        ranges = partition_skier_ids(2, 4)
        assert any(low > high for low, high in ranges)

    def test_zero_threads_rejected(self):
        with pytest.raises(ValueError):
            partition_skier_ids(10, 0)


class TestBuildPhaseSchedule:

    def test_thread_counts_and_windows(self):
        warm_up, peak, cooldown = build_phase_schedule(64, 20000)

        assert (warm_up.phase_id, peak.phase_id, cooldown.phase_id) == (
            WARM_UP_PHASE_ID, PEAK_PHASE_ID, COOLDOWN_PHASE_ID)
        assert (warm_up.thread_count, peak.thread_count, cooldown.thread_count) == (16, 64, 16)
        assert warm_up.time_window == (1, 90)
        assert peak.time_window == (91, 360)
        assert cooldown.time_window == (361, 420)

    def test_request_volumes(self):
        warm_up, peak, cooldown = build_phase_schedule(64, 20000)

        assert warm_up.writes_per_thread == peak.writes_per_thread == cooldown.writes_per_thread == 1000
        assert warm_up.reads_per_thread_per_endpoint == 5
        assert peak.reads_per_thread_per_endpoint == 5
        assert cooldown.reads_per_thread_per_endpoint == 10
        assert warm_up.requests_per_thread == 1010
        assert cooldown.total_requests == 1020 * 16

    def test_warm_up_threads_rounded_down(self):
        warm_up, _, cooldown = build_phase_schedule(39, 1000)
        assert warm_up.thread_count == 9
        assert cooldown.thread_count == 9

    def test_phase_trigger_count(self):
        spec = PhaseSpecification("p", 37, (1, 10), 1, 1, 100)
        assert spec.trigger_count == 4


class TestPhaseManager:

    def test_lifecycle(self):
        manager = PhaseManager()
        manager.begin_phase("warmup", 4)
        assert manager.is_phase_active("warmup")

        manager.mark_triggered("warmup")
        manager.mark_completed("warmup")

        info = manager.get_phase_info("warmup")
        assert not manager.is_phase_active("warmup")
        assert info['thread_count'] == 4
        assert info['trigger_ts'] is not None
        assert info['duration_seconds'] >= 0

    def test_trigger_recorded_once(self):
        manager = PhaseManager()
        manager.begin_phase("peak", 8)
        manager.mark_triggered("peak", timestamp=100.0)
        manager.mark_triggered("peak", timestamp=200.0)
        assert manager.get_phase_info("peak")['trigger_ts'] == 100.0

    def test_unknown_phase(self):
        manager = PhaseManager()
        manager.mark_completed("missing")
        assert manager.get_phase_info("missing") is None
        assert not manager.is_phase_active("missing")

    def test_phases_in_start_order(self):
        manager = PhaseManager()
        for phase_id in ("warmup", "peak", "cooldown"):
            manager.begin_phase(phase_id, 1)
        assert [p['phase_id'] for p in manager.get_all_phase_info()] == ["warmup", "peak", "cooldown"]
        assert all(p['duration_seconds'] is None for p in manager.get_all_phase_info())
