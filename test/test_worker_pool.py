"""Test suite for running phases on the worker pool."""

import sys
import os
import threading
import time

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from common.errors import ConfigurationError, CoordinationError
from common.phase_manager import PhaseManager, PhaseSpecification
from common.worker_pool import WorkerPool
from persistence.metrics_aggregator import RunMetrics
from persistence.telemetry import TelemetryChannel
from systems.base import ApiSystem


class StaticSystem(ApiSystem):

    def __init__(self, status=200, fail_paths=()):
        super().__init__("http://fake")
        self.status = status
        self.fail_paths = fail_paths

    def submit(self, kind, path, params):
        if path in self.fail_paths:
            return 503, "HTTP 503: unavailable"
        return self.status, None


class GatedSystem(ApiSystem):
    """Each call waits for a permit, so the test decides when workers finish."""

    def __init__(self, gate):
        super().__init__("http://fake")
        self.gate = gate

    def submit(self, kind, path, params):
        self.gate.acquire()
        return 200, None


def drain(channel):
    batches = []
    while channel.pending():
        batches.append(channel.receive())
    return batches


def wait_until(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


def make_pool(factory, channel=None, metrics=None):
    return WorkerPool(
        factory,
        channel or TelemetryChannel(),
        metrics or RunMetrics(),
        phase_manager=PhaseManager(),
        resort="SunValley",
        ski_day=1,
        num_ski_lifts=10,
    )


class TestRunPhase:

    def test_request_totals(self):
        channel = TelemetryChannel()
        metrics = RunMetrics()
        pool = make_pool(StaticSystem, channel, metrics)
        spec = PhaseSpecification("warmup", 4, (1, 90), 10, 2, 100)

        issued = pool.run_phase(spec)

        batches = drain(channel)
        assert issued == 56
        assert metrics.total_requests.value == 56
        assert len(batches) == 4
        assert sum(len(b) for b in batches) == 56
        assert metrics.failed_requests.value == 0
        assert not pool.phase_manager.is_phase_active("warmup")

    def test_failed_requests_counted_across_workers(self):
        from configuration import SKIER_RESORT_TOTALS_PATH

        metrics = RunMetrics()
        pool = make_pool(lambda: StaticSystem(fail_paths=(SKIER_RESORT_TOTALS_PATH,)), metrics=metrics)
        pool.run_phase(PhaseSpecification("peak", 5, (91, 360), 3, 1, 100))

        assert metrics.total_requests.value == 25
        assert metrics.failed_requests.value == 5

    def test_skier_ranges_partitioned(self):
        pool = make_pool(StaticSystem)
        spec = PhaseSpecification("warmup", 3, (1, 90), 1, 0, 10)
        workers = pool.build_workers(spec, completion_latch=None)

        assert [w.assignment.skier_id_range for w in workers] == [(1, 3), (4, 6), (7, 10)]
        assert all(w.assignment.time_window == (1, 90) for w in workers)

    def test_inverted_range_fails_before_any_worker_starts(self):
        created = []

        def factory():
            created.append(1)
            return StaticSystem()

        channel = TelemetryChannel()
        pool = make_pool(factory, channel)
        with pytest.raises(ConfigurationError):
            pool.run_phase(PhaseSpecification("peak", 4, (91, 360), 1, 0, 2))

        assert created == []
        assert channel.pending() == 0

    def test_factory_failure_closes_created_systems(self):
        created = []

        class ClosingSystem(StaticSystem):
            closed = False

            def close(self):
                self.closed = True

        def factory():
            if len(created) == 2:
                raise ConfigurationError("host unreachable")
            created.append(ClosingSystem())
            return created[-1]

        pool = make_pool(factory)
        with pytest.raises(ConfigurationError):
            pool.build_workers(PhaseSpecification("peak", 4, (91, 360), 1, 0, 100), completion_latch=None)

        assert len(created) == 2
        assert all(system.closed for system in created)

    def test_zero_threads(self):
        metrics = RunMetrics()
        pool = make_pool(StaticSystem, metrics=metrics)
        assert pool.run_phase(PhaseSpecification("warmup", 0, (1, 90), 10, 5, 100)) == 0
        assert metrics.total_requests.value == 0

    def test_worker_error_surfaces_after_join(self):

        class BrokenChannel(TelemetryChannel):
            def send(self, batch):
                raise RuntimeError("no consumer")

        pool = make_pool(StaticSystem, BrokenChannel())
        with pytest.raises(CoordinationError):
            pool.run_phase(PhaseSpecification("warmup", 2, (1, 90), 1, 0, 10))


class TestLaunchPhase:

    def test_trigger_opens_after_tenth_of_workers(self):
        gate = threading.Semaphore(0)
        pool = make_pool(lambda: GatedSystem(gate))
        spec = PhaseSpecification("peak", 37, (91, 360), 1, 0, 370)

        handle = pool.launch_phase(spec)
        assert handle.trigger_latch.count == 4

        for _ in range(3):
            gate.release()
        wait_until(lambda: handle.trigger_latch.count == 1)
        assert handle.wait_for_trigger(timeout=0.1) is False

        gate.release()
        assert handle.wait_for_trigger(timeout=5) is True
        assert handle.is_alive()
        assert pool.phase_manager.get_phase_info("peak")['trigger_ts'] is not None

        for _ in range(33):
            gate.release()
        handle.join(timeout=10)
        assert not handle.is_alive()
        assert pool.metrics.total_requests.value == 37

    def test_final_phase_trigger_is_open(self):
        gate = threading.Semaphore(0)
        pool = make_pool(lambda: GatedSystem(gate))
        handle = pool.launch_phase(PhaseSpecification("cooldown", 2, (361, 420), 1, 0, 10), final=True)

        assert handle.wait_for_trigger(timeout=0.1) is True
        gate.release()
        gate.release()
        handle.join(timeout=5)
        assert pool.metrics.total_requests.value == 2

    def test_setup_failure_aborts_trigger(self):
        pool = make_pool(StaticSystem)
        handle = pool.launch_phase(PhaseSpecification("peak", 4, (91, 360), 1, 0, 2))

        with pytest.raises(CoordinationError):
            handle.wait_for_trigger(timeout=5)
        with pytest.raises(CoordinationError):
            handle.join(timeout=5)
        assert isinstance(handle.error, ConfigurationError)
