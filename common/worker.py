"""
A single load-generating worker: one thread's share of a phase.
"""

import logging
import random
import time
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from configuration import (
    WRITE_LIFT_RIDE_PATH,
    SKIER_DAY_VERTICAL_PATH,
    SKIER_RESORT_TOTALS_PATH,
    TRANSPORT_FAILURE_STATUS,
    MILLISECONDS_PER_SECOND,
)
from common.countdown_latch import CountDownLatch
from common.errors import ConfigurationError
from persistence.record import RequestKind, RequestRecord

# Limited logging here due to high execution volume
logger = logging.getLogger(__name__)


class WorkerAssignment(NamedTuple):
    """The slice of a phase handed to one worker (ranges are inclusive)."""

    skier_id_range: Tuple[int, int]
    time_window: Tuple[int, int]
    write_count: int
    read_count: int

    @property
    def total_requests(self) -> int:
        return self.write_count + 2 * self.read_count


def _validate_range(name: str, bounds: Tuple[int, int]) -> None:
    low, high = bounds
    if low < 0 or high < 0:
        raise ConfigurationError(f"{name} bounds cannot be negative: {bounds}")
    if low > high:
        raise ConfigurationError(f"{name} low bound cannot be greater than high bound: {bounds}")


class Worker:
    """Performs a fixed number of lift-ride writes followed by reads on two endpoints.

    A worker is single use and owns its record batch until ``run`` hands the
    whole batch to the telemetry channel. Failed calls are recorded, counted
    and logged, and never stop the worker.
    """

    def __init__(
        self,
        worker_id: int,
        assignment: WorkerAssignment,
        system,
        channel,
        metrics,
        completion_latch: CountDownLatch,
        next_phase_latch: Optional[CountDownLatch] = None,
        resort: str = "",
        ski_day: int = 1,
        num_ski_lifts: int = 1,
        rand: Optional[random.Random] = None,
    ):
        """Initialize a worker.

        Args:
            worker_id: Index of this worker within its phase
            assignment: Skier range, time window and request counts
            system: ApiSystem used for every call
            channel: TelemetryChannel receiving the finished batch
            metrics: RunMetrics whose failed-request counter is incremented on errors
            completion_latch: Counted down when this worker is done (phase completion)
            next_phase_latch: Counted down first when done (None = no next phase)
            resort: Resort id used in every request
            ski_day: Day id used in every request
            num_ski_lifts: Lift ids are drawn from ``[1, num_ski_lifts]``
            rand: Private random source (default: a fresh ``random.Random``)

        Raises:
            ConfigurationError: If counts are negative or a range is inverted
        """
        if assignment.write_count < 0 or assignment.read_count < 0:
            raise ConfigurationError(
                f"request counts cannot be negative: writes={assignment.write_count}, "
                f"reads={assignment.read_count}")
        _validate_range("skier id", assignment.skier_id_range)
        _validate_range("time", assignment.time_window)
        if num_ski_lifts < 1:
            raise ConfigurationError(f"number of ski lifts must be positive: {num_ski_lifts}")

        self.worker_id = worker_id
        self.assignment = assignment
        self.system = system
        self.channel = channel
        self.metrics = metrics
        self.completion_latch = completion_latch
        # A pre-opened latch keeps the completion path uniform for the final phase
        self.next_phase_latch = next_phase_latch or CountDownLatch(0, name="no-next-phase")
        self.resort = resort
        self.ski_day = ski_day
        self.num_ski_lifts = num_ski_lifts
        self.rand = rand or random.Random()

        self.records: List[RequestRecord] = []
        self.failed_requests = 0
        self._has_run = False

    def run(self) -> None:
        """Perform all writes, then all reads, then publish the batch and count down both latches."""
        if self._has_run:
            raise RuntimeError(f"Worker {self.worker_id} has already run")
        self._has_run = True

        try:
            with self.system:
                self._perform_writes()
                self._perform_reads()
            self.channel.send(self.records)
        finally:
            self.next_phase_latch.count_down()
            self.completion_latch.count_down()

    def _perform_writes(self) -> None:
        """Post lift rides built from one reusable template."""
        lift_ride: Dict[str, Any] = {
            "resortID": self.resort,
            "dayID": self.ski_day,
        }
        for _ in range(self.assignment.write_count):
            lift_ride["skierID"] = self._next_skier_id()
            lift_ride["time"] = self._next_time()
            lift_ride["liftID"] = self._next_lift()
            self._timed_call(RequestKind.WRITE, WRITE_LIFT_RIDE_PATH, lift_ride)

    def _perform_reads(self) -> None:
        """Exhaust the day-vertical endpoint before the resort-totals endpoint."""
        for _ in range(self.assignment.read_count):
            self._timed_call(RequestKind.READ, SKIER_DAY_VERTICAL_PATH, {
                "resortID": self.resort,
                "dayID": self.ski_day,
                "skierID": self._next_skier_id(),
            })

        for _ in range(self.assignment.read_count):
            self._timed_call(RequestKind.READ, SKIER_RESORT_TOTALS_PATH, {
                "skierID": self._next_skier_id(),
                "resort": self.resort,
            })

    def _timed_call(self, kind: RequestKind, path: str, params: Dict[str, Any]) -> None:
        """Make one call and record it whether it succeeded or not."""
        start_ms = int(time.time() * MILLISECONDS_PER_SECOND)
        started = time.perf_counter()
        try:
            status, error = self.system.submit(kind, path, params)
        except Exception as e:
            status, error = TRANSPORT_FAILURE_STATUS, f"unexpected client error: {e!r}"
        latency_ms = int((time.perf_counter() - started) * MILLISECONDS_PER_SECOND)

        self.records.append(RequestRecord(kind, path, start_ms, latency_ms, status))

        if error is not None:
            self.failed_requests += 1
            self.metrics.failed_requests.increment()
            logger.error(f"Worker {self.worker_id} API error on {kind.method} {path}: {status} {error}")

    def _next_skier_id(self) -> int:
        low, high = self.assignment.skier_id_range
        return self.rand.randint(low, high)

    def _next_time(self) -> int:
        low, high = self.assignment.time_window
        return self.rand.randint(low, high)

    def _next_lift(self) -> int:
        # Lift ids are 1-indexed
        return self.rand.randint(1, self.num_ski_lifts)
