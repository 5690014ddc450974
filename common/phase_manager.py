"""
Phase specifications, skier partitioning and phase timing for the load test.
"""

import math
import threading
import time
import logging
from fractions import Fraction
from typing import Dict, List, NamedTuple, Optional, Tuple, Any

from configuration import (
    WARM_UP_PHASE_ID,
    WARM_UP_THREAD_DIVISOR,
    WARM_UP_START_MINUTE,
    WARM_UP_END_MINUTE,
    PEAK_PHASE_ID,
    PEAK_START_MINUTE,
    PEAK_END_MINUTE,
    COOLDOWN_PHASE_ID,
    COOLDOWN_START_MINUTE,
    COOLDOWN_END_MINUTE,
    COOLDOWN_READ_MULTIPLIER,
    WRITES_PER_THREAD,
    READS_PER_THREAD_PER_ENDPOINT,
    PHASE_TRIGGER_FRACTION,
)

logger = logging.getLogger(__name__)


class PhaseSpecification(NamedTuple):
    """Everything a worker pool needs to run one phase."""

    phase_id: str
    thread_count: int
    time_window: Tuple[int, int]
    writes_per_thread: int
    reads_per_thread_per_endpoint: int
    total_skiers: int
    trigger_fraction: Fraction = PHASE_TRIGGER_FRACTION

    @property
    def trigger_count(self) -> int:
        """Number of finished workers that lets the next phase start."""
        return trigger_count(self.thread_count, self.trigger_fraction)

    @property
    def requests_per_thread(self) -> int:
        # Two read endpoints
        return self.writes_per_thread + 2 * self.reads_per_thread_per_endpoint

    @property
    def total_requests(self) -> int:
        return self.requests_per_thread * self.thread_count


def trigger_count(thread_count: int, fraction: Fraction = PHASE_TRIGGER_FRACTION) -> int:
    """Round ``thread_count * fraction`` up, e.g. 37 threads at 1/10 -> 4."""
    return math.ceil(Fraction(thread_count) * Fraction(fraction))


def partition_skier_ids(total_skiers: int, thread_count: int) -> List[Tuple[int, int]]:
    """Split ``[1, total_skiers]`` into contiguous inclusive ranges, one per thread.

    Every thread gets ``total_skiers // thread_count`` ids and the last thread
    also absorbs the remainder. When there are fewer skiers than threads the
    leading ranges come out inverted, which workers reject.
    """
    if thread_count <= 0:
        raise ValueError("thread count must be positive")

    skiers_per_thread = total_skiers // thread_count
    ranges = []
    low = 1
    high = skiers_per_thread
    for i in range(thread_count):
        if i == thread_count - 1:
            high = total_skiers
        ranges.append((low, high))
        low = high + 1
        high = high + skiers_per_thread
    return ranges


def build_phase_schedule(max_threads: int, total_skiers: int,
                         writes_per_thread: int = WRITES_PER_THREAD,
                         reads_per_endpoint: int = READS_PER_THREAD_PER_ENDPOINT) -> List[PhaseSpecification]:
    """Build the fixed warm-up, peak and cooldown schedule.

    Args:
        max_threads: Thread count of the peak phase
        total_skiers: Size of the skier population, repartitioned for each phase
        writes_per_thread: POST volume per thread in every phase
        reads_per_endpoint: GET volume per thread per endpoint (doubled for cooldown)

    Returns:
        Phase specifications in execution order
    """
    warm_up_threads = max_threads // WARM_UP_THREAD_DIVISOR
    return [
        PhaseSpecification(
            phase_id=WARM_UP_PHASE_ID,
            thread_count=warm_up_threads,
            time_window=(WARM_UP_START_MINUTE, WARM_UP_END_MINUTE),
            writes_per_thread=writes_per_thread,
            reads_per_thread_per_endpoint=reads_per_endpoint,
            total_skiers=total_skiers,
        ),
        PhaseSpecification(
            phase_id=PEAK_PHASE_ID,
            thread_count=max_threads,
            time_window=(PEAK_START_MINUTE, PEAK_END_MINUTE),
            writes_per_thread=writes_per_thread,
            reads_per_thread_per_endpoint=reads_per_endpoint,
            total_skiers=total_skiers,
        ),
        PhaseSpecification(
            phase_id=COOLDOWN_PHASE_ID,
            thread_count=warm_up_threads,
            time_window=(COOLDOWN_START_MINUTE, COOLDOWN_END_MINUTE),
            writes_per_thread=writes_per_thread,
            reads_per_thread_per_endpoint=reads_per_endpoint * COOLDOWN_READ_MULTIPLIER,
            total_skiers=total_skiers,
        ),
    ]


class PhaseManager:
    """Tracks when each phase began, released its successor and completed.

    Phases overlap, so several may be active at once and every method is
    safe to call from any thread.
    """

    def __init__(self):
        """Initialize the phase manager."""
        self._phases: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

        logger.info("Initialized PhaseManager")

    def begin_phase(self, phase_id: str, thread_count: int) -> None:
        """Record the start of a phase.

        Args:
            phase_id: Unique identifier for the phase (e.g., "warmup", "peak")
            thread_count: Number of workers launched for this phase
        """
        with self._lock:
            self._phases[phase_id] = {
                'phase_id': phase_id,
                'thread_count': thread_count,
                'start_ts': time.time(),
                'trigger_ts': None,
                'end_ts': None,
            }

        logger.info(f"Began phase: {phase_id} with {thread_count} threads")

    def mark_triggered(self, phase_id: str, timestamp: Optional[float] = None) -> None:
        """Record the moment enough workers finished to start the next phase."""
        with self._lock:
            info = self._phases.get(phase_id)
            if info is None:
                logger.warning(f"Phase {phase_id} triggered before it began")
                return
            if info['trigger_ts'] is not None:
                return
            info['trigger_ts'] = timestamp or time.time()
            elapsed = info['trigger_ts'] - info['start_ts']

        logger.info(f"Phase {phase_id} released the next phase after {elapsed:.2f}s")

    def mark_completed(self, phase_id: str, timestamp: Optional[float] = None) -> None:
        """Record that every worker of the phase has finished."""
        with self._lock:
            info = self._phases.get(phase_id)
            if info is None:
                logger.warning(f"Phase {phase_id} completed before it began")
                return
            info['end_ts'] = timestamp or time.time()
            elapsed = info['end_ts'] - info['start_ts']

        logger.info(f"Phase {phase_id} completed in {elapsed:.2f}s")

    def get_phase_info(self, phase_id: str) -> Optional[Dict[str, Any]]:
        """Get a copy of the timing information for a phase.

        Returns:
            Dictionary with start/trigger/end timestamps and duration, or None
        """
        with self._lock:
            info = self._phases.get(phase_id)
            if info is None:
                return None
            info = dict(info)

        info['duration_seconds'] = (info['end_ts'] - info['start_ts']) if info['end_ts'] else None
        return info

    def get_all_phase_info(self) -> List[Dict[str, Any]]:
        """Timing information for every phase, in the order they began."""
        with self._lock:
            phase_ids = list(self._phases)
        return [self.get_phase_info(phase_id) for phase_id in phase_ids]

    def is_phase_active(self, phase_id: str) -> bool:
        """True if the phase began and has not completed."""
        with self._lock:
            info = self._phases.get(phase_id)
            return info is not None and info['end_ts'] is None

    def __repr__(self) -> str:
        """String representation of the phase manager."""
        return f"PhaseManager(phases={list(self._phases)})"
