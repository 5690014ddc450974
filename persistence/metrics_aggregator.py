"""
Run-wide request counters, wall-clock timing and the final report.
"""

import time
import logging
from typing import Any, Dict, List, Optional

from configuration import MILLISECONDS_PER_SECOND
from common.atomic_counter import AtomicCounter
from common.metrics_utils import calculate_requests_per_second

logger = logging.getLogger(__name__)


class RunMetrics:
    """Aggregate state shared by every phase of a run.

    Workers increment ``failed_requests`` concurrently; the phase orchestrator
    adds whole-phase totals to ``total_requests``. Both are read only after
    every worker has joined.
    """

    def __init__(self):
        """Initialize the run metrics."""
        self.total_requests = AtomicCounter()
        self.failed_requests = AtomicCounter()
        self.wall_start_ms: Optional[int] = None
        self.wall_stop_ms: Optional[int] = None

    def start_wall_timer(self, timestamp_ms: Optional[int] = None) -> None:
        self.wall_start_ms = timestamp_ms if timestamp_ms is not None else _now_ms()
        logger.debug(f"Wall timer started at {self.wall_start_ms}")

    def stop_wall_timer(self, timestamp_ms: Optional[int] = None) -> None:
        self.wall_stop_ms = timestamp_ms if timestamp_ms is not None else _now_ms()
        logger.debug(f"Wall timer stopped at {self.wall_stop_ms}")

    @property
    def wall_time_seconds(self) -> float:
        if self.wall_start_ms is None or self.wall_stop_ms is None:
            return 0.0
        return (self.wall_stop_ms - self.wall_start_ms) / MILLISECONDS_PER_SECOND

    @property
    def successful_requests(self) -> int:
        return self.total_requests.value - self.failed_requests.value

    def throughput_per_second(self) -> float:
        """All requests divided by wall time."""
        return calculate_requests_per_second(self.total_requests.value, self.wall_time_seconds)

    def good_throughput_per_second(self) -> float:
        """Successful requests divided by wall time."""
        return calculate_requests_per_second(self.successful_requests, self.wall_time_seconds)

    def summary(self) -> Dict[str, Any]:
        """Get the run-level numbers as a dictionary."""
        return {
            'total_requests': self.total_requests.value,
            'failed_requests': self.failed_requests.value,
            'wall_time_seconds': self.wall_time_seconds,
            'throughput_per_second': self.throughput_per_second(),
            'good_throughput_per_second': self.good_throughput_per_second(),
        }

    def format_report(self, final_stats=None, phases: Optional[List[Dict[str, Any]]] = None) -> str:
        """Render the human-readable execution report.

        Args:
            final_stats: FinalStatistics from the analyzer (None = run-level numbers only)
            phases: Phase timing dictionaries from the PhaseManager

        Returns:
            Multi-line report
        """
        lines = [
            "Execution Statistics",
            "--------------------",
            f"Total Requests: {self.total_requests.value}",
            f"Bad Requests: {self.failed_requests.value}",
            f"Wall Time: {self.wall_time_seconds:.2f} seconds",
            f"Total Throughput: {self.throughput_per_second():.2f} requests/second",
            f"Success Throughput: {self.good_throughput_per_second():.2f} requests/second",
        ]

        for phase in phases or []:
            duration = phase.get('duration_seconds')
            duration_text = f"{duration:.2f}s" if duration is not None else "incomplete"
            lines.append(f"Phase {phase['phase_id']}: {phase['thread_count']} threads, {duration_text}")

        if final_stats is not None:
            lines.extend(_format_path_stats(final_stats))

        return "\n".join(lines) + "\n"


def _format_path_stats(final_stats) -> List[str]:
    """Per-path latency sections; values whose computation failed show as n/a."""
    lines = []
    for key in final_stats.keys():
        lines.append(f"Latencies (ms) for {key}:")
        mean = final_stats.mean_latency.get(key)
        lines.append(f"\tMean: {mean:.2f}" if mean is not None else "\tMean: n/a")
        lines.append(f"\tMedian: {_or_na(final_stats.median_latency.get(key))}")
        lines.append(f"\t99th Percentile: {_or_na(final_stats.p99_latency.get(key))}")
        lines.append(f"\tMax: {_or_na(final_stats.max_latency.get(key))}")

    for name, error in final_stats.errors.items():
        lines.append(f"Statistic '{name}' unavailable: {error}")
    return lines


def _or_na(value) -> str:
    return "n/a" if value is None else str(value)


def _now_ms() -> int:
    return int(time.time() * MILLISECONDS_PER_SECOND)

