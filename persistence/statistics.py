"""
Post-run analysis of the request record file.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional

import numpy as np

from configuration import ANALYZER_MAX_WORKERS
from persistence.csv_reader import CsvStatsReader

logger = logging.getLogger(__name__)


class FinalStatistics:
    """Results of the post-run calculations.

    A calculation that failed leaves its dictionary empty (or the histogram
    None) and records its error under the calculation's name.
    """

    def __init__(self):
        self.mean_latency: Dict[str, float] = {}
        self.max_latency: Dict[str, int] = {}
        self.median_latency: Dict[str, int] = {}
        self.p99_latency: Dict[str, int] = {}
        self.request_start_histogram: Optional[np.ndarray] = None
        self.histogram_path: Optional[str] = None
        self.errors: Dict[str, str] = {}

    def keys(self) -> List[str]:
        """Every request key any calculation produced, sorted."""
        keys = set(self.mean_latency) | set(self.max_latency) | set(self.median_latency) | set(self.p99_latency)
        return sorted(keys)


class StatisticsAnalyzer:
    """Runs the independent calculations over the record file on a small thread pool.

    Mean and histogram run alongside max; median and p99 need the max
    latencies to size their counting arrays, so they start once max is done.
    Each calculation fails on its own without affecting the others.
    """

    def __init__(self, reader: CsvStatsReader, wall_start_ms: int, wall_stop_ms: int,
                 persistence=None, max_workers: int = ANALYZER_MAX_WORKERS):
        """Initialize the analyzer.

        Args:
            reader: Reader over the finished record file
            wall_start_ms: Run start, epoch milliseconds
            wall_stop_ms: Run stop, epoch milliseconds
            persistence: CsvPersistence used to write the histogram file (None = don't write)
            max_workers: Size of the calculation thread pool
        """
        self.reader = reader
        self.wall_start_ms = wall_start_ms
        self.wall_stop_ms = wall_stop_ms
        self.persistence = persistence
        self.max_workers = max_workers

    def perform_final_calcs(self) -> FinalStatistics:
        """Compute every statistic and write the request-start histogram."""
        stats = FinalStatistics()

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="analyzer") as executor:
            mean_future = executor.submit(self.reader.calculate_mean_latencies)
            histogram_future = executor.submit(
                self.reader.calculate_requests_per_second, self.wall_start_ms, self.wall_stop_ms)

            max_latency = _collect("max", executor.submit(self.reader.calculate_max_latencies), stats)
            if max_latency is not None:
                stats.max_latency = max_latency
                median_future = executor.submit(self.reader.calculate_median_latencies, max_latency)
                p99_future = executor.submit(self.reader.calculate_p99_latencies, max_latency)
                stats.median_latency = _collect("median", median_future, stats) or {}
                stats.p99_latency = _collect("p99", p99_future, stats) or {}
            else:
                stats.errors["median"] = "max latencies unavailable"
                stats.errors["p99"] = "max latencies unavailable"

            stats.mean_latency = _collect("mean", mean_future, stats) or {}
            stats.request_start_histogram = _collect("histogram", histogram_future, stats)

        if stats.request_start_histogram is not None and self.persistence is not None:
            stats.histogram_path = self.persistence.write_request_start_data(stats.request_start_histogram)

        logger.info(f"Final statistics computed for {len(stats.keys())} request keys, {len(stats.errors)} errors")
        return stats


def _collect(name: str, future: Future, stats: FinalStatistics):
    """Result of one calculation, or None with the error recorded."""
    try:
        return future.result()
    except Exception as e:
        logger.error(f"Calculation of {name} statistics failed: {e}")
        stats.errors[name] = str(e)
        return None
