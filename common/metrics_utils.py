"""
Shared utilities for latency statistics: counting arrays, percentiles, request rates and time buckets.

Percentiles here are computed from a counting array indexed by the latency
itself. That is linear in the number of records plus the largest latency and
needs no sort, but it is only sound for small non-negative integer latencies
(milliseconds). Memory grows with the maximum latency of a key, so a key whose
latencies routinely reach far beyond a few seconds would call for a streaming
quantile sketch instead.
"""

import math
import logging
from typing import Iterable

import numpy as np

from configuration import MEDIAN_QUANTILE, P99_QUANTILE, HISTOGRAM_BUCKET_MS

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with ties going up (2.5 -> 3, 3.5 -> 4)."""
    return int(math.floor(value + 0.5))


def new_counting_array(max_latency: int) -> np.ndarray:
    """Allocate a zeroed counting array covering latencies ``0..max_latency``."""
    if max_latency < 0:
        raise ValueError(f"max latency cannot be negative: {max_latency}")
    return np.zeros(max_latency + 1, dtype=np.int64)


def add_to_counting_array(counts: np.ndarray, latencies: Iterable[int]) -> None:
    """Increment ``counts[latency]`` for every latency, in place.

    Raises:
        ValueError: If a latency is negative or larger than the array allows
    """
    values = np.asarray(latencies, dtype=np.int64)
    if values.size == 0:
        return
    if values.min() < 0 or values.max() >= len(counts):
        raise ValueError(
            f"latency outside counting array range [0, {len(counts) - 1}]: "
            f"min={values.min()}, max={values.max()}")
    counts += np.bincount(values, minlength=len(counts))


def median_from_counting_array(counts: np.ndarray) -> int:
    """Find the median latency in a counting array.

    Scans up from zero and returns the first latency at which the running
    count reaches ``round_half_up(N / 2)``.

    Args:
        counts: Array in which the index is the latency and the value the number of requests

    Returns:
        The median latency, or -1 for an empty array
    """
    total = int(counts.sum())
    if total == 0:
        return -1
    middle_request = round_half_up(total * MEDIAN_QUANTILE)
    cumulative = np.cumsum(counts)
    return int(np.searchsorted(cumulative, middle_request, side='left'))


def p99_from_counting_array(counts: np.ndarray) -> int:
    """Find the 99th percentile latency in a counting array.

    Scans down from the largest latency, removing each bucket from the
    remaining total, and returns the first latency at which the requests
    strictly below it number at most ``round_half_up(N * 0.99)``.

    Args:
        counts: Array in which the index is the latency and the value the number of requests

    Returns:
        The 99th percentile latency, or -1 for an empty array
    """
    total = int(counts.sum())
    if total == 0:
        return -1
    p99_request = round_half_up(total * P99_QUANTILE)
    # below[i] is the number of requests with latency < i; non-decreasing in i
    below = np.cumsum(counts) - counts
    return int(np.searchsorted(below, p99_request, side='right')) - 1


def histogram_length(wall_start_ms: int, wall_stop_ms: int, bucket_ms: int = HISTOGRAM_BUCKET_MS) -> int:
    """Number of buckets needed to cover the wall-clock window, rounded up."""
    if wall_stop_ms < wall_start_ms:
        raise ValueError(f"wall stop {wall_stop_ms} precedes wall start {wall_start_ms}")
    return math.ceil((wall_stop_ms - wall_start_ms) / bucket_ms)


def bucket_indices(start_times_ms: Iterable[int], wall_start_ms: int,
                   bucket_ms: int = HISTOGRAM_BUCKET_MS) -> np.ndarray:
    """Map request start times to bucket indices, ``floor((t - wall_start) / bucket)``."""
    values = np.asarray(start_times_ms, dtype=np.int64)
    return np.floor_divide(values - wall_start_ms, bucket_ms)


def calculate_requests_per_second(request_count: int, duration_seconds: float) -> float:
    """
    Calculate requests per second (RPS) from request count and duration.

    Args:
        request_count: Number of requests
        duration_seconds: Duration in seconds

    Returns:
        Requests per second (RPS), 0.0 for a non-positive duration
    """
    if duration_seconds <= 0:
        return 0.0
    return request_count / duration_seconds
