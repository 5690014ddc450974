"""
Configuration constants for the skier API load test.

This module contains all configuration parameters including:
- Defaults and bounds for the properties file
- The fixed three-phase schedule (warm-up, peak, cooldown)
- HTTP client settings
- CSV artifact layout
- Observability and CLI defaults
"""

import os
from fractions import Fraction
from typing import List

# =============================================================================
# PROPERTIES FILE
# =============================================================================

DEFAULT_PROPERTIES_FILE: str = os.getenv("SKIER_BENCH_PROPERTIES", "arguments.properties")

# Property names as they appear in the properties file
PROP_MAX_THREADS: str = "maxThreads"
PROP_NUM_SKIERS: str = "numSkiers"
PROP_NUM_SKI_LIFTS: str = "numSkiLifts"
PROP_SKI_DAY: str = "skiDay"
PROP_RESORT: str = "resort"
PROP_HOST_ADDRESS: str = "hostAddress"
PROP_CSV_FILENAME: str = "csvFilename"

# Defaults for optional properties
DEFAULT_NUM_SKIERS: int = 50000
DEFAULT_NUM_SKI_LIFTS: int = 40
DEFAULT_SKI_DAY: int = 1
DEFAULT_CSV_FILENAME: str = "request-stats"

# Bounds (inclusive)
MIN_MAX_THREADS: int = 4
MIN_NUM_SKIERS: int = 1
MAX_NUM_SKIERS: int = 50000  # Only changes if more skiers are added to the database
MIN_NUM_SKI_LIFTS: int = 5
MAX_NUM_SKI_LIFTS: int = 60
MIN_SKI_DAY: int = 1
MAX_SKI_DAY: int = 366

# =============================================================================
# PHASE SCHEDULE
# =============================================================================

DAY_LENGTH_MINUTES: int = 420

# Phase 1: warm-up
WARM_UP_PHASE_ID: str = "warmup"
WARM_UP_THREAD_DIVISOR: int = 4
WARM_UP_START_MINUTE: int = 1
WARM_UP_END_MINUTE: int = 90

# Phase 2: peak
PEAK_PHASE_ID: str = "peak"
PEAK_START_MINUTE: int = 91
PEAK_END_MINUTE: int = 360

# Phase 3: cooldown (reuses the warm-up thread count)
COOLDOWN_PHASE_ID: str = "cooldown"
COOLDOWN_START_MINUTE: int = 361
COOLDOWN_END_MINUTE: int = DAY_LENGTH_MINUTES
COOLDOWN_READ_MULTIPLIER: int = 2

# Request volumes per thread
WRITES_PER_THREAD: int = 1000
READS_PER_THREAD_PER_ENDPOINT: int = 5

# Share of a phase's workers that must finish before the next phase starts
PHASE_TRIGGER_FRACTION: Fraction = Fraction(1, 10)

# The main thread waits in slices so Ctrl-C is delivered promptly
PHASE_WAIT_POLL_SECONDS: float = 0.5
# Bound on draining the writer after an interrupt
INTERRUPT_WRITER_JOIN_SECONDS: float = 5.0

# =============================================================================
# HTTP CLIENT
# =============================================================================

WRITE_LIFT_RIDE_PATH: str = "/skiers/liftrides"
SKIER_DAY_VERTICAL_PATH: str = "/skiers/{resortID}/days/{dayID}/skiers/{skierID}"
SKIER_RESORT_TOTALS_PATH: str = "/skiers/{skierID}/vertical"

REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("SKIER_BENCH_REQUEST_TIMEOUT", "60"))
HTTP_POOL_CONNECTIONS: int = 4  # One session per worker thread, so a small pool suffices

# Status code recorded when the transport itself failed and no response exists
TRANSPORT_FAILURE_STATUS: int = 0

HTTP_SUCCESS_MIN: int = 200
HTTP_SUCCESS_MAX: int = 299

# =============================================================================
# CSV ARTIFACTS
# =============================================================================

CSV_SUFFIX: str = ".csv"
CSV_HEADERS: List[str] = [
    "RequestType",
    "Path",
    "StartTimestamp(ms)",
    "Latency(ms)",
    "ResponseCode",
]
# Internal column names used when the record file is loaded back
CSV_COLUMNS: List[str] = [
    "request_type",
    "path",
    "start_ts_ms",
    "latency_ms",
    "response_code",
]

HISTOGRAM_SUFFIX: str = "-req-start-hist-data.csv"
# Header kept for compatibility with existing plotting sheets; buckets are one second wide
HISTOGRAM_HEADERS: List[str] = ["Minute", "Num Requests Started"]

CSV_READ_CHUNK_ROWS: int = 100_000

# =============================================================================
# TIME CONSTANTS
# =============================================================================

MILLISECONDS_PER_SECOND: int = 1000
HISTOGRAM_BUCKET_MS: int = MILLISECONDS_PER_SECOND

# =============================================================================
# STATISTICS
# =============================================================================

MEDIAN_QUANTILE: float = 0.5
P99_QUANTILE: float = 0.99
ANALYZER_MAX_WORKERS: int = 4

# =============================================================================
# OBSERVABILITY
# =============================================================================

DEFAULT_METRICS_PORT: int = int(os.getenv("SKIER_BENCH_METRICS_PORT", "0"))  # 0 = disabled
LATENCY_BUCKETS_SECONDS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

# =============================================================================
# CLI DEFAULTS
# =============================================================================

DEFAULT_PLOTS_DIR: str = "plots"
DEFAULT_LOG_LEVEL: str = "INFO"
