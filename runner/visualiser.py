"""
Visualization orchestrator for load test results.

Builds plots from the CSV artifacts a run leaves behind: the request record
file and the request-start histogram file.
"""

import os
import logging

import pandas as pd

from configuration import CSV_SUFFIX, HISTOGRAM_SUFFIX
from persistence.csv_reader import load_request_frame
from visualizations.latency_plots import LatencyPlotter
from visualizations.throughput_plots import ThroughputPlotter

logger = logging.getLogger(__name__)


class BenchmarkVisualizer:
    """Simple visualizer for load test results using modular plot classes."""

    def __init__(self, csv_prefix: str, output_dir: str = "plots"):
        self.csv_path = csv_prefix + CSV_SUFFIX
        self.histogram_path = csv_prefix + HISTOGRAM_SUFFIX
        self.output_dir = output_dir
        self.data = None
        self.histogram = None

        os.makedirs(output_dir, exist_ok=True)
        self._load_data()

        self.latency_plotter = LatencyPlotter(self.data, self.output_dir)
        self.throughput_plotter = ThroughputPlotter(self.data, self.output_dir, self.histogram)

        logger.info(f"Initialized visualizer for {csv_prefix}")

    def _load_data(self):
        """Load the record and histogram files; a missing file leaves its plots out."""
        try:
            self.data = load_request_frame(self.csv_path)
            logger.info(f"Loaded {len(self.data)} records from {self.csv_path}")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load records: {e}")
            self.data = None

        try:
            self.histogram = pd.read_csv(self.histogram_path)
            logger.info(f"Loaded {len(self.histogram)} histogram buckets from {self.histogram_path}")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load histogram: {e}")
            self.histogram = None

    def create_all_plots(self):
        """Create all available plots."""
        plots = [
            self.latency_plotter.create_latency_boxplot(),
            self.latency_plotter.create_latency_cdf(),
            self.throughput_plotter.create_request_start_timeline(),
            self.throughput_plotter.create_response_code_breakdown(),
        ]

        plots = [p for p in plots if p is not None]
        logger.info(f"Created {len(plots)} plots in {self.output_dir}")
        return plots
