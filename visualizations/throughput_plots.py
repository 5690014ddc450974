"""
Throughput visualization plots.
"""

import logging
from typing import Optional

import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from configuration import HISTOGRAM_HEADERS
from .base import BasePlotter

logger = logging.getLogger(__name__)

ROLLING_WINDOW_SECONDS = 10


class ThroughputPlotter(BasePlotter):
    """Plotter for request rate and outcome visualizations."""

    def __init__(self, data: pd.DataFrame, output_dir: str, histogram: Optional[pd.DataFrame] = None):
        super().__init__(data, output_dir)
        self.histogram = histogram

    def create_request_start_timeline(self):
        """Create the requests-started-per-second timeline from the histogram file."""
        if self.histogram is None or len(self.histogram) == 0:
            logger.warning("No histogram data available for request start timeline")
            return None

        try:
            seconds = self.histogram[HISTOGRAM_HEADERS[0]]
            counts = self.histogram[HISTOGRAM_HEADERS[1]]

            fig, ax = plt.subplots(figsize=(15, 8))
            ax.plot(seconds, counts, linewidth=1, alpha=0.5, color='steelblue', label='Per second')
            ax.plot(seconds, counts.rolling(ROLLING_WINDOW_SECONDS, min_periods=1).mean(),
                    linewidth=2, color='darkorange', label=f'{ROLLING_WINDOW_SECONDS}s rolling mean')

            ax.set_title('Requests Started per Second', fontsize=14)
            ax.set_xlabel('Seconds since run start', fontsize=12)
            ax.set_ylabel('Requests started', fontsize=12)
            ax.grid(True, alpha=0.3)
            ax.legend()

            plt.tight_layout()
            output_file = self.output_path('request_start_timeline.png')
            fig.savefig(output_file, dpi=150, bbox_inches='tight')
            plt.close(fig)

            logger.info(f"Created request start timeline: {output_file}")
            return output_file

        except Exception as e:
            logger.error(f"Failed to create request start timeline: {e}")
            plt.close('all')
            return None

    def create_response_code_breakdown(self):
        """Create a stacked bar chart of response codes per request key."""
        if not self.has_data():
            logger.warning("No data available for response code breakdown")
            return None

        try:
            breakdown = pd.crosstab(self.data['key'], self.data['response_code'].astype(str))

            fig, ax = plt.subplots(figsize=(12, 8))
            colors = sns.color_palette('husl', len(breakdown.columns))
            breakdown.plot(kind='bar', stacked=True, ax=ax, color=colors)

            ax.set_title('Response Codes by Endpoint', fontsize=14, fontweight='bold')
            ax.set_xlabel('Endpoint')
            ax.set_ylabel('Requests')
            ax.tick_params(axis='x', rotation=15)
            ax.legend(title='Response code')
            ax.grid(True, axis='y', alpha=0.3)

            plt.tight_layout()
            output_file = self.output_path('response_codes.png')
            fig.savefig(output_file, dpi=150, bbox_inches='tight')
            plt.close(fig)

            logger.info(f"Created response code breakdown: {output_file}")
            return output_file

        except Exception as e:
            logger.error(f"Failed to create response code breakdown: {e}")
            plt.close('all')
            return None
