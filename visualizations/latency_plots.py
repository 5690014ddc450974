"""
Latency visualization plots.
"""

import logging

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns

from .base import BasePlotter

logger = logging.getLogger(__name__)


class LatencyPlotter(BasePlotter):
    """Plotter for per-endpoint latency distributions."""

    def create_latency_boxplot(self):
        """Create latency box plot with one box per request key."""
        if not self.has_data():
            logger.warning("No data available for latency box plot")
            return None

        try:
            keys = self.get_request_keys()
            fig, ax = plt.subplots(figsize=(12, 8))
            sns.boxplot(data=self.data, x='key', y='latency_ms', order=keys, ax=ax,
                        hue='key', palette='Set2', legend=False)
            ax.set_title('Latency Distribution by Endpoint', fontsize=14, fontweight='bold')
            ax.set_xlabel('Endpoint')
            ax.set_ylabel('Latency (ms)')
            ax.tick_params(axis='x', rotation=15)
            ax.grid(True, alpha=0.3)

            # Median annotations
            for i, key in enumerate(keys):
                median = self.data.loc[self.data['key'] == key, 'latency_ms'].median()
                ax.text(i, median, f'{median:.0f}', ha='center', va='bottom', fontsize=9)

            plt.tight_layout()
            output_file = self.output_path('latency_boxplot.png')
            fig.savefig(output_file, dpi=150, bbox_inches='tight')
            plt.close(fig)

            logger.info(f"Created latency box plot: {output_file}")
            return output_file

        except Exception as e:
            logger.error(f"Failed to create latency box plot: {e}")
            plt.close('all')
            return None

    def create_latency_cdf(self):
        """Create one latency CDF line per request key."""
        if not self.has_data():
            logger.warning("No data available for latency CDF")
            return None

        try:
            fig, ax = plt.subplots(figsize=(12, 8))
            colors = sns.color_palette('Set2', len(self.get_request_keys()))

            for color, key in zip(colors, self.get_request_keys()):
                sorted_latencies = np.sort(self.data.loc[self.data['key'] == key, 'latency_ms'].to_numpy())
                y = np.arange(1, len(sorted_latencies) + 1) / len(sorted_latencies)
                ax.plot(sorted_latencies, y, linewidth=2, color=color, label=key)

            ax.axhline(0.5, color='grey', linestyle='--', linewidth=1, alpha=0.6)
            ax.axhline(0.99, color='red', linestyle='--', linewidth=1, alpha=0.6)
            ax.set_title('Cumulative Latency Distribution', fontsize=14, fontweight='bold')
            ax.set_xlabel('Latency (ms)')
            ax.set_ylabel('Cumulative Probability')
            ax.legend()
            ax.grid(True, alpha=0.3)

            plt.tight_layout()
            output_file = self.output_path('latency_cdf.png')
            fig.savefig(output_file, dpi=150, bbox_inches='tight')
            plt.close(fig)

            logger.info(f"Created latency CDF: {output_file}")
            return output_file

        except Exception as e:
            logger.error(f"Failed to create latency CDF: {e}")
            plt.close('all')
            return None
