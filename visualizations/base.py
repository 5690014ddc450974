"""
Base classes for plot visualization.
"""

import os
import logging

import pandas as pd

from configuration import HTTP_SUCCESS_MIN, HTTP_SUCCESS_MAX

logger = logging.getLogger(__name__)


class BasePlotter:
    """Base class for all plotters with common functionality."""

    def __init__(self, data: pd.DataFrame, output_dir: str):
        self.data = data
        self.output_dir = output_dir

    def has_data(self) -> bool:
        return self.data is not None and len(self.data) > 0

    def filter_successful_requests(self):
        """Filter data to only include requests with a 2xx response."""
        if not self.has_data():
            return None
        codes = self.data['response_code']
        return self.data[(codes >= HTTP_SUCCESS_MIN) & (codes <= HTTP_SUCCESS_MAX)]

    def get_request_keys(self):
        """Get the sorted "METHOD path" keys present in the data."""
        if not self.has_data():
            return []
        return sorted(self.data['key'].unique())

    def output_path(self, file_name: str) -> str:
        return os.path.join(self.output_dir, file_name)
