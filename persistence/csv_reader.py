"""
Statistics computed by streaming the request record CSV written during a run.

Each calculation makes its own pass over the file in chunks, so no
calculation ever holds the whole run in memory and file order never matters:
grouping is by ``"METHOD path"`` key and time bucketing uses the timestamp
column, not row position.
"""

import logging
from typing import Dict, Iterator, List

import numpy as np
import pandas as pd

from configuration import CSV_COLUMNS, CSV_READ_CHUNK_ROWS
from common.metrics_utils import (
    new_counting_array,
    add_to_counting_array,
    median_from_counting_array,
    p99_from_counting_array,
    histogram_length,
    bucket_indices,
)

logger = logging.getLogger(__name__)

_DTYPES = {
    'request_type': str,
    'path': str,
    'start_ts_ms': 'int64',
    'latency_ms': 'int64',
    'response_code': 'int64',
}
_KEY_COLUMNS = ['request_type', 'path']


def load_request_frame(csv_path: str) -> pd.DataFrame:
    """Load a whole record file with internal column names and a ``key`` column."""
    data = pd.read_csv(csv_path, header=0, names=CSV_COLUMNS, dtype=_DTYPES)
    data['key'] = _make_keys(data)
    return data


def _make_keys(chunk: pd.DataFrame) -> pd.Series:
    return chunk['request_type'].str.cat(chunk['path'], sep=' ')


class CsvStatsReader:
    """Provides per-path latency statistics and request-start histograms from a record CSV.

    Any malformed numeric field raises ``ValueError`` from the calculation
    that parsed it.
    """

    def __init__(self, csv_path: str, chunk_rows: int = CSV_READ_CHUNK_ROWS):
        self.csv_path = csv_path
        self.chunk_rows = chunk_rows

    def _read_chunks(self, columns: List[str]) -> Iterator[pd.DataFrame]:
        """Yield the requested columns chunk by chunk, with a ``key`` column when paths are read."""
        dtypes = {column: _DTYPES[column] for column in columns}
        with pd.read_csv(
            self.csv_path,
            header=0,
            names=CSV_COLUMNS,
            usecols=columns,
            dtype=dtypes,
            chunksize=self.chunk_rows,
        ) as reader:
            for chunk in reader:
                if all(column in columns for column in _KEY_COLUMNS):
                    chunk = chunk.assign(key=_make_keys(chunk))
                yield chunk

    def calculate_mean_latencies(self) -> Dict[str, float]:
        """Calculates the mean latency for each request key in one pass."""
        sums: Dict[str, int] = {}
        counts: Dict[str, int] = {}

        for chunk in self._read_chunks(_KEY_COLUMNS + ['latency_ms']):
            grouped = chunk.groupby('key')['latency_ms'].agg(['sum', 'count'])
            for key, total, count in zip(grouped.index, grouped['sum'], grouped['count']):
                sums[key] = sums.get(key, 0) + int(total)
                counts[key] = counts.get(key, 0) + int(count)

        # Keys with a count of zero are left out
        return {key: sums[key] / counts[key] for key in sums if counts[key] > 0}

    def calculate_max_latencies(self) -> Dict[str, int]:
        """Calculates the maximum latency for each request key in one pass."""
        max_by_key: Dict[str, int] = {}

        for chunk in self._read_chunks(_KEY_COLUMNS + ['latency_ms']):
            grouped = chunk.groupby('key')['latency_ms'].max()
            for key, latency in grouped.items():
                max_by_key[key] = max(max_by_key.get(key, int(latency)), int(latency))

        return max_by_key

    def build_counting_arrays(self, max_by_key: Dict[str, int]) -> Dict[str, np.ndarray]:
        """Builds a latency counting array per key, sized from the key's max latency.

        Args:
            max_by_key: Max latency for every key in the file

        Returns:
            Key to counting array, where index is latency and value is occurrence count

        Raises:
            ValueError: If the file holds a key or latency the max map does not cover
        """
        arrays = {key: new_counting_array(max_latency) for key, max_latency in max_by_key.items()}

        for chunk in self._read_chunks(_KEY_COLUMNS + ['latency_ms']):
            for key, latencies in chunk.groupby('key')['latency_ms']:
                if key not in arrays:
                    raise ValueError(f"no max latency known for '{key}'")
                add_to_counting_array(arrays[key], latencies.to_numpy())

        return arrays

    def calculate_median_latencies(self, max_by_key: Dict[str, int]) -> Dict[str, int]:
        """Calculates median latencies for each request key with counting arrays."""
        arrays = self.build_counting_arrays(max_by_key)
        return {key: median_from_counting_array(counts) for key, counts in arrays.items()}

    def calculate_p99_latencies(self, max_by_key: Dict[str, int]) -> Dict[str, int]:
        """Calculates 99th percentile latencies for each request key with counting arrays."""
        arrays = self.build_counting_arrays(max_by_key)
        return {key: p99_from_counting_array(counts) for key, counts in arrays.items()}

    def calculate_requests_per_second(self, wall_start_ms: int, wall_stop_ms: int) -> np.ndarray:
        """Calculates the number of requests started during each second of the run.

        Args:
            wall_start_ms: Run start, epoch milliseconds (bucket zero begins here)
            wall_stop_ms: Run stop, epoch milliseconds

        Returns:
            Counts indexed by one-second bucket

        Raises:
            ValueError: If a request started outside the wall-clock window
        """
        length = histogram_length(wall_start_ms, wall_stop_ms)
        result = np.zeros(length, dtype=np.int64)

        for chunk in self._read_chunks(['start_ts_ms']):
            indices = bucket_indices(chunk['start_ts_ms'].to_numpy(), wall_start_ms)
            if indices.size == 0:
                continue
            if indices.min() < 0 or indices.max() >= length:
                raise ValueError(
                    f"request start outside the run window: bucket range "
                    f"[{indices.min()}, {indices.max()}] vs {length} buckets")
            result += np.bincount(indices, minlength=length)

        return result
