"""
CSV persistence for request records.
"""

import os
import logging
import threading
from typing import Callable, Optional, Sequence

import pandas as pd

from configuration import CSV_SUFFIX, CSV_HEADERS, HISTOGRAM_SUFFIX, HISTOGRAM_HEADERS
from persistence.record import RequestRecord
from persistence.telemetry import TelemetryChannel

logger = logging.getLogger(__name__)

FatalHandler = Callable[[str], None]


def terminate_process(msg: str) -> None:
    """Stop the whole process: a run whose records cannot be stored has no value."""
    logger.critical(msg)
    logging.shutdown()
    os._exit(1)


class CsvPersistence:
    """Single consumer that drains the telemetry channel into ``<prefix>.csv``.

    The writer thread owns the open file for the whole run; nothing else
    touches it. Rows are buffered and the file is flushed and synced once,
    when the end-of-stream sentinel arrives.

    Attributes:
        csv_path: Path of the request record file
        histogram_path: Path of the request-start histogram file
        rows_written: Number of record rows written so far
    """

    def __init__(self, file_prefix: str, channel: TelemetryChannel,
                 exporter=None, on_fatal: Optional[FatalHandler] = None):
        """Initialize CSV persistence.

        Args:
            file_prefix: Output path without extension
            channel: Channel the record batches arrive on
            exporter: Optional PrometheusExporter fed with every drained batch
            on_fatal: Called with a message on unrecoverable I/O errors (default: exit the process)
        """
        self.file_prefix = file_prefix
        self.csv_path = file_prefix + CSV_SUFFIX
        self.histogram_path = file_prefix + HISTOGRAM_SUFFIX
        self.channel = channel
        self.exporter = exporter
        self.on_fatal = on_fatal or terminate_process
        self.rows_written = 0
        self.batches_written = 0
        self._file = None

    def init_csv_file(self) -> bool:
        """Create (or overwrite) the record file and write the header, keeping it open.

        Returns:
            True if the file is ready for writing
        """
        try:
            directory = os.path.dirname(self.csv_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._file = open(self.csv_path, "w", newline="", encoding="utf-8")
            self._file.write(",".join(CSV_HEADERS) + "\n")
        except OSError as e:
            self._fatal(f"Problem creating CSV file {self.csv_path}: {e}")
            return False

        logger.info(f"Writing request records to {self.csv_path}")
        return True

    def start_write_loop(self) -> threading.Thread:
        """Start the loop that writes batches to the CSV file in a new thread.

        Returns:
            The thread handle
        """
        if self._file is None:
            raise RuntimeError("CSV file not initialized. Call init_csv_file first.")
        thread = threading.Thread(target=self._run_write_loop, name="csv-writer", daemon=True)
        thread.start()
        return thread

    def _run_write_loop(self) -> None:
        try:
            self._write_loop()
        except (OSError, ValueError) as e:
            self._fatal(f"CSV writing thread failed: {e}")

    def _write_loop(self) -> None:
        """Write batches until the zero-length sentinel, then flush, sync and close."""
        batch = self.channel.receive()
        while len(batch) != 0:
            self._write_batch(batch)
            batch = self.channel.receive()

        self._file.flush()
        os.fsync(self._file.fileno())
        self._file.close()
        logger.info(f"Wrote {self.rows_written} records in {self.batches_written} batches to {self.csv_path}")

    def _write_batch(self, batch: Sequence[RequestRecord]) -> None:
        frame = pd.DataFrame([record.as_row() for record in batch], columns=CSV_HEADERS)
        frame.to_csv(self._file, header=False, index=False, lineterminator="\n")
        self.rows_written += len(batch)
        self.batches_written += 1

        if self.exporter is not None:
            self.exporter.observe_batch(batch)

    def write_request_start_data(self, counts: Sequence[int]) -> Optional[str]:
        """Write the per-second request-start histogram, overwriting any old file.

        Args:
            counts: Number of requests started in each bucket, indexed by bucket

        Returns:
            Path to the written file, or None if it could not be written
        """
        frame = pd.DataFrame({
            HISTOGRAM_HEADERS[0]: range(len(counts)),
            HISTOGRAM_HEADERS[1]: list(counts),
        })
        try:
            frame.to_csv(self.histogram_path, index=False, lineterminator="\n")
        except OSError as e:
            logger.error(f"Problem writing histogram data file {self.histogram_path}: {e}")
            return None

        logger.info(f"Wrote request-start histogram with {len(counts)} buckets to {self.histogram_path}")
        return self.histogram_path

    def _fatal(self, msg: str) -> None:
        logger.error(msg)
        self.on_fatal(msg)
