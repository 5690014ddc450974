"""
In-memory hand-off of request records from workers to the persistence writer.
"""

import queue
import logging
from typing import Sequence, Tuple

from persistence.record import RequestRecord

logger = logging.getLogger(__name__)

RecordBatch = Tuple[RequestRecord, ...]

# Zero-length batch signals that no more data will follow
END_OF_STREAM: RecordBatch = ()


class TelemetryChannel:
    """Many-producer, single-consumer FIFO of record batches.

    Unbounded by default so ``send`` never waits on the consumer's I/O. A
    positive ``maxsize`` trades that for backpressure when memory matters.
    Closing enqueues the end-of-stream sentinel behind any pending data.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: "queue.Queue[RecordBatch]" = queue.Queue(maxsize=maxsize)
        self.maxsize = maxsize

    def send(self, batch: Sequence[RequestRecord]) -> None:
        """Hand over one worker's batch as a single immutable unit.

        Empty batches are dropped so that only ``close`` can end the stream.
        """
        if not batch:
            return
        self._queue.put(tuple(batch))

    def close(self) -> None:
        """Signal end of stream to the consumer."""
        logger.debug("Closing telemetry channel")
        self._queue.put(END_OF_STREAM)

    def receive(self) -> RecordBatch:
        """Block until the next batch is available; an empty batch means end of stream."""
        return self._queue.get()

    def pending(self) -> int:
        """Approximate number of batches waiting for the consumer."""
        return self._queue.qsize()
