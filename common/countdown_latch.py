"""
Countdown latch for gating phase completion and next-phase start.
"""

import threading
import time
import logging
from typing import Optional

from common.errors import CoordinationError

logger = logging.getLogger(__name__)


class CountDownLatch:
    """A one-shot barrier released once ``count_down`` has been called ``count`` times.

    A latch created with a count of zero is already open. Waiters can be woken
    early with ``abort``, in which case ``wait`` raises ``CoordinationError``.
    """

    def __init__(self, count: int, name: str = "latch"):
        """Initialize the latch.

        Args:
            count: Number of ``count_down`` calls needed to release waiters
            name: Label used in log messages
        """
        if count < 0:
            raise ValueError("latch count cannot be negative")
        self.name = name
        self._count = count
        self._aborted = False
        self._lock = threading.Lock()
        self._condition = threading.Condition(self._lock)

        logger.debug(f"Initialized CountDownLatch '{name}' with count {count}")

    def count_down(self) -> None:
        """Decrement the count, releasing all waiters when it reaches zero."""
        with self._condition:
            if self._count == 0:
                return
            self._count -= 1
            if self._count == 0:
                self._condition.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the count reaches zero.

        Args:
            timeout: Maximum time to wait in seconds (None = wait forever)

        Returns:
            True if the latch opened, False on timeout

        Raises:
            CoordinationError: If the latch was aborted while waiting
        """
        with self._condition:
            if timeout is None:
                while self._count > 0 and not self._aborted:
                    self._condition.wait()
            else:
                end_time = time.monotonic() + timeout
                while self._count > 0 and not self._aborted:
                    remaining = end_time - time.monotonic()
                    if remaining <= 0:
                        return False
                    self._condition.wait(remaining)

            if self._count == 0:
                return True
            raise CoordinationError(f"wait on '{self.name}' was aborted")

    def abort(self) -> None:
        """Wake every waiter with a ``CoordinationError``."""
        with self._condition:
            self._aborted = True
            self._condition.notify_all()
        logger.warning(f"CountDownLatch '{self.name}' aborted with {self._count} outstanding")

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def aborted(self) -> bool:
        with self._lock:
            return self._aborted

    def __repr__(self) -> str:
        return f"CountDownLatch(name='{self.name}', count={self._count}, aborted={self._aborted})"
