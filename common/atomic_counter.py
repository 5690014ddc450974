"""
Thread-safe integer counter for run-wide request totals.
"""

import threading


class AtomicCounter:
    """An integer counter that tolerates concurrent increments without lost updates."""

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Add one and return the new value."""
        return self.add(1)

    def add(self, delta: int) -> int:
        """Add ``delta`` and return the new value.

        Args:
            delta: Non-negative amount to add

        Returns:
            The counter value after the addition
        """
        if delta < 0:
            raise ValueError("counter is monotonic, delta cannot be negative")
        with self._lock:
            self._value += delta
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.value})"
