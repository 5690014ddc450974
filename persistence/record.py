"""
Basic data structures for the skier API load test.
"""

from enum import Enum
from typing import NamedTuple, Tuple


class RequestKind(Enum):
    """Kind of call a worker makes, valued by its HTTP method."""

    WRITE = "POST"
    READ = "GET"

    @property
    def method(self) -> str:
        return self.value


class RequestRecord(NamedTuple):
    """One measured call: what was requested, when, how long it took and the result code."""

    kind: RequestKind
    path: str
    start_time_ms: int
    latency_ms: int
    response_code: int

    def as_row(self) -> Tuple[str, str, int, int, int]:
        """Column values in CSV order."""
        return (self.kind.method, self.path, self.start_time_ms, self.latency_ms, self.response_code)

    @property
    def key(self) -> str:
        """Statistics key in the form ``"METHOD path"``."""
        return f"{self.kind.method} {self.path}"
