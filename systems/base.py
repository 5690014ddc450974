"""
Base class for the HTTP API a worker drives.
"""

import logging
import string
from typing import Any, Dict, Mapping, Optional, Set, Tuple

from persistence.record import RequestKind

logger = logging.getLogger(__name__)

# (status_code, error) - error is None when the call succeeded
ApiResult = Tuple[int, Optional[str]]


class ApiSystem:
    """Abstract request capability: ``submit(kind, path, params) -> (status_code, error)``.

    Implementations must return rather than raise for per-request failures so
    that latency can always be measured around the call. A failure carries a
    numeric code, which need not be an HTTP status when the transport failed.
    """

    def __init__(self, host_address: str):
        self.host_address = host_address.rstrip("/")

    def submit(self, kind: RequestKind, path: str, params: Mapping[str, Any]) -> ApiResult:
        """Perform one call against ``path`` (a template such as ``/skiers/{skierID}/vertical``)."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any connections held by this instance."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def split_params(path: str, params: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
        """Fill the path template and return it with the parameters it did not consume.

        Raises:
            KeyError: If the template names a parameter that was not supplied
        """
        names: Set[str] = {
            field for _, field, _, _ in string.Formatter().parse(path) if field
        }
        resolved = path.format(**{name: params[name] for name in names})
        remaining = {k: v for k, v in params.items() if k not in names}
        return resolved, remaining
