"""
Skier API system backed by a requests session.
"""

import logging
from typing import Any, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter

from configuration import (
    REQUEST_TIMEOUT_SECONDS,
    HTTP_POOL_CONNECTIONS,
    TRANSPORT_FAILURE_STATUS,
    HTTP_SUCCESS_MIN,
    HTTP_SUCCESS_MAX,
)
from persistence.record import RequestKind
from systems.base import ApiSystem, ApiResult

logger = logging.getLogger(__name__)

# Keep error strings short; they end up in the log once per failed call
_MAX_ERROR_BODY_CHARS = 200


class SkiersApiSystem(ApiSystem):
    """Ski resort API reached over HTTP.

    WRITE calls send their parameters as a JSON body, READ calls send the
    parameters left over after filling the path template as a query string.
    A session is not shared between threads: create one instance per worker.
    """

    def __init__(self, host_address: str, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        super().__init__(host_address)
        self.timeout = timeout or REQUEST_TIMEOUT_SECONDS
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a session with a small keep-alive pool and no automatic retries."""
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=HTTP_POOL_CONNECTIONS,
            pool_maxsize=HTTP_POOL_CONNECTIONS,
            max_retries=0,
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"Accept": "application/json"})
        return session

    def submit(self, kind: RequestKind, path: str, params: Mapping[str, Any]) -> ApiResult:
        resolved_path, remaining = self.split_params(path, params)
        url = f"{self.host_address}{resolved_path}"

        try:
            if kind is RequestKind.WRITE:
                response = self.session.post(url, json=remaining, timeout=self.timeout)
            else:
                response = self.session.get(url, params=remaining, timeout=self.timeout)
        except requests.RequestException as e:
            return TRANSPORT_FAILURE_STATUS, f"transport error: {e}"

        status = response.status_code
        if HTTP_SUCCESS_MIN <= status <= HTTP_SUCCESS_MAX:
            return status, None
        return status, f"HTTP {status}: {response.text[:_MAX_ERROR_BODY_CHARS]}"

    def close(self) -> None:
        self.session.close()
