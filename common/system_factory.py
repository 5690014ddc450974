"""
Factory module for creating API system instances.
"""

import logging
from typing import Callable, Optional

# Suppress per-connection chatter from the HTTP stack before it is imported
logging.getLogger('urllib3').setLevel(logging.WARNING)
logging.getLogger('urllib3.connectionpool').setLevel(logging.ERROR)

from systems.base import ApiSystem
from systems.skiers import SkiersApiSystem
from common.errors import ConfigurationError

logger = logging.getLogger(__name__)

SystemFactory = Callable[[], ApiSystem]


def create_api_system(host_address: str, timeout: Optional[float] = None) -> ApiSystem:
    """Create a new API system for one worker thread.

    Args:
        host_address: Base URL of the skier API, e.g. ``http://localhost:8080/skiers-api``
        timeout: Per-request timeout in seconds (default: from configuration)

    Returns:
        A fresh SkiersApiSystem with its own connection pool

    Raises:
        ConfigurationError: If host_address is not an http(s) URL
    """
    if not host_address.lower().startswith(("http://", "https://")):
        raise ConfigurationError(f"Unsupported host address: {host_address}. Must start with http:// or https://")
    return SkiersApiSystem(host_address, timeout=timeout)


def make_system_factory(host_address: str, timeout: Optional[float] = None) -> SystemFactory:
    """Bind the host so workers can create their own systems without extra arguments."""
    # Validate once up front rather than inside every worker thread
    create_api_system(host_address, timeout).close()

    def factory() -> ApiSystem:
        return create_api_system(host_address, timeout)

    return factory
