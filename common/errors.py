"""
Exception types shared across the load test.
"""


class ConfigurationError(ValueError):
    """Raised for missing or out-of-range settings; fatal before any phase starts."""


class CoordinationError(RuntimeError):
    """Raised when a phase cannot be driven to completion (aborted wait, dead worker)."""
