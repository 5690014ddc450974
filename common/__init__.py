"""
Common utilities for the skier API load test.
"""

from .phase_manager import PhaseManager
from .worker_pool import WorkerPool

__all__ = ['PhaseManager', 'WorkerPool']
