"""
Load-generator host monitoring.
"""

import psutil
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class HostMonitor:
    """Snapshots of the client machine's CPU, memory and network counters.

    Taken at phase boundaries so a saturated client can be told apart from a
    slow server when reading the results.
    """

    def __init__(self):
        # The first cpu_percent call only primes the counters
        psutil.cpu_percent(interval=None)
        self._last_net = psutil.net_io_counters()

    def get_current_metrics(self) -> Dict[str, Any]:
        """Get current system metrics, with network deltas since the previous snapshot."""
        try:
            cpu_percent = psutil.cpu_percent(interval=None)
            memory = psutil.virtual_memory()
            net_io = psutil.net_io_counters()
        except (OSError, RuntimeError) as e:
            logger.error(f"Failed to get host metrics: {e}")
            return {}

        metrics = {
            'cpu_percent': cpu_percent,
            'memory_percent': memory.percent,
            'bytes_sent': net_io.bytes_sent - self._last_net.bytes_sent,
            'bytes_recv': net_io.bytes_recv - self._last_net.bytes_recv,
        }
        self._last_net = net_io
        return metrics

    def log_host_snapshot(self, label: str) -> Dict[str, Any]:
        metrics = self.get_current_metrics()
        if metrics:
            logger.info(
                f"Host at {label}: cpu {metrics['cpu_percent']:.1f}%, memory {metrics['memory_percent']:.1f}%, "
                f"sent {metrics['bytes_sent']} B, received {metrics['bytes_recv']} B")
        return metrics
