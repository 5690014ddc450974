"""
Tests for the Prometheus exporter.
"""

import unittest
import os
import sys

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from prometheus_client import CollectorRegistry

from persistence.prom import PrometheusExporter
from persistence.record import RequestKind, RequestRecord


class TestPrometheusExporter(unittest.TestCase):

    def setUp(self):
        self.registry = CollectorRegistry()
        self.exporter = PrometheusExporter(port=0, registry=self.registry)

    def test_observe_batch(self):
        self.exporter.observe_batch([
            RequestRecord(RequestKind.WRITE, "/skiers/liftrides", 1, 20, 201),
            RequestRecord(RequestKind.WRITE, "/skiers/liftrides", 2, 40, 201),
            RequestRecord(RequestKind.READ, "/skiers/{skierID}/vertical", 3, 5, 0),
        ])

        get = self.registry.get_sample_value
        self.assertEqual(get('skier_bench_requests_total',
                             {'method': 'POST', 'path': '/skiers/liftrides', 'code': '201'}), 2.0)
        self.assertEqual(get('skier_bench_requests_total',
                             {'method': 'GET', 'path': '/skiers/{skierID}/vertical', 'code': '0'}), 1.0)
        self.assertEqual(get('skier_bench_failed_requests_total'), 1.0)
        self.assertAlmostEqual(get('skier_bench_request_duration_seconds_sum',
                                   {'method': 'POST', 'path': '/skiers/liftrides'}), 0.06)

    def test_active_phase(self):
        self.exporter.set_active_phase("peak", True)
        self.assertEqual(self.registry.get_sample_value('skier_bench_active_phase', {'phase': 'peak'}), 1.0)
        self.exporter.set_active_phase("peak", False)
        self.assertEqual(self.registry.get_sample_value('skier_bench_active_phase', {'phase': 'peak'}), 0.0)

    def test_disabled_port_does_not_start_server(self):
        self.assertFalse(self.exporter.start_server())
        self.assertFalse(self.exporter.server_started)

    def test_separate_registries(self):
        # A second exporter must not collide with the first one's metric names
        other = PrometheusExporter(port=0)
        self.assertIsNot(other.registry, self.registry)


if __name__ == "__main__":
    unittest.main()
