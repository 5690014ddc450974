"""
Tests for the HTTP-backed skier API system.
"""

import unittest
from unittest import mock
import os
import sys

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import requests

from common.errors import ConfigurationError
from common.system_factory import create_api_system, make_system_factory
from configuration import WRITE_LIFT_RIDE_PATH, SKIER_DAY_VERTICAL_PATH, SKIER_RESORT_TOTALS_PATH
from persistence.record import RequestKind
from systems.base import ApiSystem
from systems.skiers import SkiersApiSystem


def response(status, text=""):
    resp = mock.Mock()
    resp.status_code = status
    resp.text = text
    return resp


class TestSkiersApiSystem(unittest.TestCase):

    def setUp(self):
        self.session = mock.Mock(spec=requests.Session)
        self.system = SkiersApiSystem("http://localhost:8080/api/", timeout=5, session=self.session)

    def test_write_posts_json_body(self):
        self.session.post.return_value = response(201)
        body = {"resortID": "SunValley", "dayID": 1, "skierID": 7, "time": 12, "liftID": 3}

        result = self.system.submit(RequestKind.WRITE, WRITE_LIFT_RIDE_PATH, body)

        self.assertEqual(result, (201, None))
        self.session.post.assert_called_once_with(
            "http://localhost:8080/api/skiers/liftrides", json=body, timeout=5)

    def test_day_vertical_read_fills_path(self):
        self.session.get.return_value = response(200)

        result = self.system.submit(RequestKind.READ, SKIER_DAY_VERTICAL_PATH,
                                    {"resortID": "SunValley", "dayID": 2, "skierID": 99})

        self.assertEqual(result, (200, None))
        self.session.get.assert_called_once_with(
            "http://localhost:8080/api/skiers/SunValley/days/2/skiers/99", params={}, timeout=5)

    def test_resort_totals_read_sends_query(self):
        self.session.get.return_value = response(200)

        self.system.submit(RequestKind.READ, SKIER_RESORT_TOTALS_PATH, {"skierID": 5, "resort": "SunValley"})

        self.session.get.assert_called_once_with(
            "http://localhost:8080/api/skiers/5/vertical", params={"resort": "SunValley"}, timeout=5)

    def test_error_status(self):
        self.session.get.return_value = response(404, "skier not found")

        status, error = self.system.submit(RequestKind.READ, SKIER_RESORT_TOTALS_PATH,
                                           {"skierID": 5, "resort": "A"})

        self.assertEqual(status, 404)
        self.assertIn("skier not found", error)

    def test_transport_failure(self):
        self.session.post.side_effect = requests.ConnectionError("refused")

        status, error = self.system.submit(RequestKind.WRITE, WRITE_LIFT_RIDE_PATH, {})

        self.assertEqual(status, 0)
        self.assertIn("refused", error)

    def test_context_manager_closes_session(self):
        with self.system:
            pass
        self.session.close.assert_called_once()

    def test_missing_path_parameter(self):
        with self.assertRaises(KeyError):
            ApiSystem.split_params(SKIER_DAY_VERTICAL_PATH, {"resortID": "A"})


class TestSystemFactory(unittest.TestCase):

    def test_rejects_non_http(self):
        with self.assertRaises(ConfigurationError):
            create_api_system("ftp://example.com")
        with self.assertRaises(ConfigurationError):
            make_system_factory("localhost:8080")

    def test_factory_creates_fresh_systems(self):
        factory = make_system_factory("https://example.com/api", timeout=3)
        first, second = factory(), factory()

        self.assertIsInstance(first, SkiersApiSystem)
        self.assertIsNot(first, second)
        self.assertIsNot(first.session, second.session)
        self.assertEqual(first.timeout, 3)
        first.close()
        second.close()


if __name__ == "__main__":
    unittest.main()
