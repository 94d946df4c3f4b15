import unittest
from datetime import date
from unittest.mock import MagicMock

import requests

from project_tracker.cache import InMemoryCache
from project_tracker.weather import ARCHIVE_URL, FORECAST_URL, WeatherClient, plan_windows

TODAY = date(2026, 10, 17)

ARCHIVE_PAYLOAD = {
    "hourly": {
        "time": ["2026-10-15T00:00", "2026-10-15T01:00", "2026-10-16T00:00"],
        "temperature_2m": [10.0, 12.0, 8.0],
        "precipitation": [0.5, 0.2, 0.0],
    }
}

FORECAST_PAYLOAD = {
    "daily": {
        "time": ["2026-10-17", "2026-10-18"],
        "precipitation_probability_max": [40, 80],
        "precipitation_sum": [1.2, 5.0],
        "temperature_2m_max": [18.0, 20.0],
        "temperature_2m_min": [10.0, 11.0],
    }
}


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    return response


def _session(archive=ARCHIVE_PAYLOAD, forecast=FORECAST_PAYLOAD):
    session = MagicMock()

    def fake_get(url, params=None, timeout=None):
        if url == ARCHIVE_URL:
            if isinstance(archive, Exception):
                raise archive
            return _response(archive)
        if url == FORECAST_URL:
            return _response(forecast)
        raise AssertionError(f"unexpected url {url}")

    session.get.side_effect = fake_get
    return session


class PlanWindowsTests(unittest.TestCase):
    def test_splits_past_and_future(self):
        windows = plan_windows(date(2026, 10, 10), date(2026, 10, 20), TODAY)
        self.assertEqual(windows.past, (date(2026, 10, 10), date(2026, 10, 16)))
        self.assertEqual(windows.future, (date(2026, 10, 17), date(2026, 10, 20)))

    def test_future_clipped_to_forecast_horizon(self):
        windows = plan_windows(date(2026, 10, 25), date(2026, 12, 31), TODAY)
        self.assertIsNone(windows.past)
        self.assertEqual(windows.future, (date(2026, 10, 25), date(2026, 10, 30)))

    def test_beyond_month_limit_is_empty(self):
        windows = plan_windows(date(2026, 11, 20), date(2026, 11, 30), TODAY)
        self.assertIsNone(windows.past)
        self.assertIsNone(windows.future)

    def test_past_only(self):
        windows = plan_windows(date(2026, 10, 1), date(2026, 10, 5), TODAY)
        self.assertEqual(windows.past, (date(2026, 10, 1), date(2026, 10, 5)))
        self.assertIsNone(windows.future)


class WeatherClientTests(unittest.TestCase):
    def test_merges_archive_and_forecast(self):
        client = WeatherClient(session=_session())
        days = client.fetch_daily(
            "Auckland", date(2026, 10, 15), date(2026, 10, 18), today=TODAY
        )
        self.assertEqual(list(days), ["2026-10-15", "2026-10-16", "2026-10-17", "2026-10-18"])
        self.assertEqual(days["2026-10-15"], {"mm": 0.7, "temp_avg": 11.0})
        self.assertEqual(days["2026-10-16"], {"mm": 0.0, "temp_avg": 8.0})
        self.assertEqual(days["2026-10-17"], {"prob": 40.0, "mm": 1.2, "temp_avg": 14.0})
        self.assertEqual(days["2026-10-18"]["temp_avg"], 15.5)

    def test_requested_types_only(self):
        session = _session()
        client = WeatherClient(session=session)
        days = client.fetch_daily(
            "wellington", date(2026, 10, 15), date(2026, 10, 18), ["prob"], today=TODAY
        )
        self.assertEqual(days, {"2026-10-17": {"prob": 40.0}, "2026-10-18": {"prob": 80.0}})
        self.assertEqual(session.get.call_count, 1)
        params = session.get.call_args.kwargs["params"]
        self.assertEqual(params["daily"], "precipitation_probability_max")
        self.assertEqual(params["timezone"], "Pacific/Auckland")

    def test_unknown_location(self):
        client = WeatherClient(session=_session())
        with self.assertRaises(ValueError):
            client.fetch_daily("sydney", TODAY, TODAY, today=TODAY)

    def test_upstream_failure_leaves_days_empty(self):
        client = WeatherClient(session=_session(archive=requests.ConnectionError("down")))
        with self.assertLogs("project_tracker.weather", level="WARNING"):
            days = client.fetch_daily(
                "auckland", date(2026, 10, 15), date(2026, 10, 18), today=TODAY
            )
        self.assertEqual(list(days), ["2026-10-17", "2026-10-18"])

    def test_responses_are_cached(self):
        session = _session()
        client = WeatherClient(InMemoryCache(), session=session)
        for _ in range(2):
            days = client.fetch_daily(
                "auckland", date(2026, 10, 15), date(2026, 10, 18), today=TODAY
            )
        self.assertEqual(session.get.call_count, 2)
        self.assertEqual(days["2026-10-15"]["temp_avg"], 11.0)


if __name__ == "__main__":
    unittest.main()
