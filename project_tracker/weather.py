"""
Per-day weather overlay for the calendar, backed by Open-Meteo.

Past days come from the ERA5 hourly archive, today onward from the daily
forecast. Nothing is fetched past the one-month window.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

import requests

from project_tracker.cache import Cache

logger = logging.getLogger(__name__)

ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/era5"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
REQUEST_TIMEOUT = 15  # seconds

FORECAST_HORIZON_DAYS = 13
MONTH_WINDOW_DAYS = 30

WEATHER_TYPES = ("rain", "temp", "prob")


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    timezone: str


LOCATION_COORDS: dict[str, Location] = {
    "auckland": Location(-36.8485, 174.7633, "Pacific/Auckland"),
    "wellington": Location(-41.2865, 174.7762, "Pacific/Auckland"),
    "christchurch": Location(-43.5321, 172.6365, "Pacific/Auckland"),
}


@dataclass(frozen=True)
class FetchWindows:
    past: Optional[tuple[date, date]]
    future: Optional[tuple[date, date]]


def plan_windows(start: date, end: date, today: date) -> FetchWindows:
    """Split [start, end] into an archive window and a forecast window."""
    forecast_limit = today + timedelta(days=FORECAST_HORIZON_DAYS)
    month_limit = today + timedelta(days=MONTH_WINDOW_DAYS)
    if start > month_limit or end < start:
        return FetchWindows(past=None, future=None)

    clipped_end = min(end, month_limit)
    yesterday = today - timedelta(days=1)

    past = None
    if start < today:
        past_end = min(clipped_end, yesterday)
        if start <= past_end:
            past = (start, past_end)

    future = None
    if clipped_end >= today:
        future_start = max(start, today)
        future_end = min(clipped_end, forecast_limit)
        if future_start <= future_end:
            future = (future_start, future_end)

    return FetchWindows(past=past, future=future)


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class WeatherClient:
    """Read-only Open-Meteo client with an optional response cache."""

    def __init__(
        self,
        cache: Optional[Cache] = None,
        *,
        cache_ttl: int = 3600,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_json(self, url: str, params: dict) -> dict:
        key = "weather:" + url + "?" + "&".join(f"{k}={params[k]}" for k in sorted(params))
        if self.cache:
            cached = self.cache.get(key)
            if cached is not None:
                return json.loads(cached)
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        payload = response.json()
        if self.cache:
            self.cache.set(key, json.dumps(payload), self.cache_ttl)
        return payload

    def fetch_daily(
        self,
        location: str,
        start: date,
        end: date,
        types: Iterable[str] = WEATHER_TYPES,
        *,
        today: Optional[date] = None,
    ) -> dict[str, dict]:
        """
        Return {"YYYY-MM-DD": {"mm": ..., "temp_avg": ..., "prob": ...}}.

        Only the requested types appear in each day. Upstream failures are
        logged and leave the affected days out.
        """
        loc = LOCATION_COORDS.get((location or "").lower())
        if not loc:
            raise ValueError(f"Unknown location: {location}")
        wanted = {t for t in types if t in WEATHER_TYPES}
        if not wanted:
            return {}

        windows = plan_windows(start, end, today or date.today())
        merged: dict[str, dict] = {}

        if windows.past and wanted & {"rain", "temp"}:
            try:
                self._merge_archive(merged, loc, windows.past, wanted)
            except (requests.RequestException, ValueError):
                logger.warning(
                    "Archive weather lookup failed for %s %s", location, windows.past, exc_info=True
                )

        if windows.future:
            try:
                self._merge_forecast(merged, loc, windows.future, wanted)
            except (requests.RequestException, ValueError):
                logger.warning(
                    "Forecast weather lookup failed for %s %s", location, windows.future, exc_info=True
                )

        return dict(sorted(merged.items()))

    def _merge_archive(
        self, merged: dict, loc: Location, window: tuple[date, date], wanted: set[str]
    ) -> None:
        hourly_vars = []
        if "temp" in wanted:
            hourly_vars.append("temperature_2m")
        if "rain" in wanted:
            hourly_vars.append("precipitation")
        payload = self._get_json(
            ARCHIVE_URL,
            {
                "latitude": loc.latitude,
                "longitude": loc.longitude,
                "start_date": window[0].isoformat(),
                "end_date": window[1].isoformat(),
                "hourly": ",".join(hourly_vars),
                "timezone": loc.timezone,
            },
        )
        hourly = payload.get("hourly") or {}
        times = hourly.get("time") or []
        temps = hourly.get("temperature_2m") or []
        precs = hourly.get("precipitation") or []

        totals: dict[str, dict] = {}
        for idx, ts in enumerate(times):
            day = str(ts)[:10]
            acc = totals.setdefault(day, {"temp_sum": 0.0, "temp_count": 0, "rain_sum": 0.0})
            if "temp" in wanted and idx < len(temps):
                value = _as_number(temps[idx])
                if value is not None:
                    acc["temp_sum"] += value
                    acc["temp_count"] += 1
            if "rain" in wanted and idx < len(precs):
                value = _as_number(precs[idx])
                if value is not None:
                    acc["rain_sum"] += value

        for day, acc in totals.items():
            entry = merged.setdefault(day, {})
            if "rain" in wanted:
                entry["mm"] = round(acc["rain_sum"], 1)
            if "temp" in wanted and acc["temp_count"]:
                entry["temp_avg"] = round(acc["temp_sum"] / acc["temp_count"], 1)

    def _merge_forecast(
        self, merged: dict, loc: Location, window: tuple[date, date], wanted: set[str]
    ) -> None:
        daily_vars = []
        if "prob" in wanted:
            daily_vars.append("precipitation_probability_max")
        if "rain" in wanted:
            daily_vars.append("precipitation_sum")
        if "temp" in wanted:
            daily_vars.extend(["temperature_2m_max", "temperature_2m_min"])
        payload = self._get_json(
            FORECAST_URL,
            {
                "latitude": loc.latitude,
                "longitude": loc.longitude,
                "daily": ",".join(daily_vars),
                "timezone": loc.timezone,
                "start_date": window[0].isoformat(),
                "end_date": window[1].isoformat(),
            },
        )
        daily = payload.get("daily") or {}
        times = daily.get("time") or []

        def column(name: str) -> list:
            return daily.get(name) or []

        probs = column("precipitation_probability_max")
        rains = column("precipitation_sum")
        t_max = column("temperature_2m_max")
        t_min = column("temperature_2m_min")

        for idx, day in enumerate(times):
            entry = merged.setdefault(str(day)[:10], {})
            if "prob" in wanted:
                entry["prob"] = _as_number(probs[idx]) if idx < len(probs) else None
            if "rain" in wanted:
                value = _as_number(rains[idx]) if idx < len(rains) else None
                entry["mm"] = round(value, 1) if value is not None else None
            if "temp" in wanted:
                hi = _as_number(t_max[idx]) if idx < len(t_max) else None
                lo = _as_number(t_min[idx]) if idx < len(t_min) else None
                if hi is not None and lo is not None:
                    entry["temp_avg"] = round((hi + lo) / 2, 1)
