"""Timestamped samples fetched from external services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class ForecastPeriod:
    """One forecast period, e.g. "This Afternoon"."""

    name: str
    start: datetime
    end: datetime
    temperature: int
    temperature_unit: str
    short_forecast: str
    precipitation: int = 0

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


@dataclass(frozen=True)
class WeatherData:
    periods: tuple[ForecastPeriod, ...]
    fetched_at: datetime


@dataclass(frozen=True)
class Arrival:
    """Predicted arrival of a single vehicle at a stop."""

    stop_id: str
    route_id: str
    arrival_time: datetime


@dataclass(frozen=True)
class TransitData:
    arrivals: tuple[Arrival, ...]
    fetched_at: datetime


@dataclass(frozen=True)
class Observations:
    """Everything the reducer needs besides settings.

    ``weather`` and ``transit`` hold the last successfully fetched data, which
    may be older than the latest attempt. ``*_error`` carries the message of
    the latest attempt when it failed.
    """

    now: datetime
    weather: WeatherData | None = None
    weather_error: str | None = None
    transit: TransitData | None = None
    transit_error: str | None = None


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are assumed to be UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "Arrival",
    "ForecastPeriod",
    "Observations",
    "TransitData",
    "WeatherData",
    "parse_timestamp",
]
