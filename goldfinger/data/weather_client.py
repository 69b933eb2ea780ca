"""National Weather Service forecast client."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from goldfinger.data.http import get_json
from goldfinger.data.observations import ForecastPeriod, WeatherData, parse_timestamp
from goldfinger.errors import ParseError

NWS_API_BASE = "https://api.weather.gov"


class WeatherClient:
    """Fetch the gridpoint forecast for a single location."""

    def __init__(
        self,
        office: str,
        gridpoint: tuple[int, int],
        user_agent: str,
        timeout_seconds: float = 10,
    ) -> None:
        self._url = f"{NWS_API_BASE}/gridpoints/{office}/{gridpoint[0]},{gridpoint[1]}/forecast"
        # The NWS API rejects requests without a User-Agent
        self._headers = {"User-Agent": user_agent, "Accept": "application/geo+json"}
        self._timeout_seconds = timeout_seconds

    @property
    def url(self) -> str:
        return self._url

    def fetch_weather(self) -> WeatherData:
        """Fetch and decode the forecast; raises FetchError on any failure."""
        body = get_json(self._url, headers=self._headers, timeout=self._timeout_seconds)
        return WeatherData(periods=parse_periods(body), fetched_at=datetime.now(timezone.utc))


def parse_periods(body: dict[str, Any]) -> tuple[ForecastPeriod, ...]:
    properties = body.get("properties")
    if not isinstance(properties, dict) or not isinstance(properties.get("periods"), list):
        raise ParseError("Forecast response has no properties.periods list")

    periods = []
    for raw in properties["periods"]:
        try:
            precipitation = (raw.get("probabilityOfPrecipitation") or {}).get("value")
            periods.append(
                ForecastPeriod(
                    name=str(raw["name"]),
                    start=parse_timestamp(raw["startTime"]),
                    end=parse_timestamp(raw["endTime"]),
                    temperature=int(raw["temperature"]),
                    temperature_unit=str(raw.get("temperatureUnit") or "F"),
                    short_forecast=str(raw.get("shortForecast") or ""),
                    precipitation=int(precipitation or 0),
                )
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ParseError(f"Malformed forecast period: {exc!r}") from exc
    return tuple(periods)


__all__ = ["NWS_API_BASE", "WeatherClient", "parse_periods"]
