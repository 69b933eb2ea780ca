"""MBTA v3 API client for stop arrival predictions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Sequence

from goldfinger.data.http import get_json
from goldfinger.data.observations import Arrival, TransitData, parse_timestamp
from goldfinger.errors import ParseError

MBTA_API_BASE = "https://api-v3.mbta.com"
PREDICTION_FIELDS = "arrival_time,departure_time,schedule_relationship"


class TransitClient:
    """Thin wrapper around the MBTA predictions endpoint using requests."""

    def __init__(self, api_key: str, timeout_seconds: float = 10) -> None:
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds

    def fetch_transit(self, stop_ids: Sequence[str]) -> TransitData:
        """Fetch upcoming arrivals for the given stops, soonest first."""
        params = {
            "filter[stop]": ",".join(stop_ids),
            "fields[prediction]": PREDICTION_FIELDS,
            "sort": "arrival_time",
        }
        headers = {"x-api-key": self._api_key} if self._api_key else {}
        body = get_json(
            f"{MBTA_API_BASE}/predictions",
            params=params,
            headers=headers,
            timeout=self._timeout_seconds,
        )
        return TransitData(arrivals=parse_arrivals(body), fetched_at=datetime.now(timezone.utc))


def _relationship_id(prediction: dict[str, Any], name: str) -> str:
    relationships = prediction.get("relationships")
    if relationships is None:
        return ""
    if not isinstance(relationships, dict):
        raise ParseError(f"Prediction relationships must be an object, got {relationships!r}")
    relationship = relationships.get(name)
    if relationship is None:
        return ""
    if not isinstance(relationship, dict):
        raise ParseError(f"Prediction {name} relationship must be an object, got {relationship!r}")
    data = relationship.get("data")
    if isinstance(data, dict) and data.get("id"):
        return str(data["id"])
    return ""


def parse_arrivals(body: dict[str, Any]) -> tuple[Arrival, ...]:
    data = body.get("data")
    if not isinstance(data, list):
        raise ParseError("Predictions response has no data list")

    arrivals = []
    for prediction in data:
        if not isinstance(prediction, dict):
            continue
        attributes = prediction.get("attributes") or {}
        if not isinstance(attributes, dict):
            raise ParseError(f"Prediction attributes must be an object, got {attributes!r}")
        if attributes.get("schedule_relationship") in ("CANCELLED", "SKIPPED"):
            continue
        raw_time = attributes.get("arrival_time") or attributes.get("departure_time")
        if not raw_time:
            continue
        if not isinstance(raw_time, str):
            raise ParseError(f"Malformed prediction time {raw_time!r}")
        try:
            arrival_time = parse_timestamp(raw_time)
        except ValueError as exc:
            raise ParseError(f"Malformed prediction time {raw_time!r}") from exc
        arrivals.append(
            Arrival(
                stop_id=_relationship_id(prediction, "stop"),
                route_id=_relationship_id(prediction, "route"),
                arrival_time=arrival_time,
            )
        )
    arrivals.sort(key=lambda arrival: arrival.arrival_time)
    return tuple(arrivals)


__all__ = ["MBTA_API_BASE", "TransitClient", "parse_arrivals"]
