"""Render a preview frame from a saved forecast response."""

from __future__ import annotations

import argparse
import json
from datetime import datetime, timezone
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from goldfinger.data.observations import Observations, WeatherData, parse_timestamp
from goldfinger.data.weather_client import parse_periods
from goldfinger.logic.reducer import reduce
from goldfinger.rendering import DisplayGeometry, GeometryKind, render, save_frame
from goldfinger.state import Settings


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("path", nargs="?", help="Forecast JSON as returned by api.weather.gov")
    parser.add_argument("--mode", choices=["off", "clock", "weather"], default="weather")
    parser.add_argument("--now", default=None, help="ISO timestamp to render at (default: now)")
    parser.add_argument("--kind", choices=["pixel", "character"], default="pixel")
    parser.add_argument("--width", type=int, default=250)
    parser.add_argument("--height", type=int, default=122)
    parser.add_argument("--output", default="emulator_output/frame.png")
    args = parser.parse_args()

    now = parse_timestamp(args.now) if args.now else datetime.now().astimezone()
    weather = None
    if args.path:
        with open(args.path, "r", encoding="utf-8") as handle:
            body = json.load(handle)
        weather = WeatherData(periods=parse_periods(body), fetched_at=now)

    state = reduce(
        Settings.from_dict({"mode": args.mode}),
        Observations(now=now, weather=weather),
    )
    geometry = DisplayGeometry(GeometryKind(args.kind), width=args.width, height=args.height)
    output = save_frame(render(state, geometry), args.output)
    print("preview_saved", {"path": str(output), "lines": len(state.lines)}, flush=True)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
