"""Combine settings and fetched observations into a display state.

Everything in here is a pure function of its arguments: the current time is
part of the observations, so identical inputs always produce identical
states.
"""

from __future__ import annotations

from datetime import datetime

from goldfinger.data.observations import ForecastPeriod, Observations, TransitData, WeatherData
from goldfinger.rendering.frame_data import DisplayLine, DisplayState, FontSize
from goldfinger.state import Mode, Settings

DEFAULT_STALENESS_SECONDS = 3600.0
NO_DATA_TEXT = "No data"
DEGREE = "°"

MAX_TRANSIT_STOPS = 3
MAX_ARRIVALS_PER_STOP = 3


def reduce(
    settings: Settings,
    observations: Observations,
    staleness_seconds: float = DEFAULT_STALENESS_SECONDS,
) -> DisplayState:
    """Build the display state for ``settings`` at ``observations.now``."""
    compact: tuple[DisplayLine, ...] = ()
    if settings.mode is Mode.OFF:
        lines: tuple[DisplayLine, ...] = ()
    elif settings.mode is Mode.CLOCK:
        lines = _clock_lines(observations, staleness_seconds)
    else:
        lines, compact = _weather_lines(observations, staleness_seconds)
    return DisplayState(
        mode=settings.mode,
        color=settings.color,
        lines=lines,
        generated_at=observations.now,
        compact_lines=compact,
    )


def format_clock(moment: datetime) -> str:
    value = moment.strftime("%I:%M")
    return value[1:] if value.startswith("0") else value


def format_date(moment: datetime) -> str:
    return f"{moment.strftime('%a %b')} {moment.day}"


def is_fresh(fetched_at: datetime, now: datetime, staleness_seconds: float) -> bool:
    return (now - fetched_at).total_seconds() <= staleness_seconds


def select_period(weather: WeatherData, now: datetime) -> int | None:
    """Index of the period with ``start <= now < end``, if any."""
    for index, period in enumerate(weather.periods):
        if period.contains(now):
            return index
    return None


def _clock_lines(observations: Observations, staleness_seconds: float) -> tuple[DisplayLine, ...]:
    now = observations.now
    lines = [
        DisplayLine(format_clock(now), FontSize.LARGE),
        DisplayLine(format_date(now), FontSize.MEDIUM),
    ]
    transit = observations.transit
    if transit is not None and is_fresh(transit.fetched_at, now, staleness_seconds):
        lines.extend(_transit_lines(transit, now))
    return tuple(lines)


def _transit_lines(transit: TransitData, now: datetime) -> list[DisplayLine]:
    minutes_by_stop: dict[str, list[int]] = {}
    for arrival in transit.arrivals:
        delta = (arrival.arrival_time - now).total_seconds()
        if delta < 0:
            continue
        stop_minutes = minutes_by_stop.setdefault(arrival.stop_id, [])
        if len(stop_minutes) < MAX_ARRIVALS_PER_STOP:
            stop_minutes.append(int(delta // 60))

    lines = []
    for stop_id, minutes in list(minutes_by_stop.items())[:MAX_TRANSIT_STOPS]:
        labels = " ".join("now" if value < 1 else f"{value}m" for value in sorted(minutes))
        lines.append(DisplayLine(f"{stop_id}: {labels}", FontSize.SMALL))
    return lines


def _temperature(period: ForecastPeriod) -> str:
    return f"{period.temperature}{DEGREE}{period.temperature_unit} {period.precipitation}%"


def _period_lines(period: ForecastPeriod) -> list[DisplayLine]:
    return [
        DisplayLine(period.name, FontSize.MEDIUM),
        DisplayLine(_temperature(period), FontSize.MEDIUM),
        DisplayLine(period.short_forecast, FontSize.SMALL),
    ]


def _weather_lines(
    observations: Observations, staleness_seconds: float
) -> tuple[tuple[DisplayLine, ...], tuple[DisplayLine, ...]]:
    """Full and compact weather layouts."""
    now = observations.now
    clock = format_clock(now)
    lines = [DisplayLine(clock, FontSize.SMALL)]

    weather = observations.weather
    index = None
    if weather is not None and is_fresh(weather.fetched_at, now, staleness_seconds):
        index = select_period(weather, now)

    if weather is None or index is None:
        lines.append(DisplayLine(NO_DATA_TEXT, FontSize.MEDIUM))
        compact = [DisplayLine(f"{clock} {NO_DATA_TEXT}", FontSize.MEDIUM)]
        if observations.weather_error:
            lines.append(DisplayLine(observations.weather_error, FontSize.SMALL))
            compact.append(DisplayLine(observations.weather_error, FontSize.SMALL))
        return tuple(lines), tuple(compact)

    periods = weather.periods[index : index + 2]
    for period in periods:
        lines.extend(_period_lines(period))

    current = periods[0]
    compact = [
        DisplayLine(f"{clock} {_temperature(current)}", FontSize.MEDIUM),
        DisplayLine(current.short_forecast, FontSize.SMALL),
    ]
    for period in periods[1:]:
        compact.append(DisplayLine(f"{period.name} {_temperature(period)}", FontSize.MEDIUM))
        compact.append(DisplayLine(period.short_forecast, FontSize.SMALL))
    return tuple(lines), tuple(compact)


__all__ = [
    "DEFAULT_STALENESS_SECONDS",
    "NO_DATA_TEXT",
    "format_clock",
    "format_date",
    "is_fresh",
    "reduce",
    "select_period",
]
