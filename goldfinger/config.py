"""Configuration loader for the goldfinger display controller."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any

from dotenv import load_dotenv
import yaml

from goldfinger.errors import ValidationError
from goldfinger.state import Settings

DISPLAY_KINDS = ("epaper", "lcd", "mock")


@dataclass(frozen=True)
class WeatherConfig:
    """National Weather Service forecast configuration."""

    office: str
    gridpoint: tuple[int, int]
    user_agent: str
    timeout_seconds: float
    poll_interval_seconds: float
    staleness_seconds: float


@dataclass(frozen=True)
class TransitConfig:
    """MBTA API configuration. Disabled when no stops are listed."""

    api_key: str
    stop_ids: tuple[str, ...]
    timeout_seconds: float
    poll_interval_seconds: float


@dataclass(frozen=True)
class DisplayConfig:
    """Display configuration for rendering and hardware."""

    kind: str
    width: int
    height: int
    rotation: int
    port: str
    baud_rate: int
    full_refresh_interval_seconds: float
    busy_timeout_seconds: float
    font_path: str | None
    emulator_path: str | None


@dataclass(frozen=True)
class SchedulerConfig:
    tick_interval_seconds: float


@dataclass(frozen=True)
class ApiConfig:
    enabled: bool
    host: str
    port: int


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str
    log_dir: str | None


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    settings: Settings
    weather: WeatherConfig
    transit: TransitConfig
    display: DisplayConfig
    scheduler: SchedulerConfig
    api: ApiConfig
    log: LoggingConfig


def _require_key(mapping: dict[str, Any], key: str, context: str) -> Any:
    if key not in mapping:
        raise ValueError(f"Missing required key '{key}' in {context} config")
    return mapping[key]


def _section(data: dict[str, Any], name: str, required: bool) -> dict[str, Any]:
    if name not in data:
        if required:
            raise ValueError(f"Missing required key '{name}' in {name} config")
        return {}
    section = data[name]
    if section is None and not required:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' config must be a mapping")
    return section


def _number(value: Any, key: str, context: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValueError(f"'{context}.{key}' must be a non-negative number, got {value!r}")
    return float(value)


def _positive(value: Any, key: str, context: str) -> float:
    number = _number(value, key, context)
    if number <= 0:
        raise ValueError(f"'{context}.{key}' must be greater than zero, got {value!r}")
    return number


def _integer(value: Any, key: str, context: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{context}.{key}' must be an integer, got {value!r}")
    return value


def _load_settings(section: dict[str, Any]) -> Settings:
    try:
        return Settings.from_dict(section)
    except ValidationError as exc:
        raise ValueError(f"Invalid initial settings: {exc}") from exc


def _load_weather(section: dict[str, Any]) -> WeatherConfig:
    gridpoint = _require_key(section, "gridpoint", "weather")
    if (
        not isinstance(gridpoint, (list, tuple))
        or len(gridpoint) != 2
        or not all(isinstance(value, int) for value in gridpoint)
    ):
        raise ValueError("'weather.gridpoint' must be a pair of integers")
    return WeatherConfig(
        office=str(_require_key(section, "office", "weather")),
        gridpoint=(gridpoint[0], gridpoint[1]),
        user_agent=str(section.get("user_agent", "goldfinger")),
        timeout_seconds=_positive(section.get("timeout_seconds", 10), "timeout_seconds", "weather"),
        poll_interval_seconds=_positive(
            section.get("poll_interval_seconds", 600), "poll_interval_seconds", "weather"
        ),
        staleness_seconds=_number(section.get("staleness_seconds", 3600), "staleness_seconds", "weather"),
    )


def _load_transit(section: dict[str, Any], api_key: str) -> TransitConfig:
    stop_ids = section.get("stop_ids") or []
    if not isinstance(stop_ids, list):
        raise ValueError("'transit.stop_ids' must be a list")
    return TransitConfig(
        api_key=api_key,
        stop_ids=tuple(str(stop_id) for stop_id in stop_ids),
        timeout_seconds=_positive(section.get("timeout_seconds", 10), "timeout_seconds", "transit"),
        poll_interval_seconds=_positive(
            section.get("poll_interval_seconds", 60), "poll_interval_seconds", "transit"
        ),
    )


def _load_display(section: dict[str, Any]) -> DisplayConfig:
    kind = _require_key(section, "kind", "display")
    if kind not in DISPLAY_KINDS:
        raise ValueError(f"'display.kind' must be one of {', '.join(DISPLAY_KINDS)}, got {kind!r}")
    default_port = "/dev/ttyACM0" if kind == "lcd" else "/dev/spidev0.0"
    rotation = _integer(section.get("rotation", 90 if kind == "epaper" else 0), "rotation", "display")
    if kind == "lcd" and rotation:
        raise ValueError("'display.rotation' is not supported for lcd displays")
    return DisplayConfig(
        kind=kind,
        width=_integer(_require_key(section, "width", "display"), "width", "display"),
        height=_integer(_require_key(section, "height", "display"), "height", "display"),
        rotation=rotation,
        port=str(section.get("port", default_port)),
        baud_rate=_integer(section.get("baud_rate", 9600), "baud_rate", "display"),
        full_refresh_interval_seconds=_number(
            section.get("full_refresh_interval_seconds", 3600),
            "full_refresh_interval_seconds",
            "display",
        ),
        busy_timeout_seconds=_positive(
            section.get("busy_timeout_seconds", 10), "busy_timeout_seconds", "display"
        ),
        font_path=section.get("font_path"),
        emulator_path=section.get("emulator_path"),
    )


def load_config(path: str = "config/config.yaml") -> AppConfig:
    """Load application configuration from a YAML file."""
    load_dotenv()
    api_key = os.environ.get("MBTA_API_KEY", "")
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping at the top level")

    weather_section = _section(data, "weather", required=True)
    display_section = _section(data, "display", required=True)
    logging_section = _section(data, "logging", required=True)
    scheduler_section = _section(data, "scheduler", required=False)
    api_section = _section(data, "api", required=False)

    scheduler = SchedulerConfig(
        tick_interval_seconds=_positive(
            scheduler_section.get("tick_interval_seconds", 1), "tick_interval_seconds", "scheduler"
        ),
    )

    api = ApiConfig(
        enabled=bool(api_section.get("enabled", True)),
        host=str(api_section.get("host", "0.0.0.0")),
        port=_integer(api_section.get("port", 8000), "port", "api"),
    )

    logging = LoggingConfig(
        level=str(_require_key(logging_section, "level", "logging")).upper(),
        log_dir=logging_section.get("log_dir"),
    )

    return AppConfig(
        settings=_load_settings(_section(data, "settings", required=False)),
        weather=_load_weather(weather_section),
        transit=_load_transit(_section(data, "transit", required=False), api_key),
        display=_load_display(display_section),
        scheduler=scheduler,
        api=api,
        log=logging,
    )


__all__ = [
    "ApiConfig",
    "AppConfig",
    "DisplayConfig",
    "LoggingConfig",
    "SchedulerConfig",
    "TransitConfig",
    "WeatherConfig",
    "load_config",
]
