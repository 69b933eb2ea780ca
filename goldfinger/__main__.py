"""Run the display controller: ``python -m goldfinger``."""

from __future__ import annotations

import argparse
from dataclasses import replace
import logging
import signal

from goldfinger.api import make_server, start_server
from goldfinger.config import AppConfig, load_config
from goldfinger.data.poller import Poller
from goldfinger.data.transit_client import TransitClient
from goldfinger.data.weather_client import WeatherClient
from goldfinger.display import open_display
from goldfinger.errors import DriverError, RenderError
from goldfinger.logging_setup import configure_logging
from goldfinger.rendering.renderer import Renderer
from goldfinger.scheduler import Scheduler
from goldfinger.state import SettingsStore

logger = logging.getLogger("goldfinger")


def build_pollers(config: AppConfig) -> tuple[Poller, Poller | None]:
    weather_client = WeatherClient(
        office=config.weather.office,
        gridpoint=config.weather.gridpoint,
        user_agent=config.weather.user_agent,
        timeout_seconds=config.weather.timeout_seconds,
    )
    weather_poller = Poller("weather", weather_client.fetch_weather, config.weather.poll_interval_seconds)

    transit_poller = None
    if config.transit.stop_ids:
        transit_client = TransitClient(config.transit.api_key, config.transit.timeout_seconds)
        stop_ids = config.transit.stop_ids
        transit_poller = Poller(
            "transit",
            lambda: transit_client.fetch_transit(stop_ids),
            config.transit.poll_interval_seconds,
        )
    return weather_poller, transit_poller


def main() -> int:
    parser = argparse.ArgumentParser(prog="goldfinger")
    parser.add_argument("--config", default="config/config.yaml", help="Path to the YAML config file")
    parser.add_argument(
        "--display",
        choices=["epaper", "lcd", "mock"],
        default=None,
        help="Override the configured display kind",
    )
    parser.add_argument("--no-server", action="store_true", help="Disable the settings API")
    args = parser.parse_args()

    config = load_config(args.config)
    if args.display:
        config = replace(config, display=replace(config.display, kind=args.display))
    configure_logging(config.log)

    settings = SettingsStore(config.settings)
    weather_poller, transit_poller = build_pollers(config)

    try:
        display = open_display(config.display)
    except (DriverError, OSError, RuntimeError) as exc:
        logger.critical("Could not open %s display: %s", config.display.kind, exc)
        return 1

    scheduler = Scheduler(
        settings,
        display,
        renderer=Renderer(config.display.font_path),
        weather_poller=weather_poller,
        transit_poller=transit_poller,
        tick_interval_seconds=config.scheduler.tick_interval_seconds,
        staleness_seconds=config.weather.staleness_seconds,
    )

    def _handle_signal(signum: int, _frame: object) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        scheduler.request_shutdown()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    server = None
    if config.api.enabled and not args.no_server:
        server = make_server(config.api.host, config.api.port, settings, lambda: scheduler.current_state)
        start_server(server)

    try:
        return scheduler.run()
    except RenderError as exc:
        logger.critical("Fatal rendering error: %s", exc)
        return 1
    finally:
        if server is not None:
            server.shutdown()
            server.server_close()


if __name__ == "__main__":
    raise SystemExit(main())
