"""Main loop: fetch -> reduce -> render -> drive, once per tick."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
import logging
import threading
from typing import Callable

from goldfinger.data.observations import Observations, TransitData, WeatherData
from goldfinger.data.poller import Poller
from goldfinger.display.base import DisplayDriver
from goldfinger.errors import DriverError
from goldfinger.logic.reducer import DEFAULT_STALENESS_SECONDS, reduce
from goldfinger.rendering.frame_data import DisplayState
from goldfinger.rendering.renderer import Renderer
from goldfinger.state import Mode, SettingsStore

logger = logging.getLogger(__name__)

POLLER_JOIN_TIMEOUT_SECONDS = 1.0


class SchedulerState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    REDUCING = "reducing"
    RENDERING = "rendering"
    DRIVING = "driving"
    SHUTTING_DOWN = "shutting_down"


def local_now() -> datetime:
    return datetime.now().astimezone()


class Scheduler:
    """Drives the display from a single control thread.

    Pollers fetch on their own threads; their latest results are only read
    at the start of a tick. The display driver is used from this thread only
    and is closed when ``run`` exits, whatever the reason.
    """

    def __init__(
        self,
        settings: SettingsStore,
        display: DisplayDriver,
        renderer: Renderer | None = None,
        weather_poller: Poller[WeatherData] | None = None,
        transit_poller: Poller[TransitData] | None = None,
        tick_interval_seconds: float = 1.0,
        staleness_seconds: float = DEFAULT_STALENESS_SECONDS,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._settings = settings
        self._display = display
        self._renderer = renderer or Renderer()
        self._weather_poller = weather_poller
        self._transit_poller = transit_poller
        self._tick_interval_seconds = tick_interval_seconds
        self._staleness_seconds = staleness_seconds
        self._clock = clock

        self._state = SchedulerState.IDLE
        self._shutdown = threading.Event()
        self._current: DisplayState | None = None
        self._current_lock = threading.Lock()
        self._last_mode: Mode | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def current_state(self) -> DisplayState | None:
        """The most recently reduced display state."""
        with self._current_lock:
            return self._current

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def request_shutdown(self) -> None:
        """Ask the loop to stop after the current step. Safe from signal handlers."""
        self._shutdown.set()
        # The interrupted thread may hold the settings event's lock, so the
        # wake-up for a loop waiting out the tick interval runs elsewhere
        threading.Thread(target=self._settings.notify, name="shutdown-wake", daemon=True).start()

    def run(self) -> int:
        """Loop until shutdown is requested. Returns the process exit status."""
        pollers = self._pollers()
        for poller in pollers:
            poller.start()
        try:
            with self._display:
                try:
                    self._loop()
                finally:
                    self._transition(SchedulerState.SHUTTING_DOWN)
        finally:
            for poller in pollers:
                poller.stop()
            for poller in pollers:
                poller.join(POLLER_JOIN_TIMEOUT_SECONDS)
        logger.info("Scheduler stopped")
        return 0

    def _loop(self) -> None:
        while not self._shutdown.is_set():
            self._settings.clear_changed()
            self.tick()
            if self._shutdown.is_set():
                break
            if self._settings.wait_for_change(self._tick_interval_seconds):
                logger.debug("Settings changed, ticking early")

    def tick(self) -> bool:
        """Run one fetch -> reduce -> render -> drive cycle.

        Returns True when a frame reached the display. Driver errors are
        logged and the tick is skipped; render errors propagate.
        """
        self._transition(SchedulerState.FETCHING)
        settings = self._settings.get()
        if settings.mode is Mode.WEATHER and self._last_mode is not Mode.WEATHER and self._weather_poller:
            self._weather_poller.refresh()
        self._last_mode = settings.mode
        observations = self._collect_observations()
        if self._abandon_tick():
            return False

        self._transition(SchedulerState.REDUCING)
        state = reduce(settings, observations, self._staleness_seconds)
        with self._current_lock:
            self._current = state
        if self._abandon_tick():
            return False

        self._transition(SchedulerState.RENDERING)
        buffer = self._renderer.render(state, self._display.geometry)
        if self._abandon_tick():
            return False

        # Once started, a drive always runs to completion
        self._transition(SchedulerState.DRIVING)
        try:
            self._display.send(buffer)
        except DriverError as exc:
            logger.error("Display update failed, skipping tick: %s", exc)
            return False
        finally:
            self._transition(SchedulerState.IDLE)
        return True

    def _abandon_tick(self) -> bool:
        if self._shutdown.is_set():
            logger.info("Shutdown requested during %s, abandoning tick", self._state.value)
            self._transition(SchedulerState.IDLE)
            return True
        return False

    def _collect_observations(self) -> Observations:
        weather = weather_error = None
        if self._weather_poller is not None:
            weather = self._weather_poller.last_good()
            latest = self._weather_poller.get_latest()
            weather_error = latest.error if latest is not None else None

        transit = transit_error = None
        if self._transit_poller is not None:
            transit = self._transit_poller.last_good()
            latest = self._transit_poller.get_latest()
            transit_error = latest.error if latest is not None else None

        return Observations(
            now=self._clock(),
            weather=weather,
            weather_error=weather_error,
            transit=transit,
            transit_error=transit_error,
        )

    def _pollers(self) -> list[Poller]:
        return [poller for poller in (self._weather_poller, self._transit_poller) if poller is not None]

    def _transition(self, state: SchedulerState) -> None:
        if state is not self._state:
            logger.debug("Scheduler %s -> %s", self._state.value, state.value)
            self._state = state


__all__ = ["Scheduler", "SchedulerState", "local_now"]
