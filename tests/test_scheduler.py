from __future__ import annotations

from datetime import datetime, timedelta, timezone
import threading
import time
from unittest.mock import MagicMock

import pytest

from goldfinger.data.observations import ForecastPeriod, WeatherData
from goldfinger.data.poller import Poller
from goldfinger.display.mock import NullDisplay
from goldfinger.errors import BufferSizeMismatchError, DeviceNackError, FetchTimeoutError
from goldfinger.logic.reducer import NO_DATA_TEXT
from goldfinger.rendering.geometry import DisplayGeometry, FrameBuffer, GeometryKind
from goldfinger.rendering.renderer import Renderer
from goldfinger.scheduler import Scheduler, SchedulerState
from goldfinger.state import Mode, Settings, SettingsStore

NOW = datetime(2024, 5, 1, 13, 30, tzinfo=timezone.utc)
GEOMETRY = DisplayGeometry(GeometryKind.CHARACTER, width=16, height=4)

WEATHER = WeatherData(
    periods=(
        ForecastPeriod("Afternoon", NOW - timedelta(hours=1), NOW + timedelta(hours=2), 65, "F", "Sunny", 10),
    ),
    fetched_at=NOW,
)


class RecordingDisplay(NullDisplay):
    """Null display that can fail or run a hook in the middle of a send."""

    def __init__(self) -> None:
        super().__init__(GEOMETRY)
        self.fail_next = False
        self.on_send = None
        self.completed_sends = 0

    def _send(self, buffer: FrameBuffer) -> None:
        if self.fail_next:
            self.fail_next = False
            raise DeviceNackError("no ack")
        if self.on_send is not None:
            self.on_send()
        super()._send(buffer)
        self.completed_sends += 1


def _scheduler(store: SettingsStore, display: RecordingDisplay, **kwargs) -> Scheduler:
    kwargs.setdefault("clock", lambda: NOW)
    return Scheduler(store, display, **kwargs)


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_tick_drives_current_state() -> None:
    display = RecordingDisplay()
    scheduler = _scheduler(SettingsStore(Settings(mode=Mode.CLOCK)), display)

    assert scheduler.tick()

    assert display.frames_sent == 1
    assert display.last_frame.rows()[0].startswith(b"1:30")
    assert scheduler.current_state.generated_at == NOW
    assert scheduler.state is SchedulerState.IDLE


def test_tick_uses_last_known_good_weather() -> None:
    fetches = iter([WEATHER, FetchTimeoutError("timed out")])

    def fetch() -> WeatherData:
        value = next(fetches)
        if isinstance(value, Exception):
            raise value
        return value

    poller = Poller("weather", fetch, poll_interval_seconds=60)
    poller.poll_once()
    poller.poll_once()
    display = RecordingDisplay()
    scheduler = _scheduler(SettingsStore(Settings(mode=Mode.WEATHER)), display, weather_poller=poller)

    scheduler.tick()

    texts = [line.text for line in scheduler.current_state.lines]
    assert "65°F 10%" in texts


def test_tick_without_weather_shows_placeholder() -> None:
    poller = Poller("weather", MagicMock(side_effect=FetchTimeoutError("timed out")), poll_interval_seconds=60)
    poller.poll_once()
    display = RecordingDisplay()
    scheduler = _scheduler(SettingsStore(Settings(mode=Mode.WEATHER)), display, weather_poller=poller)

    scheduler.tick()

    texts = [line.text for line in scheduler.current_state.lines]
    assert texts[1:] == [NO_DATA_TEXT, "timed out"]


def test_off_mode_blank_on_next_tick_even_when_fetch_fails() -> None:
    poller = Poller("weather", MagicMock(side_effect=FetchTimeoutError("timed out")), poll_interval_seconds=60)
    poller.poll_once()
    store = SettingsStore(Settings(mode=Mode.WEATHER))
    display = RecordingDisplay()
    scheduler = _scheduler(store, display, weather_poller=poller)
    scheduler.tick()

    store.set({"mode": "off"})
    scheduler.tick()

    assert scheduler.current_state.blank
    assert display.last_frame.blank


def test_slow_fetch_does_not_block_tick() -> None:
    release = threading.Event()

    def slow_fetch() -> WeatherData:
        release.wait(5)
        return WEATHER

    poller = Poller("weather", slow_fetch, poll_interval_seconds=60)
    display = RecordingDisplay()
    scheduler = _scheduler(SettingsStore(Settings(mode=Mode.WEATHER)), display, weather_poller=poller)
    poller.start()
    try:
        started = time.monotonic()
        assert scheduler.tick()
        elapsed = time.monotonic() - started
    finally:
        release.set()
        poller.stop()
        poller.join(timeout=2)

    assert elapsed < 1.0
    assert NO_DATA_TEXT in [line.text for line in scheduler.current_state.lines]


def test_driver_error_skips_tick_and_loop_continues() -> None:
    display = RecordingDisplay()
    display.fail_next = True
    scheduler = _scheduler(SettingsStore(), display)

    assert not scheduler.tick()
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.tick()
    assert display.completed_sends == 1


def test_switch_to_weather_refreshes_poller() -> None:
    poller = MagicMock()
    poller.last_good.return_value = None
    poller.get_latest.return_value = None
    store = SettingsStore(Settings(mode=Mode.CLOCK))
    scheduler = _scheduler(store, RecordingDisplay(), weather_poller=poller)

    scheduler.tick()
    poller.refresh.assert_not_called()

    store.set({"mode": "weather"})
    scheduler.tick()
    scheduler.tick()
    poller.refresh.assert_called_once()


def test_shutdown_mid_drive_completes_drive_then_closes() -> None:
    display = RecordingDisplay()
    scheduler = _scheduler(SettingsStore(), display, tick_interval_seconds=60)

    def interrupt() -> None:
        scheduler.request_shutdown()
        time.sleep(0.05)

    display.on_send = interrupt

    assert scheduler.run() == 0

    assert display.completed_sends == 1
    assert display.closed
    assert scheduler.state is SchedulerState.SHUTTING_DOWN


def test_shutdown_before_drive_abandons_tick() -> None:
    store = SettingsStore()
    display = RecordingDisplay()
    scheduler = _scheduler(store, display)

    class InterruptingRenderer(Renderer):
        def render(self, state, geometry):
            scheduler.request_shutdown()
            return super().render(state, geometry)

    scheduler._renderer = InterruptingRenderer()

    assert scheduler.run() == 0
    assert display.frames_sent == 0
    assert display.closed


def test_settings_change_preempts_timer() -> None:
    store = SettingsStore(Settings(mode=Mode.CLOCK))
    display = RecordingDisplay()
    scheduler = _scheduler(store, display, tick_interval_seconds=60)
    thread = threading.Thread(target=scheduler.run)
    thread.start()
    try:
        assert _wait_for(lambda: display.frames_sent == 1)
        store.set({"mode": "off"})
        assert _wait_for(lambda: display.frames_sent == 2)
        assert display.last_frame.blank
    finally:
        scheduler.request_shutdown()
        thread.join(timeout=2)

    assert not thread.is_alive()
    assert display.closed


def test_run_starts_and_stops_pollers() -> None:
    poller = MagicMock()
    poller.last_good.return_value = None
    poller.get_latest.return_value = None
    display = RecordingDisplay()
    scheduler = _scheduler(SettingsStore(), display, weather_poller=poller)
    display.on_send = scheduler.request_shutdown

    scheduler.run()

    poller.start.assert_called_once()
    poller.stop.assert_called_once()
    poller.join.assert_called_once()


def test_render_error_is_fatal_and_releases_display() -> None:
    display = RecordingDisplay()

    class BrokenRenderer(Renderer):
        def render(self, state, geometry):
            raise BufferSizeMismatchError(64, 1)

    scheduler = _scheduler(SettingsStore(), display, renderer=BrokenRenderer())

    with pytest.raises(BufferSizeMismatchError):
        scheduler.run()
    assert display.closed


def test_request_shutdown_while_settings_event_locked() -> None:
    store = SettingsStore()
    scheduler = _scheduler(store, RecordingDisplay())
    returned = threading.Event()

    def interrupted_clear() -> None:
        # A signal handler runs on the thread that may be inside clear_changed()
        with store._changed._cond:
            scheduler.request_shutdown()
            returned.set()

    thread = threading.Thread(target=interrupted_clear, daemon=True)
    thread.start()

    assert returned.wait(2)
    assert scheduler.shutdown_requested
    assert store.wait_for_change(2)
