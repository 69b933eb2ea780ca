from __future__ import annotations

from datetime import datetime, timezone
from itertools import count

import pytest

from goldfinger.display.epaper import (
    DEEP_SLEEP_MODE,
    DISPLAY_UPDATE_CONTROL_2,
    EPAPER_213_GEOMETRY,
    MASTER_ACTIVATION,
    PIN_BUSY,
    PIN_DC,
    SW_RESET,
    UPDATE_FULL,
    UPDATE_PARTIAL,
    WRITE_RAM_BW,
    WRITE_RAM_RED,
    EPaperDisplay,
    parse_spi_port,
)
from goldfinger.errors import BufferSizeMismatchError, DeviceNackError, DriverTimeoutError
from goldfinger.rendering.frame_data import DisplayLine, DisplayState
from goldfinger.rendering.geometry import DisplayGeometry, GeometryKind
from goldfinger.rendering.renderer import render
from goldfinger.state import Color, Mode

NOW = datetime(2024, 5, 1, 13, 30, tzinfo=timezone.utc)


class FakeGPIO:
    BCM = "BCM"
    OUT = "OUT"
    IN = "IN"

    def __init__(self) -> None:
        self.levels: dict[int, int] = {}
        self.busy_level = 0
        self.cleaned_up: list[int] | None = None

    def setmode(self, mode) -> None:
        self.mode = mode

    def setwarnings(self, flag) -> None:
        pass

    def setup(self, pin, direction) -> None:
        self.levels[pin] = 0

    def output(self, pin, value) -> None:
        self.levels[pin] = value

    def input(self, pin) -> int:
        assert pin == PIN_BUSY
        return self.busy_level

    def cleanup(self, pins) -> None:
        self.cleaned_up = list(pins)


class FakeSpi:
    """Records (command, data) pairs using the D/C line level."""

    def __init__(self, gpio: FakeGPIO) -> None:
        self._gpio = gpio
        self.transactions: list[tuple[int, bytearray]] = []
        self.opened: tuple[int, int] | None = None
        self.closed = False
        self.fail = False

    def open(self, bus, device) -> None:
        self.opened = (bus, device)

    def close(self) -> None:
        self.closed = True

    def xfer2(self, values) -> list[int]:
        if self.fail:
            raise OSError(5, "Input/output error")
        if self._gpio.levels.get(PIN_DC) == 0:
            self.transactions.append((values[0], bytearray()))
        else:
            self.transactions[-1][1].extend(values)
        return [0] * len(values)

    def commands(self) -> list[int]:
        return [command for command, _ in self.transactions]

    def data_for(self, command: int) -> list[bytes]:
        return [bytes(data) for cmd, data in self.transactions if cmd == command]


@pytest.fixture()
def gpio() -> FakeGPIO:
    return FakeGPIO()


@pytest.fixture()
def spi(gpio: FakeGPIO) -> FakeSpi:
    return FakeSpi(gpio)


@pytest.fixture()
def clock():
    ticks = count()
    return lambda: float(next(ticks))


def _display(spi, gpio, clock, **kwargs) -> EPaperDisplay:
    return EPaperDisplay(spi=spi, gpio=gpio, clock=clock, **kwargs)


def _frame(text: str):
    state = DisplayState(Mode.CLOCK, Color(0, 0, 0), (DisplayLine(text),), NOW)
    return render(state, EPAPER_213_GEOMETRY)


def test_parse_spi_port() -> None:
    assert parse_spi_port("/dev/spidev0.1") == (0, 1)
    with pytest.raises(ValueError):
        parse_spi_port("/dev/ttyUSB0")


def test_init_sequence(spi, gpio, clock) -> None:
    _display(spi, gpio, clock)

    assert spi.opened == (0, 0)
    assert spi.commands()[0] == SW_RESET
    # Gate count is the native height (250 lines) minus one
    assert spi.data_for(0x01) == [bytes([0xF9, 0x00, 0x00])]
    # 122 native columns -> RAM X range 0..15
    assert spi.data_for(0x44) == [bytes([0x00, 0x0F])]
    assert spi.data_for(0x45) == [bytes([0x00, 0x00, 0xF9, 0x00])]


def test_first_send_is_full_refresh(spi, gpio, clock) -> None:
    display = _display(spi, gpio, clock)
    spi.transactions.clear()

    frame = _frame("1:30")
    display.send(frame)

    assert spi.data_for(WRITE_RAM_BW) == [frame.data]
    assert spi.data_for(WRITE_RAM_RED) == [frame.data]
    assert spi.data_for(DISPLAY_UPDATE_CONTROL_2) == [bytes([UPDATE_FULL])]
    assert spi.commands()[-1] == MASTER_ACTIVATION


def test_later_sends_are_partial_until_interval(spi, gpio, clock) -> None:
    display = _display(spi, gpio, clock, full_refresh_interval_seconds=1000)
    display.send(_frame("1:30"))
    spi.transactions.clear()

    display.send(_frame("1:31"))

    assert spi.data_for(DISPLAY_UPDATE_CONTROL_2) == [bytes([UPDATE_PARTIAL])]
    assert spi.data_for(WRITE_RAM_RED) == []


def test_full_refresh_after_interval(spi, gpio) -> None:
    now = [0.0]
    display = _display(spi, gpio, lambda: now[0], full_refresh_interval_seconds=60)
    display.send(_frame("1:30"))
    spi.transactions.clear()

    now[0] = 61.0
    display.send(_frame("1:31"))

    assert spi.data_for(DISPLAY_UPDATE_CONTROL_2) == [bytes([UPDATE_FULL])]


def test_unchanged_frame_is_not_resent(spi, gpio, clock) -> None:
    display = _display(spi, gpio, clock)
    display.send(_frame("1:30"))
    spi.transactions.clear()

    display.send(_frame("1:30"))

    assert spi.transactions == []


def test_busy_timeout_raises_and_forces_full_refresh(spi, gpio, clock) -> None:
    display = _display(spi, gpio, clock, busy_timeout_seconds=5, full_refresh_interval_seconds=1000)
    display.send(_frame("1:30"))
    assert not display.full_refresh_pending

    gpio.busy_level = 1
    with pytest.raises(DriverTimeoutError):
        display.send(_frame("1:31"))
    assert display.full_refresh_pending

    gpio.busy_level = 0
    spi.transactions.clear()
    display.send(_frame("1:31"))
    assert spi.data_for(DISPLAY_UPDATE_CONTROL_2) == [bytes([UPDATE_FULL])]


def test_spi_error_raises_device_nack(spi, gpio, clock) -> None:
    display = _display(spi, gpio, clock)
    spi.fail = True

    with pytest.raises(DeviceNackError):
        display.send(_frame("1:30"))


def test_send_rejects_wrong_geometry(spi, gpio, clock) -> None:
    display = _display(spi, gpio, clock)
    other = DisplayGeometry(GeometryKind.PIXEL, width=128, height=64)
    state = DisplayState(Mode.CLOCK, Color(0, 0, 0), (), NOW)

    with pytest.raises(BufferSizeMismatchError):
        display.send(render(state, other))


def test_close_clears_sleeps_and_releases(spi, gpio, clock) -> None:
    display = _display(spi, gpio, clock)
    display.send(_frame("1:30"))
    spi.transactions.clear()

    with display:
        pass

    assert display.closed
    assert spi.data_for(WRITE_RAM_BW) == [b"\xff" * EPAPER_213_GEOMETRY.buffer_size]
    assert spi.data_for(DEEP_SLEEP_MODE) == [b"\x01"]
    assert spi.closed
    assert gpio.cleaned_up is not None and PIN_BUSY in gpio.cleaned_up

    display.close()
    with pytest.raises(RuntimeError):
        display.send(_frame("1:31"))


def test_close_releases_even_when_clear_fails(spi, gpio, clock) -> None:
    display = _display(spi, gpio, clock)
    spi.fail = True

    display.close()

    assert spi.closed
    assert gpio.cleaned_up is not None
