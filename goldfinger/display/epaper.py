"""Driver for SSD1680-based 2.13" black/white e-paper panels over SPI."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from goldfinger.display.base import DisplayDriver
from goldfinger.errors import DeviceNackError, DriverTimeoutError
from goldfinger.rendering.geometry import DisplayGeometry, FrameBuffer, GeometryKind

logger = logging.getLogger(__name__)

PIN_BUSY = 17  # GPIO/BCM 17, pin 11
PIN_DC = 22  # GPIO/BCM 22, pin 15
PIN_RESET = 27  # GPIO/BCM 27, pin 13

SPI_MAX_SPEED_HZ = 1_000_000
SPI_MODE = 0
SPI_MAX_CHUNK = 4096

# SSD1680 command set
DRIVER_OUTPUT_CONTROL = 0x01
DEEP_SLEEP_MODE = 0x10
DATA_ENTRY_MODE = 0x11
SW_RESET = 0x12
TEMPERATURE_SENSOR = 0x18
MASTER_ACTIVATION = 0x20
DISPLAY_UPDATE_CONTROL_1 = 0x21
DISPLAY_UPDATE_CONTROL_2 = 0x22
WRITE_RAM_BW = 0x24
WRITE_RAM_RED = 0x26
BORDER_WAVEFORM = 0x3C
SET_RAM_X_RANGE = 0x44
SET_RAM_Y_RANGE = 0x45
SET_RAM_X_COUNTER = 0x4E
SET_RAM_Y_COUNTER = 0x4F

UPDATE_FULL = 0xF7
UPDATE_PARTIAL = 0xFF
DATA_ENTRY_X_INC_Y_INC = 0x03
BORDER_FULL = 0x05
BORDER_PARTIAL = 0x80
INTERNAL_TEMPERATURE_SENSOR = 0x80
DEEP_SLEEP_MODE_1 = 0x01

DEFAULT_FULL_REFRESH_INTERVAL_SECONDS = 60 * 60
DEFAULT_BUSY_TIMEOUT_SECONDS = 10.0

EPAPER_213_GEOMETRY = DisplayGeometry(GeometryKind.PIXEL, width=250, height=122, rotation=90)


def parse_spi_port(port: str) -> tuple[int, int]:
    """Turn ``/dev/spidev0.1`` into ``(0, 1)``."""
    name = port.rsplit("/", 1)[-1]
    if not name.startswith("spidev") or "." not in name:
        raise ValueError(f"Invalid SPI device path: {port}")
    bus, device = name[len("spidev") :].split(".", 1)
    return int(bus), int(device)


class EPaperDisplay(DisplayDriver):
    """SSD1680 controller wired to the Pi's SPI0 bus plus three GPIO lines.

    Frames alternate between fast partial refreshes and a periodic full
    refresh, which cleans up the ghosting partial refreshes leave behind.
    """

    name = "e-paper display"

    def __init__(
        self,
        geometry: DisplayGeometry = EPAPER_213_GEOMETRY,
        port: str = "/dev/spidev0.0",
        full_refresh_interval_seconds: float = DEFAULT_FULL_REFRESH_INTERVAL_SECONDS,
        busy_timeout_seconds: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
        spi: Any = None,
        gpio: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if geometry.kind is not GeometryKind.PIXEL:
            raise ValueError("E-paper displays need a pixel geometry.")
        super().__init__(geometry)

        if spi is None or gpio is None:
            try:
                import spidev
                from RPi import GPIO
            except ImportError as exc:
                raise RuntimeError(
                    "E-paper display requires 'spidev' and 'RPi.GPIO' on Raspberry Pi."
                ) from exc
            if spi is None:
                spi = spidev.SpiDev()
            if gpio is None:
                gpio = GPIO

        self._spi = spi
        self._gpio = gpio
        self._clock = clock
        self._full_refresh_interval = full_refresh_interval_seconds
        self._busy_timeout = busy_timeout_seconds
        self._native_width, self._native_height = geometry.native_size

        # The text currently on the screen
        self._last_data: bytes | None = None
        # When did we last do a full screen update (as opposed to partial)?
        self._last_full_update: float | None = None
        self._force_full = True

        bus, device = parse_spi_port(port)
        self._spi.open(bus, device)
        self._spi.max_speed_hz = SPI_MAX_SPEED_HZ
        self._spi.mode = SPI_MODE

        self._gpio.setmode(self._gpio.BCM)
        self._gpio.setwarnings(False)
        self._gpio.setup(PIN_RESET, self._gpio.OUT)
        self._gpio.setup(PIN_DC, self._gpio.OUT)
        self._gpio.setup(PIN_BUSY, self._gpio.IN)

        try:
            self._init_controller()
        except Exception:
            self._release()
            raise
        logger.info("E-paper controller initialized on %s", port)

    @property
    def full_refresh_pending(self) -> bool:
        return self._force_full

    def _send(self, buffer: FrameBuffer) -> None:
        if buffer.data == self._last_data:
            logger.debug("Frame unchanged, skipping display update")
            return

        now = self._clock()
        full = (
            self._force_full
            or self._last_full_update is None
            or now - self._last_full_update >= self._full_refresh_interval
        )
        try:
            if full:
                logger.info("Updating display (full)")
                self._full_update(buffer.data)
                self._last_full_update = now
            else:
                logger.debug("Updating display (fast)")
                self._partial_update(buffer.data)
        except Exception:
            # A half-written frame leaves artifacts; clean them up next time
            self._force_full = True
            self._last_data = None
            raise
        self._force_full = False
        self._last_data = buffer.data

    def _close(self) -> None:
        # A fast refresh leaves ghost text behind, so clear with a full one
        logger.info("Clearing display for shutdown")
        try:
            self._full_update(bytes([0xFF]) * self.geometry.buffer_size)
            self._command(DEEP_SLEEP_MODE, [DEEP_SLEEP_MODE_1])
        except Exception as exc:
            logger.error("Failed to clear display on shutdown: %s", exc)
        finally:
            self._release()
        logger.info("Done clearing display")

    def _release(self) -> None:
        try:
            self._spi.close()
        finally:
            self._gpio.cleanup([PIN_RESET, PIN_DC, PIN_BUSY])

    def _init_controller(self) -> None:
        self._hardware_reset()
        self._wait_idle("reset")
        self._command(SW_RESET)
        self._wait_idle("software reset")

        gate_lines = self._native_height - 1
        self._command(DRIVER_OUTPUT_CONTROL, [gate_lines & 0xFF, (gate_lines >> 8) & 0x01, 0x00])
        self._command(DATA_ENTRY_MODE, [DATA_ENTRY_X_INC_Y_INC])
        self._set_window()
        self._command(BORDER_WAVEFORM, [BORDER_FULL])
        self._command(DISPLAY_UPDATE_CONTROL_1, [0x00, 0x80])
        self._command(TEMPERATURE_SENSOR, [INTERNAL_TEMPERATURE_SENSOR])
        self._set_cursor()
        self._wait_idle("init")

    def _full_update(self, data: bytes) -> None:
        self._command(BORDER_WAVEFORM, [BORDER_FULL])
        self._set_cursor()
        self._command(WRITE_RAM_BW, data)
        # The red RAM holds the base image that partial refreshes diff against
        self._set_cursor()
        self._command(WRITE_RAM_RED, data)
        self._command(DISPLAY_UPDATE_CONTROL_2, [UPDATE_FULL])
        self._command(MASTER_ACTIVATION)
        self._wait_idle("full refresh")

    def _partial_update(self, data: bytes) -> None:
        self._command(BORDER_WAVEFORM, [BORDER_PARTIAL])
        self._set_cursor()
        self._command(WRITE_RAM_BW, data)
        self._command(DISPLAY_UPDATE_CONTROL_2, [UPDATE_PARTIAL])
        self._command(MASTER_ACTIVATION)
        self._wait_idle("partial refresh")

    def _set_window(self) -> None:
        x_end = (self._native_width - 1) >> 3
        y_end = self._native_height - 1
        self._command(SET_RAM_X_RANGE, [0x00, x_end])
        self._command(SET_RAM_Y_RANGE, [0x00, 0x00, y_end & 0xFF, (y_end >> 8) & 0xFF])

    def _set_cursor(self) -> None:
        self._command(SET_RAM_X_COUNTER, [0x00])
        self._command(SET_RAM_Y_COUNTER, [0x00, 0x00])

    def _hardware_reset(self) -> None:
        self._gpio.output(PIN_RESET, 1)
        time.sleep(0.02)
        self._gpio.output(PIN_RESET, 0)
        time.sleep(0.002)
        self._gpio.output(PIN_RESET, 1)
        time.sleep(0.02)

    def _command(self, command: int, data: bytes | list[int] | None = None) -> None:
        try:
            self._gpio.output(PIN_DC, 0)
            self._spi.xfer2([command])
            if data:
                self._gpio.output(PIN_DC, 1)
                for start in range(0, len(data), SPI_MAX_CHUNK):
                    self._spi.xfer2(list(data[start : start + SPI_MAX_CHUNK]))
        except OSError as exc:
            raise DeviceNackError(f"SPI transfer of command 0x{command:02X} failed: {exc}") from exc

    def _wait_idle(self, tag: str) -> None:
        # BUSY is held high while the controller is working
        deadline = self._clock() + self._busy_timeout
        while self._gpio.input(PIN_BUSY) == 1:
            if self._clock() >= deadline:
                raise DriverTimeoutError(f"Display stayed busy for over {self._busy_timeout}s during {tag}")
            time.sleep(0.01)


__all__ = ["EPAPER_213_GEOMETRY", "EPaperDisplay", "parse_spi_port"]
