"""Driver for character LCDs behind an Adafruit USB/serial RGB backpack."""

from __future__ import annotations

import logging
from typing import Any

import serial

from goldfinger.display.base import DisplayDriver
from goldfinger.errors import DeviceNackError, DriverTimeoutError
from goldfinger.rendering.geometry import DisplayGeometry, FrameBuffer, GeometryKind
from goldfinger.state import Color

logger = logging.getLogger(__name__)

DEFAULT_BAUD_RATE = 9600
DEFAULT_WRITE_TIMEOUT_SECONDS = 2.0

# Every backpack command starts with this byte
COMMAND_PREFIX = 0xFE
DISPLAY_ON = 0x42
DISPLAY_OFF = 0x46
SET_CURSOR = 0x47
AUTOSCROLL_OFF = 0x52
CLEAR_SCREEN = 0x58
SET_BACKLIGHT_COLOR = 0xD0
SET_SIZE = 0xD1

LCD_16X2_GEOMETRY = DisplayGeometry(GeometryKind.CHARACTER, width=16, height=2)


def command(code: int, *args: int) -> bytes:
    return bytes((COMMAND_PREFIX, code, *args))


class CharacterLcd(DisplayDriver):
    """HD44780-style LCD driven over UART (8N1) by the backpack's command set."""

    name = "character LCD"

    def __init__(
        self,
        geometry: DisplayGeometry = LCD_16X2_GEOMETRY,
        port: str = "/dev/ttyACM0",
        baud_rate: int = DEFAULT_BAUD_RATE,
        write_timeout_seconds: float = DEFAULT_WRITE_TIMEOUT_SECONDS,
        serial_port: Any = None,
    ) -> None:
        if geometry.kind is not GeometryKind.CHARACTER:
            raise ValueError("Character LCDs need a character geometry.")
        super().__init__(geometry)

        if serial_port is None:
            serial_port = serial.Serial(
                port,
                baudrate=baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                write_timeout=write_timeout_seconds,
            )
        self._port = serial_port
        self._color: Color | None = None
        self._display_on = False

        try:
            self._write(command(SET_SIZE, geometry.width, geometry.height))
            self._write(command(AUTOSCROLL_OFF))
            self._write(command(CLEAR_SCREEN))
        except Exception:
            self._port.close()
            raise
        logger.info("LCD initialized on %s at %d baud", port, baud_rate)

    def _send(self, buffer: FrameBuffer) -> None:
        if buffer.blank:
            if self._display_on:
                logger.debug("Turning LCD off")
                self._write(command(CLEAR_SCREEN) + command(DISPLAY_OFF))
                self._display_on = False
            return

        payload = bytearray()
        if not self._display_on:
            payload += command(DISPLAY_ON, 0)
        if buffer.color != self._color:
            payload += command(SET_BACKLIGHT_COLOR, buffer.color.red, buffer.color.green, buffer.color.blue)
        for index, row in enumerate(buffer.rows()):
            # Cursor positions on the backpack are 1-based
            payload += command(SET_CURSOR, 1, index + 1)
            payload += row
        self._write(bytes(payload))
        self._display_on = True
        self._color = buffer.color

    def _close(self) -> None:
        try:
            self._write(command(CLEAR_SCREEN) + command(DISPLAY_OFF))
        except Exception as exc:
            logger.error("Failed to clear LCD on shutdown: %s", exc)
        finally:
            self._port.close()

    def _write(self, payload: bytes) -> None:
        try:
            written = self._port.write(payload)
            self._port.flush()
        except serial.SerialTimeoutException as exc:
            raise DriverTimeoutError(f"Timed out writing {len(payload)} bytes to LCD") from exc
        except (serial.SerialException, OSError) as exc:
            raise DeviceNackError(f"LCD write failed: {exc}") from exc
        if written is not None and written != len(payload):
            raise DeviceNackError(f"LCD accepted {written} of {len(payload)} bytes")


__all__ = ["CharacterLcd", "LCD_16X2_GEOMETRY", "command"]
