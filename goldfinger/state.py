"""User-adjustable display settings and the shared store that holds them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import logging
import threading
from typing import Any, Mapping

from goldfinger.errors import InvalidColorError, InvalidModeError, ValidationError

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class Mode(str, Enum):
    """What the display should show."""

    OFF = "off"
    CLOCK = "clock"
    WEATHER = "weather"

    @classmethod
    def parse(cls, value: Any) -> "Mode":
        if isinstance(value, Mode):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        choices = ", ".join(mode.value for mode in cls)
        raise InvalidModeError(f"Invalid mode {value!r}, expected one of: {choices}")


@dataclass(frozen=True)
class Color:
    """24-bit RGB color. Serializes as HTML format (#rrggbb)."""

    red: int
    green: int
    blue: int

    @classmethod
    def parse(cls, value: Any) -> "Color":
        if isinstance(value, Color):
            return value
        if isinstance(value, str):
            text = value.strip()
            digits = text[1:]
            if len(text) == 7 and text.startswith("#") and all(c in _HEX_DIGITS for c in digits):
                packed = int(digits, 16)
                return cls((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF)
            raise InvalidColorError(f"Invalid color string: {value!r}")
        if isinstance(value, (list, tuple)) and len(value) == 3:
            if all(isinstance(c, int) and not isinstance(c, bool) and 0 <= c <= 255 for c in value):
                return cls(*value)
        raise InvalidColorError(f"Invalid color: {value!r}")

    def to_bytes(self) -> bytes:
        return bytes((self.red, self.green, self.blue))

    def __str__(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"


WHITE = Color(255, 255, 255)


@dataclass(frozen=True)
class Settings:
    """Immutable settings record. Replaced as a whole on every update."""

    mode: Mode = Mode.CLOCK
    color: Color = WHITE

    def to_dict(self) -> dict[str, str]:
        return {"mode": self.mode.value, "color": str(self.color)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base: "Settings | None" = None) -> "Settings":
        """Build settings from a (possibly partial) mapping on top of ``base``."""
        unknown = set(data) - {"mode", "color"}
        if unknown:
            raise ValidationError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")
        settings = base or cls()
        if "mode" in data:
            settings = replace(settings, mode=Mode.parse(data["mode"]))
        if "color" in data:
            settings = replace(settings, color=Color.parse(data["color"]))
        return settings


class SettingsStore:
    """Thread-safe holder for the current settings.

    Readers get the current immutable record without locking; writers are
    serialized and swap in a fully validated record, so a reader never sees
    a half-applied update. Every successful write sets the changed event.
    """

    def __init__(self, initial: Settings | None = None) -> None:
        self._settings = initial or Settings()
        self._write_lock = threading.Lock()
        self._changed = threading.Event()

    def get(self) -> Settings:
        return self._settings

    def set(self, partial: Mapping[str, Any]) -> Settings:
        """Validate and apply a partial update; raises ValidationError."""
        with self._write_lock:
            updated = Settings.from_dict(partial, base=self._settings)
            self._settings = updated
            self._changed.set()
        logger.info("Settings updated: %s", updated.to_dict())
        return updated

    def wait_for_change(self, timeout: float | None) -> bool:
        """Block until settings change or ``timeout`` passes."""
        return self._changed.wait(timeout)

    def clear_changed(self) -> None:
        self._changed.clear()

    def notify(self) -> None:
        """Wake anyone waiting for a change without modifying settings."""
        self._changed.set()


__all__ = ["Color", "Mode", "Settings", "SettingsStore", "WHITE"]
