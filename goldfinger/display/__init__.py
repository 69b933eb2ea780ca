"""Display output adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from goldfinger.display.base import DisplayDriver
from goldfinger.display.mock import NullDisplay
from goldfinger.rendering.geometry import DisplayGeometry, GeometryKind

if TYPE_CHECKING:
    from goldfinger.config import DisplayConfig


def display_geometry(config: "DisplayConfig") -> DisplayGeometry:
    kind = GeometryKind.CHARACTER if config.kind == "lcd" else GeometryKind.PIXEL
    return DisplayGeometry(kind, width=config.width, height=config.height, rotation=config.rotation)


def open_display(config: "DisplayConfig") -> DisplayDriver:
    """Open the display described by the config. The caller owns the result."""
    geometry = display_geometry(config)
    if config.kind == "epaper":
        from goldfinger.display.epaper import EPaperDisplay

        return EPaperDisplay(
            geometry,
            port=config.port,
            full_refresh_interval_seconds=config.full_refresh_interval_seconds,
            busy_timeout_seconds=config.busy_timeout_seconds,
        )
    if config.kind == "lcd":
        from goldfinger.display.lcd import CharacterLcd

        return CharacterLcd(
            geometry,
            port=config.port,
            baud_rate=config.baud_rate,
            write_timeout_seconds=config.busy_timeout_seconds,
        )
    if config.kind == "mock":
        return NullDisplay(geometry, emulator_path=config.emulator_path)
    raise ValueError(f"Unknown display kind: {config.kind}")


__all__ = ["DisplayDriver", "NullDisplay", "display_geometry", "open_display"]
