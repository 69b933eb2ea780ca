"""Display geometry and the frame buffer handed to drivers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from PIL import Image

from goldfinger.state import Color


class GeometryKind(str, Enum):
    PIXEL = "pixel"
    CHARACTER = "character"


@dataclass(frozen=True)
class DisplayGeometry:
    """Logical layout size of a display.

    For character displays ``width``/``height`` are columns/rows. ``rotation``
    turns the logical layout into the panel's native RAM orientation.
    """

    kind: GeometryKind
    width: int
    height: int
    rotation: int = 0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Display dimensions must be positive, got {self.width}x{self.height}.")
        if self.rotation not in (0, 90, 180, 270):
            raise ValueError(f"Rotation must be 0, 90, 180 or 270, got {self.rotation}.")
        if self.kind is GeometryKind.CHARACTER and self.rotation:
            raise ValueError("Character displays do not support rotation.")

    @property
    def native_size(self) -> tuple[int, int]:
        if self.rotation in (90, 270):
            return (self.height, self.width)
        return (self.width, self.height)

    @property
    def buffer_size(self) -> int:
        """Number of bytes in a frame buffer for this geometry."""
        if self.kind is GeometryKind.CHARACTER:
            return self.width * self.height
        native_width, native_height = self.native_size
        return ((native_width + 7) // 8) * native_height


@dataclass(frozen=True)
class FrameBuffer:
    """Exact bytes to transmit to the display.

    Pixel displays: 1 bit per pixel, MSB first, rows padded to whole bytes,
    1 = white, native orientation. Character displays: one ROM byte per cell,
    row-major.
    """

    geometry: DisplayGeometry
    data: bytes
    color: Color
    blank: bool = False
    image: Image.Image | None = field(default=None, compare=False, repr=False)

    def rows(self) -> list[bytes]:
        """Split a character buffer into rows."""
        cols = self.geometry.width
        return [self.data[i : i + cols] for i in range(0, len(self.data), cols)]


__all__ = ["DisplayGeometry", "FrameBuffer", "GeometryKind"]
