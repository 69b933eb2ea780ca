"""Display stand-in for running without hardware attached."""

from __future__ import annotations

import logging

from goldfinger.display.base import DisplayDriver
from goldfinger.rendering.emulator import frame_to_text, save_frame
from goldfinger.rendering.geometry import DisplayGeometry, FrameBuffer, GeometryKind

logger = logging.getLogger(__name__)


class NullDisplay(DisplayDriver):
    """Accepts frames and logs them, optionally writing them to disk."""

    name = "null display"

    def __init__(self, geometry: DisplayGeometry, emulator_path: str | None = None) -> None:
        super().__init__(geometry)
        self._emulator_path = emulator_path
        self.frames_sent = 0
        self.last_frame: FrameBuffer | None = None

    def _send(self, buffer: FrameBuffer) -> None:
        self.frames_sent += 1
        self.last_frame = buffer
        if buffer.geometry.kind is GeometryKind.CHARACTER:
            logger.debug("Frame %d:\n%s", self.frames_sent, frame_to_text(buffer))
        else:
            logger.debug("Frame %d: %d bytes, blank=%s", self.frames_sent, len(buffer.data), buffer.blank)
        if self._emulator_path:
            save_frame(buffer, self._emulator_path)

    def _close(self) -> None:
        logger.info("Null display closed after %d frames", self.frames_sent)


__all__ = ["NullDisplay"]
