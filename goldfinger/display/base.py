"""Abstract display driver interface used by the scheduler."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging

from goldfinger.errors import BufferSizeMismatchError
from goldfinger.rendering.geometry import DisplayGeometry, FrameBuffer

logger = logging.getLogger(__name__)


class DisplayDriver(ABC):
    """Owns the hardware handle of one display for its whole lifetime.

    Use as a context manager so the handle is released on every exit path.
    """

    name = "display"

    def __init__(self, geometry: DisplayGeometry) -> None:
        self._geometry = geometry
        self._closed = False

    @property
    def geometry(self) -> DisplayGeometry:
        return self._geometry

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, buffer: FrameBuffer) -> None:
        """Transmit a frame; blocks until done. Raises DriverError on I/O failure."""
        if self._closed:
            raise RuntimeError(f"{self.name} is closed")
        if buffer.geometry != self._geometry or len(buffer.data) != self._geometry.buffer_size:
            raise BufferSizeMismatchError(self._geometry.buffer_size, len(buffer.data))
        self._send(buffer)

    def close(self) -> None:
        """Blank the display and release the hardware. Safe to call twice."""
        if self._closed:
            return
        logger.info("Closing %s", self.name)
        try:
            self._close()
        finally:
            self._closed = True

    @abstractmethod
    def _send(self, buffer: FrameBuffer) -> None: ...

    @abstractmethod
    def _close(self) -> None: ...

    def __enter__(self) -> "DisplayDriver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["DisplayDriver"]
