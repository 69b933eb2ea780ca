"""Rendering utilities for the display."""

from goldfinger.rendering.emulator import save_frame
from goldfinger.rendering.frame_data import DisplayLine, DisplayState, FontSize
from goldfinger.rendering.geometry import DisplayGeometry, FrameBuffer, GeometryKind
from goldfinger.rendering.renderer import Renderer, render

__all__ = [
    "DisplayGeometry",
    "DisplayLine",
    "DisplayState",
    "FontSize",
    "FrameBuffer",
    "GeometryKind",
    "Renderer",
    "render",
    "save_frame",
]
