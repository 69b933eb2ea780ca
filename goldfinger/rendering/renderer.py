"""Render display states into frame buffers for pixel and character displays."""

from __future__ import annotations

from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from goldfinger.errors import BufferSizeMismatchError
from goldfinger.rendering.frame_data import DisplayState, FontSize
from goldfinger.rendering.geometry import DisplayGeometry, FrameBuffer, GeometryKind

MARGIN_X = 2

# Pixel size passed to the font loader, and the vertical advance per line.
# Line heights are tighter than the font size to get compact text.
FONT_PIXELS = {
    FontSize.SMALL: 11,
    FontSize.MEDIUM: 17,
    FontSize.LARGE: 38,
}
LINE_HEIGHTS = {
    FontSize.SMALL: 12,
    FontSize.MEDIUM: 19,
    FontSize.LARGE: 40,
}

COLOR_WHITE = 1
COLOR_BLACK = 0

# HD44780 ROM A00 code for the degree sign
LCD_DEGREE = 0xDF
LCD_UNKNOWN = ord("?")
LCD_PAD = ord(" ")

_ROTATIONS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


@lru_cache(maxsize=16)
def load_font(size: FontSize, font_path: str | None = None) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    """Load the font for a size, from ``font_path`` or Pillow's bundled default."""
    pixels = FONT_PIXELS[size]
    if font_path:
        return ImageFont.truetype(font_path, pixels)
    return ImageFont.load_default(size=pixels)


class Renderer:
    """Turn a DisplayState into a FrameBuffer of exactly the display's size."""

    def __init__(self, font_path: str | None = None) -> None:
        self._font_path = font_path

    def render(self, state: DisplayState, geometry: DisplayGeometry) -> FrameBuffer:
        if geometry.kind is GeometryKind.CHARACTER:
            buffer = self._render_characters(state, geometry)
        else:
            buffer = self._render_pixels(state, geometry)

        if len(buffer.data) != geometry.buffer_size:
            raise BufferSizeMismatchError(geometry.buffer_size, len(buffer.data))
        return buffer

    def _render_pixels(self, state: DisplayState, geometry: DisplayGeometry) -> FrameBuffer:
        image = Image.new("1", (geometry.width, geometry.height), COLOR_WHITE)
        draw = ImageDraw.Draw(image)

        y = 0
        for line in state.lines:
            # Anything starting below the bottom edge is dropped; partial
            # glyphs at the edge are clipped by the canvas.
            if y >= geometry.height:
                break
            font = load_font(line.size, self._font_path)
            draw.text((MARGIN_X, y), line.text, font=font, fill=COLOR_BLACK)
            y += LINE_HEIGHTS[line.size]

        native = image
        if geometry.rotation:
            native = image.transpose(_ROTATIONS[geometry.rotation])

        return FrameBuffer(
            geometry=geometry,
            data=native.tobytes(),
            color=state.color,
            blank=state.blank,
            image=image,
        )

    def _render_characters(self, state: DisplayState, geometry: DisplayGeometry) -> FrameBuffer:
        cols, rows = geometry.width, geometry.height
        lines = state.lines_for_rows(rows)
        cells = bytearray()
        for row in range(rows):
            text = lines[row].text if row < len(lines) else ""
            encoded = encode_lcd_text(text)[:cols]
            cells.extend(encoded.ljust(cols, bytes([LCD_PAD])))
        return FrameBuffer(
            geometry=geometry,
            data=bytes(cells),
            color=state.color,
            blank=state.blank,
        )


def encode_lcd_text(text: str) -> bytes:
    """Map text onto the character ROM of an HD44780-compatible LCD."""
    out = bytearray()
    for char in text:
        if char == "°":
            out.append(LCD_DEGREE)
        elif " " <= char <= "~":
            out.append(ord(char))
        else:
            out.append(LCD_UNKNOWN)
    return bytes(out)


_default_renderer = Renderer()


def render(state: DisplayState, geometry: DisplayGeometry) -> FrameBuffer:
    """Render with the bundled default font."""
    return _default_renderer.render(state, geometry)


__all__ = ["LINE_HEIGHTS", "Renderer", "encode_lcd_text", "load_font", "render"]
