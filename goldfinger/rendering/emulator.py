"""Frame output helpers for running without display hardware."""

from __future__ import annotations

from pathlib import Path

from goldfinger.rendering.geometry import FrameBuffer, GeometryKind


def frame_to_text(buffer: FrameBuffer) -> str:
    """Character frame as plain text, one line per display row."""
    return "\n".join(row.decode("latin-1").replace("\xdf", "°") for row in buffer.rows())


def save_frame(buffer: FrameBuffer, path: str = "emulator_output/frame.png") -> Path:
    """Save a frame to disk: PNG for pixel displays, text for character displays."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if buffer.geometry.kind is GeometryKind.CHARACTER:
        output_path = output_path.with_suffix(".txt")
        output_path.write_text(frame_to_text(buffer) + "\n", encoding="utf-8")
    elif buffer.image is not None:
        buffer.image.save(output_path, format="PNG")
    return output_path


__all__ = ["frame_to_text", "save_frame"]
