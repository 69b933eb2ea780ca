"""Data structures for rendering frames."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from goldfinger.state import Color, Mode


class FontSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


@dataclass(frozen=True)
class DisplayLine:
    """Single line of text for display."""

    text: str
    size: FontSize = FontSize.MEDIUM


@dataclass(frozen=True)
class DisplayState:
    """Fully resolved description of what should be on screen.

    ``compact_lines`` is a shorter, most-important-first layout for displays
    with fewer rows than ``lines`` needs. Empty means ``lines`` is used as is.
    """

    mode: Mode
    color: Color
    lines: tuple[DisplayLine, ...]
    generated_at: datetime
    compact_lines: tuple[DisplayLine, ...] = ()

    @property
    def blank(self) -> bool:
        return not self.lines

    def lines_for_rows(self, rows: int) -> tuple[DisplayLine, ...]:
        if self.compact_lines and len(self.lines) > rows:
            return self.compact_lines
        return self.lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "color": str(self.color),
            "lines": [{"text": line.text, "size": line.size.value} for line in self.lines],
            "compact_lines": [{"text": line.text, "size": line.size.value} for line in self.compact_lines],
            "generated_at": self.generated_at.isoformat(),
        }


__all__ = ["DisplayLine", "DisplayState", "FontSize"]
