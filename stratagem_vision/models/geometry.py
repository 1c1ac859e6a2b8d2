from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    """Axis-aligned region with a top-left origin (y grows downward)."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2.0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersection(self, other: Rect) -> Rect:
        """Overlap of two rects; an empty Rect at the origin when they do not overlap."""
        x1 = max(self.min_x, other.min_x)
        y1 = max(self.min_y, other.min_y)
        x2 = min(self.max_x, other.max_x)
        y2 = min(self.max_y, other.max_y)
        if x2 <= x1 or y2 <= y1:
            return Rect()
        return Rect(x1, y1, x2 - x1, y2 - y1)

    def clamped(self, width: int, height: int) -> Rect:
        return self.intersection(Rect(0, 0, width, height))

    def integral(self) -> tuple[int, int, int, int]:
        """Smallest integer (x1, y1, x2, y2) box containing this rect."""
        return (
            int(math.floor(self.min_x)),
            int(math.floor(self.min_y)),
            int(math.ceil(self.max_x)),
            int(math.ceil(self.max_y)),
        )

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass
class BoundingBox:
    """Screen-relative bounding box for a capture region."""
    top: int = 0
    left: int = 0
    width: int = 500
    height: int = 800

    def as_mss_region(self, monitor_offset_x: int = 0, monitor_offset_y: int = 0) -> dict:
        """Convert to mss-compatible region dict."""
        return {
            "top": self.top + monitor_offset_y,
            "left": self.left + monitor_offset_x,
            "width": self.width,
            "height": self.height,
        }

    def to_dict(self) -> dict:
        """Serialize to dict for JSON config file."""
        return {"top": self.top, "left": self.left, "width": self.width, "height": self.height}
