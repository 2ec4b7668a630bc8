from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned box, always top-left form: (x, y) is the top-left corner.
    Candidates hold model-pixel boxes, detections hold display-space boxes.
    """

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_center(cls, cx: float, cy: float, width: float, height: float) -> "Rect":
        """Build from a center-form (cx, cy, w, h) box."""
        w, h = float(width), float(height)
        return cls(float(cx) - w / 2, float(cy) - h / 2, w, h)

    @property
    def area(self) -> float:
        if self.width <= 0 or self.height <= 0:
            return 0.0
        return self.width * self.height

    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True)
class Candidate:
    box: Rect  # model pixels
    class_index: int
    score: float
    anchor: int = -1


@dataclass(frozen=True)
class Detection:
    """
    Final detection handed to the overlay layer.

    `box` is in the destination space chosen by the geometry context (display
    pixels, or [0, 1] when normalized).
    """

    label: str
    confidence: float
    box: Rect
    class_index: int = -1

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.box.as_xyxy()
