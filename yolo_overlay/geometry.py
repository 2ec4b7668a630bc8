from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List

from .types import Rect


class FitPolicy(str, Enum):
    """How the frame was squared before inference."""

    # Center-cropped to min(w, h), then scaled to the model square.
    ASPECT_FILL_CROP = "crop"
    # Scaled to fit inside the model square, shorter side padded.
    ASPECT_FIT_LETTERBOX = "letterbox"


class AxisConvention(str, Enum):
    """Order of the first two box channels for a given model export."""

    XY = "xy"
    # Channels 0/1 carry (y, x); the vertical axis is flipped.
    YX_FLIPPED = "yx-flipped"


@dataclass(frozen=True)
class GeometryContext:
    """
    Geometry the frame was submitted with. It must match what was actually
    fed to the model, otherwise the mapped boxes are wrong.
    """

    dest_width: float
    dest_height: float
    model_dimension: int = 640
    fit_policy: FitPolicy = FitPolicy.ASPECT_FIT_LETTERBOX
    axis_convention: AxisConvention = AxisConvention.XY
    normalized: bool = False

    def __post_init__(self) -> None:
        if self.model_dimension <= 0:
            raise ValueError("model_dimension must be > 0")
        if self.dest_width <= 0 or self.dest_height <= 0:
            raise ValueError("dest_width and dest_height must be > 0")
        # Accept plain strings ("crop", "yx-flipped") from configs and CLIs.
        object.__setattr__(self, "fit_policy", FitPolicy(self.fit_policy))
        object.__setattr__(self, "axis_convention", AxisConvention(self.axis_convention))


def apply_axis_convention(box: Rect, convention: AxisConvention, model_dimension: float) -> Rect:
    """Bring a model box into (x, y) order."""

    if convention is AxisConvention.XY:
        return box
    cx, cy = box.center()
    return Rect.from_center(cy, model_dimension - cx, box.height, box.width)


def map_to_display(box: Rect, ctx: GeometryContext) -> Rect:
    """
    Map a model-space box to destination space. Pure arithmetic; results
    are not clamped to the frame.
    """

    d = float(ctx.model_dimension)
    box = apply_axis_convention(box, ctx.axis_convention, d)
    left, top = box.x, box.y

    if ctx.fit_policy is FitPolicy.ASPECT_FILL_CROP:
        crop = min(ctx.dest_width, ctx.dest_height)
        scale = crop / d
        x = left * scale + (ctx.dest_width - crop) / 2
        y = top * scale + (ctx.dest_height - crop) / 2
    else:
        scale = max(ctx.dest_width, ctx.dest_height) / d
        pad_x = abs(ctx.dest_width - d * scale) / 2
        pad_y = abs(ctx.dest_height - d * scale) / 2
        x = left * scale - pad_x
        y = top * scale - pad_y

    w, h = box.width * scale, box.height * scale
    if ctx.normalized:
        return Rect(x / ctx.dest_width, y / ctx.dest_height, w / ctx.dest_width, h / ctx.dest_height)
    return Rect(x, y, w, h)


class CoordinateMapper:
    """Maps model-space boxes for one geometry context. Never drops or reorders."""

    def __init__(self, ctx: GeometryContext):
        self.ctx = ctx

    def map(self, box: Rect) -> Rect:
        return map_to_display(box, self.ctx)

    def map_all(self, boxes: Iterable[Rect]) -> List[Rect]:
        return [map_to_display(b, self.ctx) for b in boxes]
