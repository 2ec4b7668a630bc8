from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

CONFIDENCE_RANGE = (0.1, 1.0)
IOU_RANGE = (0.1, 1.0)
BOX_SIZE_RANGE = (5.0, 1000.0)


@dataclass(frozen=True)
class DetectionConfigSnapshot:
    confidence_threshold: float
    iou_threshold: float
    min_box_size: float
    max_box_size: float


@dataclass
class DetectionConfig:
    """
    Filtering thresholds for the detection pipeline.

    Shared and mutable: a UI may change the values between frames (sliders).
    Each pipeline run reads them once through `snapshot()`.

    Class scores are compared as-is against `confidence_threshold`. The model
    must therefore emit probabilities; if an export emits logits, apply
    sigmoid/softmax to the score rows before handing the tensor to the
    pipeline.

    Box sizes are in model-input pixels (e.g. [0, 640]) and are checked before
    the coordinate transform.
    """

    confidence_threshold: float = 0.25
    iou_threshold: float = 0.45
    min_box_size: float = 10.0
    max_box_size: float = 600.0

    def snapshot(self) -> DetectionConfigSnapshot:
        return DetectionConfigSnapshot(
            confidence_threshold=float(self.confidence_threshold),
            iou_threshold=float(self.iou_threshold),
            min_box_size=float(self.min_box_size),
            max_box_size=float(self.max_box_size),
        )

    def validate(self) -> "DetectionConfig":
        lo, hi = CONFIDENCE_RANGE
        if not lo <= self.confidence_threshold <= hi:
            raise ValueError(f"confidence_threshold must be in [{lo}, {hi}]")
        lo, hi = IOU_RANGE
        if not lo <= self.iou_threshold <= hi:
            raise ValueError(f"iou_threshold must be in [{lo}, {hi}]")
        lo, hi = BOX_SIZE_RANGE
        if not lo <= self.min_box_size <= hi:
            raise ValueError(f"min_box_size must be in [{lo}, {hi}]")
        if not lo <= self.max_box_size <= hi:
            raise ValueError(f"max_box_size must be in [{lo}, {hi}]")
        if self.min_box_size >= self.max_box_size:
            raise ValueError("min_box_size must be < max_box_size")
        return self


def _require_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def load_detection_config(path: Union[str, Path]) -> DetectionConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detection config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detection config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detection config must be a JSON object")

    defaults = DetectionConfig()
    allowed = {"confidence_threshold", "iou_threshold", "min_box_size", "max_box_size"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detection config keys: {unknown}")

    cfg = DetectionConfig(
        confidence_threshold=_require_number(payload, "confidence_threshold", defaults.confidence_threshold),
        iou_threshold=_require_number(payload, "iou_threshold", defaults.iou_threshold),
        min_box_size=_require_number(payload, "min_box_size", defaults.min_box_size),
        max_box_size=_require_number(payload, "max_box_size", defaults.max_box_size),
    )
    return cfg.validate()
