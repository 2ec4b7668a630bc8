from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

import numpy as np

from .types import Candidate, Rect


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    max_detections: Optional[int] = None


def iou(a: Rect, b: Rect) -> float:
    """
    Intersection over union of two boxes in the same space (model-space
    candidate boxes during NMS). Returns 0 for disjoint boxes and for
    degenerate (area <= 0) boxes. `suppress` makes the same decision.
    """

    area_a = a.area
    area_b = b.area
    if area_a <= 0 or area_b <= 0:
        return 0.0
    ax1, ay1, ax2, ay2 = a.as_xyxy()
    bx1, by1, bx2, by2 = b.as_xyxy()
    iw = min(ax2, bx2) - max(ax1, bx1)
    ih = min(ay2, by2) - max(ay1, by1)
    if iw <= 0 or ih <= 0:
        return 0.0
    inter = iw * ih
    return inter / (area_a + area_b - inter)


def _xyxy(candidates: List[Candidate]) -> np.ndarray:
    return np.array([c.box.as_xyxy() for c in candidates], dtype=np.float64).reshape(-1, 4)


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, highest score first.

    The sort is stable, so equal scores keep their input order. A box is
    dropped when its IoU with a kept box is >= iou_threshold.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    areas = np.clip(x2 - x1, 0.0, None) * np.clip(y2 - y1, 0.0, None)

    order = np.argsort(-scores, kind="stable")
    keep = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[0]
        keep.append(i)
        rest = order[1:]

        xx1 = np.maximum(x1[i], x1[rest])
        yy1 = np.maximum(y1[i], y1[rest])
        xx2 = np.minimum(x2[i], x2[rest])
        yy2 = np.minimum(y2[i], y2[rest])

        inter = np.maximum(0.0, xx2 - xx1) * np.maximum(0.0, yy2 - yy1)
        union = areas[i] + areas[rest] - inter
        valid = (areas[i] > 0) & (areas[rest] > 0) & (union > 0)
        overlap = np.divide(inter, union, out=np.zeros_like(inter), where=valid)

        order = rest[overlap < cfg.iou_threshold]

    return np.array(keep, dtype=np.int64)


def suppress(
    candidates: Iterable[Candidate],
    iou_threshold: float,
    max_detections: Optional[int] = None,
    class_agnostic: bool = True,
) -> List[Candidate]:
    """
    Greedy NMS over model-space candidates.

    Class-agnostic by default: boxes of different classes suppress each other.
    With `class_agnostic=False` each class is suppressed on its own and the
    survivors are merged by score.
    """

    items = list(candidates)
    if not items:
        return []

    boxes = _xyxy(items)
    scores = np.array([c.score for c in items], dtype=np.float64)
    cfg = NMSConfig(iou_threshold=iou_threshold, max_detections=max_detections)

    if class_agnostic:
        return [items[i] for i in nms(boxes, scores, cfg)]

    class_ids = np.array([c.class_index for c in items])
    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.flatnonzero(class_ids == cls)
        kept.extend(idx[nms(boxes[idx], scores[idx], cfg)].tolist())

    kept.sort(key=lambda i: (-scores[i], i))
    if max_detections is not None:
        kept = kept[:max_detections]
    return [items[i] for i in kept]
