from __future__ import annotations

from typing import Iterator, Union

import numpy as np

from .config import DetectionConfig, DetectionConfigSnapshot
from .errors import ShapeMismatch
from .tensor_view import BOX_CHANNELS, TensorView
from .types import Candidate, Rect

ConfigLike = Union[DetectionConfig, DetectionConfigSnapshot]


def _as_snapshot(config: ConfigLike) -> DetectionConfigSnapshot:
    if isinstance(config, DetectionConfigSnapshot):
        return config
    return config.snapshot()


def extract(view: TensorView, num_classes: int, config: ConfigLike) -> Iterator[Candidate]:
    """
    Yield the anchors that pass the validity, size and confidence filters,
    in anchor order.

    Per anchor: w/h must be > 0 and inside [min_box_size, max_box_size]; the
    best class is the first maximum over the score rows; the score must be
    strictly greater than confidence_threshold. Scores are not normalised.
    """

    cfg = _as_snapshot(config)
    if num_classes < 1 or BOX_CHANNELS + num_classes > view.num_channels:
        raise ShapeMismatch(f"num_classes={num_classes} does not fit a tensor with {view.num_channels} channels.")
    cx, cy, w, h = view.boxes()
    scores = view.class_scores(num_classes)

    valid = (w > 0) & (h > 0)
    valid &= (w >= cfg.min_box_size) & (h >= cfg.min_box_size)
    valid &= (w <= cfg.max_box_size) & (h <= cfg.max_box_size)
    anchors = np.flatnonzero(valid)
    if anchors.size == 0:
        return

    sub = scores[:, anchors]
    # argmax returns the first maximum, so ties go to the lowest class index.
    best_cls = np.argmax(sub, axis=0)
    best_score = sub[best_cls, np.arange(anchors.size)]
    passed = best_score > cfg.confidence_threshold

    for a, cls_id, score in zip(anchors[passed], best_cls[passed], best_score[passed]):
        yield Candidate(
            box=Rect.from_center(cx[a], cy[a], w[a], h[a]),
            class_index=int(cls_id),
            score=float(score),
            anchor=int(a),
        )


class CandidateExtractor:
    """Extractor bound to one config snapshot."""

    def __init__(self, config: ConfigLike):
        self.cfg = _as_snapshot(config)

    def __call__(self, view: TensorView, num_classes: int) -> Iterator[Candidate]:
        return extract(view, num_classes, self.cfg)
