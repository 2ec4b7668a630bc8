from __future__ import annotations

import logging
from typing import Callable, List, Optional, Union

from .config import DetectionConfig, DetectionConfigSnapshot
from .errors import ShapeMismatch
from .extract import extract
from .geometry import CoordinateMapper, GeometryContext
from .labels import LabelTable
from .nms import suppress
from .tensor_view import BOX_CHANNELS, TensorView
from .types import Detection

logger = logging.getLogger(__name__)

LabelLookup = Union[LabelTable, Callable[[int], str]]


class DetectionPipeline:
    """
    Tensor -> labeled display-space detections for one frame:

        TensorView -> extract -> suppress (model space) -> map -> label

    The pipeline holds no per-frame state; `run` is a pure function of its
    arguments and may be called from any thread, one frame at a time.
    """

    def __init__(
        self,
        labels: Optional[LabelLookup] = None,
        *,
        class_agnostic_nms: bool = True,
        max_detections: Optional[int] = None,
    ):
        self.labels = labels if labels is not None else LabelTable.coco()
        self.class_agnostic_nms = class_agnostic_nms
        self.max_detections = max_detections

    def run(
        self,
        tensor,
        num_classes: int,
        config: Union[DetectionConfig, DetectionConfigSnapshot],
        ctx: GeometryContext,
    ) -> List[Detection]:
        # Read the shared config once; the UI may change it mid-frame.
        cfg = config if isinstance(config, DetectionConfigSnapshot) else config.snapshot()

        view = TensorView(tensor)
        expected = BOX_CHANNELS + int(num_classes)
        if view.num_channels < expected:
            raise ShapeMismatch(
                f"Tensor has {view.num_channels} channels, {expected} needed for {num_classes} classes."
            )
        if view.num_channels > expected:
            logger.warning(
                "Tensor has %d channels but %d classes were declared; skipping frame.",
                view.num_channels,
                num_classes,
            )
            return []

        candidates = extract(view, num_classes, cfg)
        kept = suppress(
            candidates,
            cfg.iou_threshold,
            max_detections=self.max_detections,
            class_agnostic=self.class_agnostic_nms,
        )

        mapper = CoordinateMapper(ctx)
        detections = [
            Detection(
                label=self.labels(c.class_index),
                confidence=c.score,
                box=mapper.map(c.box),
                class_index=c.class_index,
            )
            for c in kept
        ]
        logger.debug("%d anchors -> %d detections", view.num_anchors, len(detections))
        return detections

    __call__ = run
