from __future__ import annotations

import dataclasses
import logging
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DetectionConfig
from .errors import ModelUnavailable, ShapeMismatch
from .geometry import AxisConvention, FitPolicy
from .labels import LabelTable
from .pipeline import DetectionPipeline
from .preprocess import prepare_frame
from .types import Detection

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git", "requirements.txt"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve relative model paths.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class FrameDetector:
    """
    Caller-side frame loop glue: preprocess -> inference -> DetectionPipeline.

    At most one frame is processed at a time. A frame that arrives while
    another is in flight, or sooner than `min_interval` seconds after the last
    accepted one, is skipped and `detect` returns None. Per-frame failures
    (inference errors, tensor shape mismatches) are logged and yield an empty
    list; the next frame starts fresh.

    `config` is shared with whoever adjusts the thresholds; it may be mutated
    between frames.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        *,
        pipeline: Optional[DetectionPipeline] = None,
        config: Optional[DetectionConfig] = None,
        num_classes: int = 80,
        model_dimension: int = 640,
        fit_policy: Union[FitPolicy, str] = FitPolicy.ASPECT_FIT_LETTERBOX,
        axis_convention: Union[AxisConvention, str] = AxisConvention.XY,
        min_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        backend: Optional[object] = None,
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.pipeline = pipeline if pipeline is not None else DetectionPipeline()
        self.config = config if config is not None else DetectionConfig()
        self.num_classes = num_classes
        self.model_dimension = model_dimension
        self.fit_policy = FitPolicy(fit_policy)
        self.axis_convention = AxisConvention(axis_convention)
        self.min_interval = float(min_interval)
        self._clock = clock
        self._in_flight = threading.Lock()
        self._last_accepted: Optional[float] = None

    @property
    def busy(self) -> bool:
        return self._in_flight.locked()

    def _accept(self) -> bool:
        now = self._clock()
        if self._last_accepted is not None and now - self._last_accepted < self.min_interval:
            return False
        self._last_accepted = now
        return True

    def infer(self, blob: np.ndarray) -> np.ndarray:
        try:
            preds = self._infer_fn(blob)
        except ModelUnavailable:
            raise
        except Exception as e:
            raise ModelUnavailable(f"Inference failed: {e}") from e
        if preds is None:
            raise ModelUnavailable("Inference produced no output tensor.")
        return preds

    def detect(
        self,
        image_bgr: np.ndarray,
        dest_size: Optional[Tuple[float, float]] = None,
    ) -> Optional[List[Detection]]:
        """
        Run one frame. `dest_size` (width, height) maps the boxes onto a
        display of that size instead of the frame itself.
        """

        if not self._in_flight.acquire(blocking=False):
            logger.debug("Frame skipped: previous frame still in flight")
            return None
        try:
            if not self._accept():
                return None

            prepared = prepare_frame(
                image_bgr,
                model_dimension=self.model_dimension,
                fit_policy=self.fit_policy,
                axis_convention=self.axis_convention,
            )
            geometry = prepared.geometry
            if dest_size is not None:
                geometry = dataclasses.replace(geometry, dest_width=dest_size[0], dest_height=dest_size[1])

            try:
                preds = self.infer(prepared.blob)
                return self.pipeline.run(preds, self.num_classes, self.config, geometry)
            except ModelUnavailable as e:
                logger.error("Model unavailable, no detections for this frame: %s", e)
                return []
            except ShapeMismatch as e:
                logger.error("Unexpected model output shape, no detections for this frame: %s", e)
                return []
        finally:
            self._in_flight.release()

    __call__ = detect


def load_detector(
    model_path: PathLike,
    *,
    root: Optional[PathLike] = "auto",
    labels: Optional[LabelTable] = None,
    config: Optional[DetectionConfig] = None,
    num_classes: Optional[int] = None,
    model_dimension: Optional[int] = None,
    fit_policy: Union[FitPolicy, str] = FitPolicy.ASPECT_FIT_LETTERBOX,
    axis_convention: Union[AxisConvention, str] = AxisConvention.XY,
    min_interval: float = 0.0,
    onnx_providers: Optional[Sequence[str]] = None,
) -> FrameDetector:
    """
    Build a FrameDetector around an ONNX model on disk.

    `num_classes` and `model_dimension` default to what the model declares.
    Relative paths resolve against the project root by default. A missing
    model file or a missing onnxruntime raises ModelUnavailable.
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    resolved = resolve_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Unsupported model format '{resolved.suffix}'. Export the model to ONNX.")

    try:
        backend = OnnxRuntimeBackend(resolved, OnnxRuntimeBackendConfig(providers=onnx_providers))
    except (ImportError, FileNotFoundError) as e:
        raise ModelUnavailable(str(e)) from e
    logger.info("Loaded %s (providers: %s)", resolved, ", ".join(backend.providers_in_use))

    labels = labels if labels is not None else LabelTable.coco()
    if num_classes is None:
        out_shape = backend.output_shape
        channels = out_shape[-2] if len(out_shape) >= 2 else None
        num_classes = channels - 4 if isinstance(channels, int) and channels > 4 else len(labels)
    if model_dimension is None:
        model_dimension = backend.input_dimension or 640

    return FrameDetector(
        backend.infer,
        backend=backend,
        pipeline=DetectionPipeline(labels),
        config=config,
        num_classes=num_classes,
        model_dimension=model_dimension,
        fit_policy=fit_policy,
        axis_convention=axis_convention,
        min_interval=min_interval,
    )
