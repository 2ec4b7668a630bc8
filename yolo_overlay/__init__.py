"""
Post-processing for YOLO-style detectors: decode a raw (1, 4 + C, N) output
tensor into labeled, display-space boxes for overlay rendering.

The core (tensor view, extraction, NMS, coordinate mapping, pipeline) needs
only NumPy. OpenCV is used for frame preprocessing and drawing, ONNX Runtime
for the optional inference backend.
"""

from .types import Candidate, Detection, Rect
from .errors import DetectionError, ModelUnavailable, OutOfRange, ShapeMismatch
from .tensor_view import TensorView
from .config import DetectionConfig, DetectionConfigSnapshot, load_detection_config
from .extract import CandidateExtractor, extract
from .nms import iou, nms, suppress
from .geometry import AxisConvention, CoordinateMapper, FitPolicy, GeometryContext, map_to_display
from .labels import COCO_CLASSES, LabelTable, load_class_names
from .pipeline import DetectionPipeline
from .preprocess import center_crop, letterbox, prepare_frame
from .runtime import FrameDetector, load_detector, resolve_path
from .visualize import draw_detections
from .log import setup_logging

__all__ = [
    "Candidate",
    "Detection",
    "Rect",
    "DetectionError",
    "ModelUnavailable",
    "OutOfRange",
    "ShapeMismatch",
    "TensorView",
    "DetectionConfig",
    "DetectionConfigSnapshot",
    "load_detection_config",
    "CandidateExtractor",
    "extract",
    "iou",
    "nms",
    "suppress",
    "AxisConvention",
    "CoordinateMapper",
    "FitPolicy",
    "GeometryContext",
    "map_to_display",
    "COCO_CLASSES",
    "LabelTable",
    "load_class_names",
    "DetectionPipeline",
    "center_crop",
    "letterbox",
    "prepare_frame",
    "FrameDetector",
    "load_detector",
    "resolve_path",
    "draw_detections",
    "setup_logging",
]
