from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

from .geometry import AxisConvention, FitPolicy, GeometryContext


def _cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for frame preprocessing. Install with `pip install opencv-python`.") from e
    return cv2


def _warp(image: np.ndarray, scale: float, offset: Tuple[float, float], size: int, border_mode: int, color=0):
    """
    Resample `image` onto a `size` x `size` canvas with dst = src * scale + offset
    in continuous coordinates (pixel i spans [i, i + 1)). Fractional offsets
    are kept, so the mapping back to the frame is exact.
    """
    cv2 = _cv2()

    shift = 0.5 * scale - 0.5
    m = np.array(
        [[scale, 0.0, offset[0] + shift], [0.0, scale, offset[1] + shift]],
        dtype=np.float64,
    )
    return cv2.warpAffine(
        image,
        m,
        (size, size),
        flags=cv2.INTER_LINEAR,
        borderMode=border_mode,
        borderValue=color,
    )


def letterbox(
    image: np.ndarray,
    size: int = 640,
    color: Tuple[int, int, int] = (114, 114, 114),
) -> Tuple[np.ndarray, float, Tuple[float, float]]:
    """
    Resize to fit inside a `size` x `size` square keeping the aspect ratio and
    pad the shorter side equally on both ends.

    Returns:
        padded: resized + padded image
        ratio: scale applied to the original image
        pad: (dw, dh) left/top padding, possibly fractional
    """
    cv2 = _cv2()

    h, w = image.shape[:2]
    r = min(size / w, size / h)
    dw, dh = (size - w * r) / 2, (size - h * r) / 2
    padded = _warp(image, r, (dw, dh), size, cv2.BORDER_CONSTANT, color)
    return padded, r, (dw, dh)


def center_crop(image: np.ndarray, size: int = 640) -> Tuple[np.ndarray, float, Tuple[float, float]]:
    """
    Crop the centered min(w, h) square and scale it to `size` x `size`.

    Returns:
        cropped: the square model input
        ratio: scale applied to the crop
        offset: (x, y) of the crop's top-left corner in the original image,
            half a pixel when the side difference is odd
    """
    cv2 = _cv2()

    h, w = image.shape[:2]
    crop = min(w, h)
    x0, y0 = (w - crop) / 2, (h - crop) / 2
    ratio = size / crop
    square = _warp(image, ratio, (-x0 * ratio, -y0 * ratio), size, cv2.BORDER_REPLICATE)
    return square, ratio, (x0, y0)


@dataclass(frozen=True)
class PreparedFrame:
    blob: np.ndarray
    geometry: GeometryContext


def prepare_frame(
    image_bgr: np.ndarray,
    model_dimension: int = 640,
    fit_policy: Union[FitPolicy, str] = FitPolicy.ASPECT_FIT_LETTERBOX,
    axis_convention: Union[AxisConvention, str] = AxisConvention.XY,
) -> PreparedFrame:
    """
    Square a BGR frame for inference and record the geometry used, so the
    detections can be mapped back onto the same frame.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    policy = FitPolicy(fit_policy)
    orig_h, orig_w = image_bgr.shape[:2]
    if policy is FitPolicy.ASPECT_FILL_CROP:
        img, _, _ = center_crop(image_bgr, model_dimension)
    else:
        img, _, _ = letterbox(image_bgr, model_dimension)

    # BGR -> RGB, normalize, HWC -> CHW, add batch
    blob = img[:, :, ::-1].astype(np.float32) / 255.0
    blob = np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])

    geometry = GeometryContext(
        dest_width=orig_w,
        dest_height=orig_h,
        model_dimension=model_dimension,
        fit_policy=policy,
        axis_convention=AxisConvention(axis_convention),
    )
    return PreparedFrame(blob=blob, geometry=geometry)
