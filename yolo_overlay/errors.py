"""
Error taxonomy for the detection pipeline.

- ShapeMismatch: tensor dimensions disagree with the declared layout; fatal for
  the frame only.
- OutOfRange: an index outside the tensor. Indicates a bug, never caught.
- ModelUnavailable: the inference collaborator could not produce a tensor.
"""

from __future__ import annotations


class DetectionError(Exception):
    """Base class for pipeline errors."""


class ShapeMismatch(DetectionError, ValueError):
    pass


class OutOfRange(DetectionError, IndexError):
    pass


class ModelUnavailable(DetectionError, RuntimeError):
    pass
