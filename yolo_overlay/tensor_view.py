from __future__ import annotations

from typing import Optional

import numpy as np

from .errors import OutOfRange, ShapeMismatch

BOX_CHANNELS = 4


class TensorView:
    """
    Read-only accessor over a YOLO output tensor laid out as (1, 4 + C, N):
    rows 0-3 are the center-form box (cx, cy, w, h), rows 4.. are the per-class
    scores, columns are anchors.

    The wrapped array is never copied when an ndarray is passed in; all views
    handed out are marked non-writeable so callers cannot mutate the
    inference output through them.
    """

    def __init__(self, tensor, num_classes: Optional[int] = None):
        arr = np.asarray(tensor)
        if arr.ndim == 3:
            if arr.shape[0] != 1:
                raise ShapeMismatch(f"Batch > 1 is not supported (got shape {arr.shape}).")
            arr = arr[0]
        if arr.ndim != 2:
            raise ShapeMismatch(f"Expected a (1, 4 + C, N) tensor, got shape {arr.shape}.")
        if arr.shape[0] <= BOX_CHANNELS:
            raise ShapeMismatch(f"Tensor has no class-score channels (shape {arr.shape}).")

        view = arr.view()
        view.flags.writeable = False
        self._data = view

        if num_classes is None:
            num_classes = self.num_channels - BOX_CHANNELS
        if num_classes < 1 or BOX_CHANNELS + num_classes > self.num_channels:
            raise ShapeMismatch(
                f"num_classes={num_classes} does not fit a tensor with {self.num_channels} channels."
            )
        self._num_classes = int(num_classes)

    @property
    def num_channels(self) -> int:
        return int(self._data.shape[0])

    @property
    def num_anchors(self) -> int:
        return int(self._data.shape[1])

    @property
    def num_classes(self) -> int:
        return self._num_classes

    @property
    def shape(self):
        return self._data.shape

    def value(self, channel: int, anchor: int) -> float:
        if not 0 <= channel < self.num_channels:
            raise OutOfRange(f"channel {channel} outside [0, {self.num_channels})")
        if not 0 <= anchor < self.num_anchors:
            raise OutOfRange(f"anchor {anchor} outside [0, {self.num_anchors})")
        return float(self._data[channel, anchor])

    def channel(self, index: int) -> np.ndarray:
        if not 0 <= index < self.num_channels:
            raise OutOfRange(f"channel {index} outside [0, {self.num_channels})")
        return self._data[index]

    def boxes(self) -> np.ndarray:
        """(4, N) view: cx, cy, w, h."""
        return self._data[:BOX_CHANNELS]

    def class_scores(self, num_classes: Optional[int] = None) -> np.ndarray:
        """(C, N) view of the class-score rows."""
        n = self._num_classes if num_classes is None else int(num_classes)
        if n < 1 or BOX_CHANNELS + n > self.num_channels:
            raise OutOfRange(f"{n} class channels requested, tensor has {self.num_channels - BOX_CHANNELS}")
        return self._data[BOX_CHANNELS:BOX_CHANNELS + n]
