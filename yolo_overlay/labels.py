from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Sequence, Tuple, Union

COCO_CLASSES: Tuple[str, ...] = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat", "traffic light",
    "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat", "dog", "horse", "sheep", "cow",
    "elephant", "bear", "zebra", "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove", "skateboard", "surfboard",
    "tennis racket", "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse", "remote", "keyboard", "cell phone",
    "microwave", "oven", "toaster", "sink", "refrigerator", "book", "clock", "vase", "scissors", "teddy bear",
    "hair drier", "toothbrush",
)


def load_class_names(metadata_path: Union[str, Path]) -> Dict[int, str]:
    """
    Load class names from a lightweight metadata YAML file:

        names:
          0: person
          1: bicycle
          ...

    Only the `names:` block is read, so PyYAML is not needed.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # A new top-level key ends the block.
            if not raw[:1].isspace() and not line[:1].isdigit():
                break

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            right = right.strip().strip("'").strip('"')
            if not left.isdigit():
                continue
            names[int(left)] = right

    return names


class LabelTable:
    """
    Class index -> label lookup. Unknown or negative indices resolve to
    `fallback` instead of raising.
    """

    def __init__(self, names: Union[Sequence[str], Mapping[int, str]], fallback: str = "unknown"):
        if isinstance(names, Mapping):
            self._names: Dict[int, str] = {int(k): str(v) for k, v in names.items()}
        else:
            self._names = {i: str(n) for i, n in enumerate(names)}
        self.fallback = fallback

    @classmethod
    def coco(cls) -> "LabelTable":
        return cls(COCO_CLASSES)

    @classmethod
    def from_mapping(cls, names: Mapping[int, str], fallback: str = "unknown") -> "LabelTable":
        return cls(names, fallback=fallback)

    @classmethod
    def from_metadata(cls, metadata_path: Union[str, Path], fallback: str = "unknown") -> "LabelTable":
        return cls(load_class_names(metadata_path), fallback=fallback)

    def name(self, index: int) -> str:
        return self._names.get(int(index), self.fallback)

    __call__ = name

    def __len__(self) -> int:
        return len(self._names)
