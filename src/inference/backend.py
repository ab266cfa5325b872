"""
Detection model interface.

A model takes a batched NHWC float tensor and returns an ordered list of output
tensors. The first three outputs are interpreted as boxes, scores and classes
(the layout of YOLO graphs exported with NMS baked in).
"""

from __future__ import annotations

from typing import Protocol, Sequence, Tuple

import numpy as np


class DetectionModel(Protocol):
    @property
    def input_shape(self) -> Sequence[int]:
        """Expected input shape as [1, height, width, 3]."""
        ...

    def execute(self, tensor: np.ndarray) -> Sequence[np.ndarray]:
        ...


def model_input_size(model: DetectionModel) -> Tuple[int, int]:
    """Return the (width, height) a model expects."""
    shape = list(model.input_shape)
    if len(shape) != 4:
        raise ValueError(f"Expected a 4-D model input shape, got {shape}")
    return int(shape[2]), int(shape[1])


def split_outputs(outputs: Sequence[np.ndarray]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Read the first three outputs as flat arrays.

    Returns:
        (boxes, scores, classes) where boxes holds 4 values per detection.
    """
    if len(outputs) < 3:
        raise ValueError(
            f"Model returned {len(outputs)} outputs; expected at least 3 (boxes, scores, classes)"
        )
    boxes, scores, classes = (np.asarray(t).ravel() for t in outputs[:3])
    return boxes, scores, classes
