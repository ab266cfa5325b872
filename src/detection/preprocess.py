"""
Frame preprocessing for the detection model.

The frame is padded to a square on the bottom and right (content stays
top-left aligned), resized bilinearly to the model input and normalized to
[0, 1]. The returned ratios map model-space boxes back to the source frame.
"""

from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from inference.scope import TensorScope


def to_rgb(frame: np.ndarray, bgr: bool = True) -> np.ndarray:
    """Return a 3-channel RGB view of a grayscale, BGR(A) or RGB(A) frame."""
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
    if frame.ndim != 3:
        raise ValueError(f"Expected a 2-D or 3-D frame, got shape {frame.shape}")

    channels = frame.shape[2]
    if channels == 1:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGB)
    if channels == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2RGB if bgr else cv2.COLOR_RGBA2RGB)
    if channels == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB) if bgr else frame
    raise ValueError(f"Unsupported channel count: {channels}")


def pad_to_square(img: np.ndarray) -> Tuple[np.ndarray, int]:
    """Zero-pad bottom and right so both sides equal max(h, w)."""
    h, w = img.shape[:2]
    max_size = max(w, h)
    if h == w:
        return img, max_size
    padded = cv2.copyMakeBorder(
        img, 0, max_size - h, 0, max_size - w, cv2.BORDER_CONSTANT, value=(0, 0, 0)
    )
    return padded, max_size


def preprocess(
    frame: np.ndarray,
    model_width: int,
    model_height: int,
    scope: Optional[TensorScope] = None,
    bgr: bool = True,
) -> Tuple[np.ndarray, float, float]:
    """
    Convert a frame into a model input tensor.

    Args:
        frame: Image as an [H, W, C] or [H, W] uint8 array.
        model_width: Model input width.
        model_height: Model input height.
        scope: Scope that takes ownership of the returned tensor.
        bgr: Whether the frame is in OpenCV's BGR order.

    Returns:
        (input_tensor, x_ratio, y_ratio); input_tensor is float32 with shape
        [1, model_height, model_width, 3].
    """
    with TensorScope("preprocess") as tidy:
        # Intermediates only; the caller's frame passes through untracked
        img = to_rgb(frame, bgr=bgr)
        if img is not frame:
            tidy.track(img)
        h, w = img.shape[:2]

        padded, max_size = pad_to_square(img)
        if padded is not img:
            tidy.track(padded)

        x_ratio = max_size / w
        y_ratio = max_size / h

        resized = tidy.track(
            cv2.resize(padded, (model_width, model_height), interpolation=cv2.INTER_LINEAR)
        )
        tensor = tidy.keep(tidy.track(resized[np.newaxis].astype(np.float32) / 255.0))

    if scope is not None:
        scope.track(tensor)
    return tensor, x_ratio, y_ratio
