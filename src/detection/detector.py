"""
Single-frame detection pass.

preprocess -> model.execute -> first three outputs -> renderer, with every
tensor allocated on the way owned by one TensorScope. The scope is released on
every exit path, including when the model raises.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from inference.backend import DetectionModel, model_input_size, split_outputs
from inference.scope import TensorScope
from models.detection import Detection
from .preprocess import preprocess
from .renderer import BoxRenderer, Overlay


def detect_frame(
    frame: np.ndarray,
    model: DetectionModel,
    threshold: float,
    overlay: Overlay,
    renderer: BoxRenderer,
    scope: TensorScope,
    bgr: bool = True,
) -> List[Detection]:
    """Run one detection pass inside a caller-owned scope."""
    model_width, model_height = model_input_size(model)
    h, w = frame.shape[:2]
    overlay.ensure_size(w, h)

    tensor, x_ratio, y_ratio = preprocess(frame, model_width, model_height, scope=scope, bgr=bgr)
    outputs = scope.track_all(model.execute(tensor))
    boxes, scores, classes = split_outputs(outputs)

    return renderer.render(overlay, threshold, boxes, scores, classes, (x_ratio, y_ratio))


def detect_image(
    frame: np.ndarray,
    model: DetectionModel,
    threshold: float,
    overlay: Overlay,
    renderer: Optional[BoxRenderer] = None,
    bgr: bool = True,
) -> List[Detection]:
    """
    Detect objects in a single image and render them onto the overlay.

    Args:
        frame: Image as an [H, W, C] uint8 array.
        model: Loaded detection model.
        threshold: Confidence threshold in [0, 1].
        overlay: Render target; resized to the image if needed.
        renderer: Box renderer (COCO labels when omitted).
        bgr: Whether the frame is in OpenCV's BGR order.

    Returns:
        Detections that passed the threshold.
    """
    renderer = renderer or BoxRenderer()
    with TensorScope("detect-image") as scope:
        detections = detect_frame(frame, model, threshold, overlay, renderer, scope, bgr=bgr)
    logging.debug(f"Image detection: {len(detections)} objects above {threshold}")
    return detections
