"""
Box decoding and overlay rendering.

The renderer is the only place the confidence threshold is applied: detectors
hand it the raw, unfiltered model buffers.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from models.detection import BoundingBox, Detection
from .labels import load_labels


# Ultralytics palette, stored as BGR
_PALETTE_HEX = [
    "FF3838", "FF9D97", "FF701F", "FFB21D", "CFD231", "48F90A", "92CC17", "3DDB86",
    "1A9334", "00D4BB", "2C99A8", "00C2FF", "344593", "6473FF", "0018EC", "8438FF",
    "520085", "CB38FF", "FF95C8", "FF37C7",
]
PALETTE: List[Tuple[int, int, int]] = [
    (int(h[4:6], 16), int(h[2:4], 16), int(h[0:2], 16)) for h in _PALETTE_HEX
]


def class_color(class_id: int) -> Tuple[int, int, int]:
    return PALETTE[int(class_id) % len(PALETTE)]


class Overlay:
    """
    Render target the size of the source frame.

    Boxes are drawn onto a separate canvas with a coverage mask so the overlay
    can be cleared or composited onto any frame without touching the frame.
    """

    def __init__(self, width: int = 0, height: int = 0):
        self.width = 0
        self.height = 0
        self.canvas = np.zeros((0, 0, 3), dtype=np.uint8)
        self.mask = np.zeros((0, 0), dtype=np.uint8)
        self.detections: List[Detection] = []
        self.ensure_size(width, height)

    def ensure_size(self, width: int, height: int) -> None:
        """Reallocate when the source size changed."""
        if (width, height) == (self.width, self.height):
            return
        self.width = int(width)
        self.height = int(height)
        self.canvas = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        self.mask = np.zeros((self.height, self.width), dtype=np.uint8)
        self.detections = []

    @property
    def is_empty(self) -> bool:
        return not self.detections and not self.mask.any()

    def clear(self) -> None:
        self.canvas[...] = 0
        self.mask[...] = 0
        self.detections = []

    def composite(self, frame: np.ndarray) -> np.ndarray:
        """
        Return a BGR copy of frame with the overlay drawn on top.

        Grayscale and BGRA frames are converted to BGR first.
        """
        if frame.ndim == 2 or frame.shape[2] == 1:
            out = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        elif frame.shape[2] == 4:
            out = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
        else:
            out = frame.copy()
        if out.shape[:2] != self.mask.shape:
            return out
        covered = self.mask > 0
        out[covered] = self.canvas[covered]
        return out


def _draw(
    overlay: Overlay,
    bbox: BoundingBox,
    label: str,
    color: Tuple[int, int, int],
    line_width: int,
) -> None:
    x1, y1, x2, y2 = bbox.as_int_tuple()
    for target, value in ((overlay.canvas, color), (overlay.mask, 255)):
        cv2.rectangle(target, (x1, y1), (x2, y2), value, line_width)

    # Label with background, inside the box when it would leave the frame
    font = cv2.FONT_HERSHEY_SIMPLEX
    (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
    top = y1 - th - 6 if y1 - th - 6 >= 0 else y1
    for target, value in ((overlay.canvas, color), (overlay.mask, 255)):
        cv2.rectangle(target, (x1, top), (x1 + tw + 4, top + th + 6), value, -1)
    cv2.putText(overlay.canvas, label, (x1 + 2, top + th + 2), font, 0.5, (255, 255, 255), 1)


def render_boxes(
    overlay: Overlay,
    threshold: float,
    boxes: Sequence[float],
    scores: Sequence[float],
    classes: Sequence[float],
    ratios: Tuple[float, float],
    labels: Optional[Dict[int, str]] = None,
    line_width: int = 2,
) -> List[Detection]:
    """
    Decode raw model buffers and draw the surviving boxes.

    Args:
        overlay: Render target, sized like the source frame. Cleared first.
        threshold: Minimum score (inclusive) for a detection to be kept.
        boxes: Flat buffer of normalized (x1, y1, x2, y2), 4 values per detection.
        scores: Flat buffer of scores, one per detection.
        classes: Flat buffer of class ids, one per detection.
        ratios: (x_ratio, y_ratio) from preprocessing of the same frame.
        labels: Class id -> name mapping.
        line_width: Box outline thickness in pixels.

    Returns:
        Detections in source-frame pixel coordinates, in model output order.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be between 0 and 1, got {threshold}")

    boxes = np.asarray(boxes, dtype=np.float32).ravel()
    scores = np.asarray(scores, dtype=np.float32).ravel()
    classes = np.asarray(classes).ravel()
    if boxes.size < scores.size * 4 or classes.size < scores.size:
        raise ValueError(
            f"Misaligned model outputs: boxes={boxes.size}, scores={scores.size}, "
            f"classes={classes.size}"
        )

    overlay.clear()
    detections: List[Detection] = []
    for i in range(scores.size):
        score = float(scores[i])
        if score < threshold:
            continue
        class_id = int(classes[i])
        class_name = (labels or {}).get(class_id, str(class_id))
        bbox = BoundingBox.from_normalized(
            tuple(boxes[i * 4:(i + 1) * 4]), overlay.width, overlay.height, ratios
        ).clip(overlay.width, overlay.height)
        det = Detection(bbox=bbox, confidence=score, class_id=class_id, class_name=class_name)
        _draw(overlay, bbox, det.label, class_color(class_id), line_width)
        detections.append(det)

    overlay.detections = detections
    return detections


class BoxRenderer:
    """
    Renderer bound to a label set and drawing style.

    Example:
        renderer = BoxRenderer(labels=load_labels("labels.yaml"))
        detections = renderer.render(overlay, 0.25, boxes, scores, classes, (x_ratio, y_ratio))
    """

    def __init__(self, labels: Optional[Dict[int, str]] = None, line_width: int = 2):
        self.labels = labels if labels is not None else load_labels()
        self.line_width = line_width

    def render(
        self,
        overlay: Overlay,
        threshold: float,
        boxes: Sequence[float],
        scores: Sequence[float],
        classes: Sequence[float],
        ratios: Tuple[float, float],
    ) -> List[Detection]:
        return render_boxes(
            overlay, threshold, boxes, scores, classes, ratios,
            labels=self.labels, line_width=self.line_width,
        )

    def clear(self, overlay: Overlay) -> None:
        overlay.clear()
