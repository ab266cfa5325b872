"""
Detection Module

Preprocessing, single-frame detection, and box decoding/rendering.
"""

from .preprocess import preprocess, pad_to_square
from .detector import detect_image, detect_frame
from .renderer import BoxRenderer, Overlay, render_boxes
from .labels import COCO_LABELS, load_labels

__all__ = [
    'preprocess',
    'pad_to_square',
    'detect_image',
    'detect_frame',
    'BoxRenderer',
    'Overlay',
    'render_boxes',
    'COCO_LABELS',
    'load_labels',
]
