"""
Class labels for detection models.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import yaml


COCO_LABELS: List[str] = [
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck",
    "boat", "traffic light", "fire hydrant", "stop sign", "parking meter", "bench",
    "bird", "cat", "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra",
    "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove",
    "skateboard", "surfboard", "tennis racket", "bottle", "wine glass", "cup",
    "fork", "knife", "spoon", "bowl", "banana", "apple", "sandwich", "orange",
    "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse",
    "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink",
    "refrigerator", "book", "clock", "vase", "scissors", "teddy bear",
    "hair drier", "toothbrush",
]


def load_labels(
    labels_path: Optional[str] = None,
    overrides: Optional[Dict[int, str]] = None,
) -> Dict[int, str]:
    """
    Build a class id -> name mapping.

    The YAML file may hold a list of names, an {id: name} mapping, or either of
    those under a `names` key (the dataset.yaml layout). Without a file the
    COCO names are used.
    """
    names: Dict[int, str] = {i: n for i, n in enumerate(COCO_LABELS)}

    if labels_path:
        with open(labels_path, "r") as f:
            data = yaml.safe_load(f) or {}
        if isinstance(data, dict) and "names" in data:
            data = data["names"]
        if isinstance(data, list):
            names = {i: str(n) for i, n in enumerate(data)}
        elif isinstance(data, dict):
            names = {int(k): str(v) for k, v in data.items()}
        else:
            raise ValueError(f"Unsupported labels file format: {labels_path}")
        logging.info(f"Loaded {len(names)} class labels from {labels_path}")

    for class_id, name in (overrides or {}).items():
        names[int(class_id)] = name
    return names
