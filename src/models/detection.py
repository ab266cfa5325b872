"""
Detection models for decoded model outputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in source-frame pixel coordinates.
    
    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))

    def clip(self, width: float, height: float) -> "BoundingBox":
        """Clamp the box to a width x height frame."""
        return BoundingBox(
            x1=min(max(self.x1, 0.0), width),
            y1=min(max(self.y1, 0.0), height),
            x2=min(max(self.x2, 0.0), width),
            y2=min(max(self.y2, 0.0), height),
        )

    @classmethod
    def from_normalized(
        cls,
        coords: Tuple[float, float, float, float],
        width: float,
        height: float,
        ratios: Tuple[float, float],
    ) -> "BoundingBox":
        """
        Map a box normalized to the padded model square back to source pixels.
        
        The model sees the frame padded to max(width, height) on both axes, so a
        normalized x maps to x * width * x_ratio (== x * max_size).
        """
        x_ratio, y_ratio = ratios
        x1, y1, x2, y2 = coords
        return cls(
            x1=float(x1) * width * x_ratio,
            y1=float(y1) * height * y_ratio,
            x2=float(x2) * width * x_ratio,
            y2=float(y2) * height * y_ratio,
        )


@dataclass(frozen=True)
class Detection:
    """
    A decoded (box, score, class) triple that survived the confidence threshold.
    
    Attributes:
        bbox: Bounding box in source-frame pixel coordinates.
        confidence: Detection confidence score (0-1).
        class_id: Class index reported by the model.
        class_name: Human-readable class name.
    """
    bbox: BoundingBox
    confidence: float = 1.0
    class_id: Optional[int] = None
    class_name: Optional[str] = None

    @property
    def x1(self) -> float:
        return self.bbox.x1

    @property
    def y1(self) -> float:
        return self.bbox.y1

    @property
    def x2(self) -> float:
        return self.bbox.x2

    @property
    def y2(self) -> float:
        return self.bbox.y2

    @property
    def label(self) -> str:
        name = self.class_name if self.class_name is not None else str(self.class_id)
        return f"{name} - {self.confidence * 100:.1f}%"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bbox": list(self.bbox.as_tuple()),
            "confidence": self.confidence,
            "class_id": self.class_id,
            "class_name": self.class_name,
        }
