"""
Still-image observation source.

Serves one frame per image path, then closes. Useful for single-image
detection and for running the frame loop over an image sequence.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

import cv2

from models.frame import FrameData
from .base import ObservationSource, ObservationConfig


def load_image(path: str, source_id: Optional[str] = None) -> FrameData:
    """Read an image file into FrameData (BGR)."""
    frame = cv2.imread(path, cv2.IMREAD_COLOR)
    if frame is None:
        raise ValueError(f"Could not read image: {path}")
    return FrameData.from_numpy(frame, timestamp=time.time(), source=source_id or path)


@dataclass
class ImageSourceConfig(ObservationConfig):
    """
    Attributes:
        paths: Image files to serve, in order.
    """
    paths: List[str] = field(default_factory=list)


class ImageSource(ObservationSource):
    def __init__(self, config: ImageSourceConfig):
        super().__init__(config)
        self._paths = list(config.paths)
        self._pos = 0

    def open(self) -> None:
        if not self._paths:
            raise RuntimeError("ImageSource has no image paths")
        self._is_open = True
        self._pos = 0
        self._frame_index = 0
        logging.info(f"ImageSource opened: source_id={self.source_id}, images={len(self._paths)}")

    def read(self) -> Optional[FrameData]:
        if not self._is_open:
            return None
        if self._pos >= len(self._paths):
            self.close()
            return None

        path = self._paths[self._pos]
        self._pos += 1
        frame_data = load_image(path, source_id=self.source_id)
        self._frame_index += 1
        frame_data.frame_index = self._frame_index
        self._width, self._height = frame_data.size
        return frame_data

    def close(self) -> None:
        was_open = self._is_open
        self._is_open = False
        self._width = 0
        self._height = 0
        if was_open:
            logging.info(f"ImageSource closed: source_id={self.source_id}")
