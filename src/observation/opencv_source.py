"""
OpenCV-based observation source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- RTSP/HTTP streams (device_id as str URL)
- Video files (device_id as file path)

A video file closes itself once its last frame has been read, so the frame
loop sees the source go away the same way a closed camera stream does.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2

from models.frame import FrameData
from .base import ObservationSource, ObservationConfig
from .rtsp_utils import is_stream_url, sanitize_url


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.

    Attributes:
        device_id: Camera index (int), stream URL (str), or file path (str).
        max_retries: Attempts at opening the capture before giving up.
        max_reconnects: Consecutive failed reads on a camera or stream that
            trigger a reconnect before reads are reported as failures.
    """
    device_id: Union[int, str] = 0
    max_retries: int = 3
    max_reconnects: int = 3

    @classmethod
    def from_source_config(cls, source_cfg: Dict[str, Any], source_id: str = "video") -> "OpenCVSourceConfig":
        """Create OpenCVSourceConfig from the `source` section of config.yaml."""
        resolution = source_cfg.get("resolution")
        return cls(
            source_id=source_id,
            resolution=tuple(resolution) if resolution else None,
            fps=source_cfg.get("fps"),
            device_id=source_cfg.get("device_id", 0),
            max_retries=source_cfg.get("max_retries") or 3,
            max_reconnects=source_cfg.get("max_reconnects") or 3,
        )


class OpenCVSource(ObservationSource):
    """
    Camera, stream or video file read through cv2.VideoCapture.

    The reported size follows the capture: it is taken from the capture
    properties on open, from each frame read, and drops to 0x0 on close.

    Example:
        with OpenCVSource(OpenCVSourceConfig(device_id="clip.mp4")) as source:
            for frame_data in source:
                process(frame_data.frame)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._read_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_stream(self) -> bool:
        return is_stream_url(self.device_id)

    @property
    def is_file(self) -> bool:
        return (
            isinstance(self.device_id, str) and
            not self.is_stream and
            os.path.exists(self.device_id)
        )

    def open(self) -> None:
        if self._is_open:
            return

        self._connect()
        self._is_open = True
        self._frame_index = 0

        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={sanitize_url(self.device_id)}, size={self._width}x{self._height}"
        )

    def _connect(self) -> None:
        """Open the capture, backing off between attempts."""
        self._release_capture()
        attempts = max(1, self._opencv_config.max_retries)

        for attempt in range(attempts):
            if attempt > 0:
                wait_time = min(2 ** attempt, 10)
                logging.info(
                    f"Retrying {sanitize_url(self.device_id)} "
                    f"(attempt {attempt + 1}/{attempts}) after {wait_time}s"
                )
                time.sleep(wait_time)

            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                self._cap = cap
                break
            cap.release()
            logging.warning(f"Failed to open device {sanitize_url(self.device_id)}")
        else:
            raise RuntimeError(
                f"Failed to open device {sanitize_url(self.device_id)} after {attempts} attempts"
            )

        # Requested capture settings only apply to local cameras
        if isinstance(self.device_id, int) and self._config.resolution:
            w, h = self._config.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if self._config.fps:
                self._cap.set(cv2.CAP_PROP_FPS, self._config.fps)

        self._width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self._height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self._read_failures = 0

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            return self._on_read_failure()

        self._read_failures = 0
        self._frame_index += 1
        self._height, self._width = frame.shape[:2]
        return FrameData(
            frame=frame,
            width=self._width,
            height=self._height,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _on_read_failure(self) -> None:
        if self.is_file:
            logging.info(f"End of video file reached: {self.device_id}")
            self.close()
            return None

        self._read_failures += 1
        if self._read_failures <= self._opencv_config.max_reconnects:
            logging.warning(f"Failed to read frame (failures: {self._read_failures}), reconnecting")
            try:
                self._connect()
            except RuntimeError as e:
                logging.error(f"Reconnect failed: {e}")
                self.close()
        return None

    def _release_capture(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def close(self) -> None:
        self._release_capture()
        was_open = self._is_open
        self._is_open = False
        self._width = 0
        self._height = 0
        if was_open:
            logging.info(f"OpenCVSource closed: source_id={self.source_id}")
