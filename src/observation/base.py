"""
ObservationSource interface for pluggable video/image sources.

This defines the contract that all observation sources must implement,
enabling the frame loop to work with any video source:
- USB/CSI cameras
- RTSP/IP cameras
- Video files
- Image files and sequences

Besides frames, a source reports liveness: a source whose width is 0 and
which has no active stream is closed, and the frame loop stops on it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.
    
    Attributes:
        source_id: Unique identifier for this source (e.g., "cam-01", "lobby-feed").
        resolution: Target resolution as (width, height). None = use source default.
        fps: Target frames per second. None = use source default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for observation sources.
    
    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() repeatedly to get frames
        4. Call close() to release resources
    
    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0
        self._width = 0
        self._height = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source has an active stream."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Current frame index (number of frames read since open)."""
        return self._frame_index

    @property
    def width(self) -> int:
        """Width of the current stream in pixels; 0 when unknown or closed."""
        return self._width

    @property
    def height(self) -> int:
        """Height of the current stream in pixels; 0 when unknown or closed."""
        return self._height

    @property
    def is_closed(self) -> bool:
        """True once the source has no dimensions and no active stream."""
        return self.width == 0 and not self.is_open

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the observation source.
        
        Must be called before read().
        
        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Read the next frame from the source.
        
        Returns:
            FrameData, or None if no frame is available right now.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close/release the observation source.
        
        Implementations must reset width/height to 0. Safe to call multiple times.
        """
        pass

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """
        Iterate over frames until the source is exhausted or closed.
        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")
        
        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
