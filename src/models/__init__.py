"""
Typed models for the frame detector.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox
from .config import (
    Config,
    ModelConfig,
    DetectionConfig,
    SourceConfig,
    VideoConfig,
    ON_ERROR_STOP,
    ON_ERROR_SKIP,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    # Config
    "Config",
    "ModelConfig",
    "DetectionConfig",
    "SourceConfig",
    "VideoConfig",
    "ON_ERROR_STOP",
    "ON_ERROR_SKIP",
]
