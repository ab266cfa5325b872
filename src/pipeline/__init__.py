"""
Pipeline module for the frame detector.

The pipeline drives detection over video:
- Frame acquisition from observation sources
- One detection pass per tick, strictly sequential
- Detection callbacks and overlay updates
"""

from .engine import (
    VideoDetector,
    VideoDetectorConfig,
    VideoDetectorStats,
    VideoDetectionHandle,
    FrameClock,
)

__all__ = [
    "VideoDetector",
    "VideoDetectorConfig",
    "VideoDetectorStats",
    "VideoDetectionHandle",
    "FrameClock",
]
