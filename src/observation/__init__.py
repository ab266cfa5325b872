"""
Observation layer for pluggable video/image sources.

This layer abstracts the source of frames (camera, video file, stream, image
files) from the frame loop. Each source implements the ObservationSource
interface and returns FrameData objects.
"""

from typing import Any, Dict

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .image_source import ImageSource, ImageSourceConfig, load_image

_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".bmp", ".webp", ".tif", ".tiff")


def create_source_from_config(source_cfg: Dict[str, Any], source_id: str = "video") -> ObservationSource:
    """
    Build an observation source from the `source` config section.

    A device_id naming an image file gives an ImageSource; anything else
    (camera index, stream URL, video file) gives an OpenCVSource.
    """
    device_id = source_cfg.get("device_id", 0)
    if isinstance(device_id, str) and device_id.lower().endswith(_IMAGE_EXTENSIONS):
        return ImageSource(ImageSourceConfig(source_id=source_id, paths=[device_id]))
    return OpenCVSource(OpenCVSourceConfig.from_source_config(source_cfg, source_id=source_id))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "ImageSource",
    "ImageSourceConfig",
    "load_image",
    "create_source_from_config",
]
