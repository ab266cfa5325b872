"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class ModelConfig:
    """Detection model configuration."""
    path: str = ""
    provider: str = "auto"
    device_id: int = 0
    input_size: List[int] = field(default_factory=lambda: [640, 640])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", ""),
            provider=d.get("provider", "auto"),
            device_id=d.get("device_id", 0),
            input_size=d.get("input_size", [640, 640]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "provider": self.provider,
            "device_id": self.device_id,
            "input_size": self.input_size,
        }


@dataclass
class DetectionConfig:
    """Box decoding and rendering configuration."""
    conf_threshold: float = 0.25
    labels_path: Optional[str] = None
    class_name_overrides: Optional[Dict[int, str]] = None
    line_width: int = 2

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            conf_threshold=d.get("conf_threshold", 0.25),
            labels_path=d.get("labels_path"),
            class_name_overrides=d.get("class_name_overrides"),
            line_width=d.get("line_width", 2),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "conf_threshold": self.conf_threshold,
            "line_width": self.line_width,
        }
        if self.labels_path is not None:
            d["labels_path"] = self.labels_path
        if self.class_name_overrides is not None:
            d["class_name_overrides"] = self.class_name_overrides
        return d


@dataclass
class SourceConfig:
    """Video source configuration."""
    device_id: Union[int, str] = 0
    resolution: Optional[List[int]] = None
    fps: Optional[int] = None
    max_retries: int = 3
    max_reconnects: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution"),
            fps=d.get("fps"),
            max_retries=d.get("max_retries") or 3,
            max_reconnects=d.get("max_reconnects") or 3,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "device_id": self.device_id,
            "max_retries": self.max_retries,
            "max_reconnects": self.max_reconnects,
        }
        if self.resolution is not None:
            d["resolution"] = self.resolution
        if self.fps is not None:
            d["fps"] = self.fps
        return d


ON_ERROR_STOP = "stop"
ON_ERROR_SKIP = "skip"


@dataclass
class VideoConfig:
    """
    Frame loop configuration.

    Attributes:
        fps: Target tick rate. None = next tick as soon as the previous one ends.
        max_consecutive_failures: Consecutive failed reads (or skipped errors) before stopping.
        on_error: "stop" re-raises a failed tick; "skip" drops the frame and continues.
        stats_log_interval: Seconds between status log messages.
    """
    fps: Optional[float] = None
    max_consecutive_failures: int = 10
    on_error: str = ON_ERROR_STOP
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VideoConfig":
        on_error = d.get("on_error") or ON_ERROR_STOP
        if on_error not in (ON_ERROR_STOP, ON_ERROR_SKIP):
            raise ValueError(f"on_error must be '{ON_ERROR_STOP}' or '{ON_ERROR_SKIP}', got {on_error!r}")
        # null in YAML means "use the default"
        return cls(
            fps=d.get("fps"),
            max_consecutive_failures=d.get("max_consecutive_failures") or 10,
            on_error=on_error,
            stats_log_interval=d.get("stats_log_interval") or 60.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "max_consecutive_failures": self.max_consecutive_failures,
            "on_error": self.on_error,
            "stats_log_interval": self.stats_log_interval,
        }
        if self.fps is not None:
            d["fps"] = self.fps
        return d


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    video: VideoConfig = field(default_factory=VideoConfig)
    log_path: str = "logs/frame_detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            source=SourceConfig.from_dict(d.get("source", {}) or {}),
            video=VideoConfig.from_dict(d.get("video", {}) or {}),
            log_path=d.get("log_path", "logs/frame_detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "model": self.model.to_dict(),
            "detection": self.detection.to_dict(),
            "source": self.source.to_dict(),
            "video": self.video.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
