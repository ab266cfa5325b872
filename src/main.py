"""
Frame detector command line application.

Runs a YOLO detection model exported to ONNX over a single image or over a
video source (camera, stream or video file) and renders the boxes onto an
overlay.

Usage:
    python src/main.py --config config/config.yaml --image street.jpg --output out.jpg
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --image: Detect a single image instead of running the video loop
    --output: Where to write the annotated image (image mode)
    --display: Show the annotated frames in a window
    --threshold: Override detection.conf_threshold
    --json: Print detections as JSON (image mode)
"""

import argparse
import json
import logging
import os
import sys
import threading
from typing import Any, Dict, List, Optional, Tuple

import cv2
import yaml

from detection.detector import detect_image
from detection.labels import load_labels
from detection.renderer import BoxRenderer, Overlay
from inference.onnx_backend import OnnxDetectionModel, OnnxModelConfig
from models.config import ON_ERROR_SKIP, ON_ERROR_STOP
from models.detection import Detection
from models.frame import FrameData
from observation import create_source_from_config, load_image
from ops.logging import setup_logging
from pipeline.engine import VideoDetector, VideoDetectorConfig


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    config_dir = os.path.dirname(config_path)
    local_overrides_path = os.path.join(config_dir, "config.yaml")
    try:
        merged = _deep_merge(
            _read_yaml(os.path.join(config_dir, "default.yaml")),
            _read_yaml(local_overrides_path),
        )
        if os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(config_path))
        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    for section in ("model", "detection", "log_level"):
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    model = config.get("model") or {}
    if not isinstance(model.get("path"), str) or not model.get("path"):
        return False, "model.path is required"
    if "input_size" in model:
        input_size = model["input_size"]
        if not isinstance(input_size, list) or len(input_size) != 2:
            return False, "model.input_size must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in input_size):
            return False, "model.input_size values must be positive integers"
    if not isinstance(model.get("provider", "auto"), str):
        return False, "model.provider must be a string"
    if not _is_int(model.get("device_id", 0)) or model.get("device_id", 0) < 0:
        return False, "model.device_id must be a non-negative integer"

    detection = config.get("detection") or {}
    threshold = detection.get("conf_threshold", 0.25)
    if not isinstance(threshold, (int, float)) or not (0 <= threshold <= 1):
        return False, "detection.conf_threshold must be between 0 and 1"
    labels_path = detection.get("labels_path")
    if labels_path is not None and not isinstance(labels_path, str):
        return False, "detection.labels_path must be a string"
    line_width = detection.get("line_width", 2)
    if not _is_int(line_width) or line_width <= 0:
        return False, "detection.line_width must be a positive integer"

    source = config.get("source") or {}
    if "device_id" in source:
        device_id = source["device_id"]
        if not isinstance(device_id, (int, str)):
            return False, "source.device_id must be an integer (index) or string (URL/path)"
        if isinstance(device_id, int) and device_id < 0:
            return False, "source.device_id integer must be non-negative"

    video = config.get("video") or {}
    if video.get("on_error", ON_ERROR_STOP) not in (ON_ERROR_STOP, ON_ERROR_SKIP):
        return False, f"video.on_error must be one of: {ON_ERROR_STOP}, {ON_ERROR_SKIP}"
    fps = video.get("fps")
    if fps is not None and (not isinstance(fps, (int, float)) or fps <= 0):
        return False, "video.fps must be a positive number"
    mcf = video.get("max_consecutive_failures", 10)
    if not _is_int(mcf) or mcf <= 0:
        return False, "video.max_consecutive_failures must be a positive integer"
    interval = video.get("stats_log_interval", 60)
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval <= 0:
        return False, "video.stats_log_interval must be a positive number"

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config["log_level"] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def build_model(config: Dict[str, Any]) -> OnnxDetectionModel:
    model_cfg = config["model"]
    return OnnxDetectionModel(
        OnnxModelConfig(
            path=model_cfg["path"],
            provider=model_cfg.get("provider", "auto"),
            device_id=int(model_cfg.get("device_id") or 0),
            input_size=tuple(model_cfg.get("input_size") or [640, 640]),
        )
    )


def build_renderer(config: Dict[str, Any]) -> BoxRenderer:
    detection_cfg = config.get("detection", {}) or {}
    labels = load_labels(
        detection_cfg.get("labels_path"),
        overrides=detection_cfg.get("class_name_overrides"),
    )
    return BoxRenderer(labels=labels, line_width=int(detection_cfg.get("line_width") or 2))


def log_detections(detections: List[Detection]) -> None:
    summary = ", ".join(d.label for d in detections)
    logging.info(f"Detected {len(detections)} objects: {summary}")


def run_image(args, config: Dict[str, Any], model, renderer: BoxRenderer, threshold: float) -> List[Detection]:
    frame_data = load_image(args.image)
    overlay = Overlay(frame_data.width, frame_data.height)
    detections = detect_image(frame_data.frame, model, threshold, overlay, renderer=renderer)
    log_detections(detections)

    annotated = overlay.composite(frame_data.frame)
    if args.output:
        if not cv2.imwrite(args.output, annotated):
            raise RuntimeError(f"Failed to write {args.output}")
        logging.info(f"Annotated image saved: {args.output}")
    if args.json:
        print(json.dumps([d.to_dict() for d in detections], indent=2))
    if args.display:
        cv2.imshow("Frame Detector", annotated)
        cv2.waitKey(0)
        cv2.destroyAllWindows()
    return detections


def run_video(args, config: Dict[str, Any], model, renderer: BoxRenderer, threshold: float) -> None:
    source = create_source_from_config(config.get("source", {}) or {}, source_id="video")
    video_config = VideoDetectorConfig.from_dict(config.get("video", {}) or {})
    overlay = Overlay()
    cancel_event = threading.Event()

    detector = VideoDetector(
        source, model, threshold, overlay,
        on_detection=log_detections,
        renderer=renderer,
        config=video_config,
    )

    if args.display:
        def show(frame_data: FrameData, detections: List[Detection]) -> None:
            cv2.imshow("Frame Detector", overlay.composite(frame_data.frame))
            if cv2.waitKey(1) & 0xFF == ord("q"):
                cancel_event.set()

        detector.add_callback(show)

    try:
        with source:
            detector.run(cancel_event)
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        if args.display:
            cv2.destroyAllWindows()


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description="Frame Detector")
    parser.add_argument("--config", type=str, default="config/config.yaml",
                        help="Path to configuration file")
    parser.add_argument("--image", type=str, default=None,
                        help="Detect a single image instead of the configured video source")
    parser.add_argument("--output", type=str, default=None,
                        help="Write the annotated image here (image mode)")
    parser.add_argument("--display", action="store_true",
                        help="Enable visual display")
    parser.add_argument("--threshold", type=float, default=None,
                        help="Override detection.conf_threshold")
    parser.add_argument("--json", action="store_true",
                        help="Print detections as JSON (image mode)")
    args = parser.parse_args()

    config = load_config(args.config)
    if args.threshold is not None:
        config.setdefault("detection", {})["conf_threshold"] = args.threshold

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config.get("log_path"), config["log_level"])
    logging.info("Starting Frame Detector")

    model = build_model(config)
    renderer = build_renderer(config)
    threshold = float(config["detection"].get("conf_threshold", 0.25))

    if args.image:
        run_image(args, config, model, renderer, threshold)
    else:
        run_video(args, config, model, renderer, threshold)

    logging.info("Frame Detector stopped")


if __name__ == "__main__":
    main()
