"""
Video frame loop.

Runs the single-frame detection pass once per tick over an observation source
until the source closes or the loop is cancelled. Ticks are strictly
sequential: the next one is scheduled only after the current tick's tensor
scope has been released, so at most one inference is in flight per video.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from detection.detector import detect_frame
from detection.renderer import BoxRenderer, Overlay
from inference.backend import DetectionModel
from inference.scope import TensorScope
from models.config import ON_ERROR_SKIP, VideoConfig
from models.detection import Detection
from models.frame import FrameData
from observation import ObservationSource


@dataclass
class VideoDetectorConfig(VideoConfig):
    """Frame loop configuration plus the colour order of the source frames."""
    bgr: bool = True


@dataclass
class VideoDetectorStats:
    """Runtime statistics for the frame loop."""
    frame_count: int = 0
    detection_frames: int = 0
    detection_count: int = 0
    error_count: int = 0
    consecutive_failures: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)
    stop_reason: Optional[str] = None


class FrameClock:
    """Paces ticks to a target rate; waiting is interrupted by cancellation."""

    def __init__(self, fps: Optional[float] = None):
        self._interval = 1.0 / fps if fps else 0.0
        self._next_tick: Optional[float] = None

    def wait(self, cancel_event: threading.Event) -> None:
        if self._interval <= 0:
            return
        now = time.monotonic()
        if self._next_tick is None:
            self._next_tick = now
        self._next_tick += self._interval
        delay = self._next_tick - now
        if delay > 0:
            cancel_event.wait(delay)
        else:
            # Running behind; don't try to catch up with a burst of ticks
            self._next_tick = now


class VideoDetector:
    """
    Frame-by-frame detector over an open ObservationSource.

    States: idle -> running -> stopped. A tick first checks the cancellation
    token and the source's liveness; a closed source clears the overlay once
    and stops the loop for good.

    Example:
        with OpenCVSource(OpenCVSourceConfig(device_id="clip.mp4")) as source:
            detector = VideoDetector(source, model, 0.25, Overlay(), on_detection=print)
            handle = detector.start()
            ...
            handle.cancel()
            handle.join()
    """

    def __init__(
        self,
        source: ObservationSource,
        model: DetectionModel,
        threshold: float,
        overlay: Overlay,
        on_detection: Optional[Callable[[List[Detection]], None]] = None,
        renderer: Optional[BoxRenderer] = None,
        config: Optional[VideoDetectorConfig] = None,
    ):
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be between 0 and 1, got {threshold}")
        self.source = source
        self.model = model
        self.threshold = threshold
        self.overlay = overlay
        self.on_detection = on_detection
        self.renderer = renderer or BoxRenderer()
        self.config = config or VideoDetectorConfig()
        self.stats = VideoDetectorStats()
        self.state = "idle"
        self._callbacks: List[Callable[[FrameData, List[Detection]], None]] = []

    def add_callback(self, callback: Callable[[FrameData, List[Detection]], None]) -> None:
        """
        Add a callback to be called after every processed frame.

        Args:
            callback: Function taking (frame_data, detections) as arguments.
        """
        self._callbacks.append(callback)

    def run(self, cancel_event: Optional[threading.Event] = None) -> VideoDetectorStats:
        """
        Run the frame loop on the calling thread until it stops.

        Args:
            cancel_event: Cancellation token checked at the start of every tick.

        Returns:
            Statistics for the run, including stop_reason.
        """
        cancel_event = cancel_event or threading.Event()
        self.stats = VideoDetectorStats()
        clock = FrameClock(self.config.fps)
        self.state = "running"
        logging.info(f"Video detection started: source={self.source.source_id}")

        try:
            while self._tick(cancel_event):
                self._handle_periodic_tasks()
                clock.wait(cancel_event)
        finally:
            self.state = "stopped"
            logging.info(
                f"Video detection stopped: reason={self.stats.stop_reason}, "
                f"frames={self.stats.frame_count}, detections={self.stats.detection_count}"
            )
        return self.stats

    def start(self) -> "VideoDetectionHandle":
        """Run the frame loop on a background thread."""
        cancel_event = threading.Event()
        handle = VideoDetectionHandle(self, cancel_event)
        handle.thread.start()
        return handle

    def _stop(self, reason: str) -> bool:
        self.renderer.clear(self.overlay)
        self.stats.stop_reason = reason
        return False

    def _tick(self, cancel_event: threading.Event) -> bool:
        """Process one frame. Returns False once the loop must stop."""
        if cancel_event.is_set():
            return self._stop("cancelled")
        if self.source.is_closed:
            return self._stop("source closed")

        frame_data = self.source.read()
        if frame_data is None:
            if self.source.is_closed:
                # Picked up by the liveness check on the next tick
                return True
            self.stats.consecutive_failures += 1
            if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                logging.error(
                    f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                )
                return self._stop("read failures")
            logging.warning(
                f"Frame read failed ({self.stats.consecutive_failures}/"
                f"{self.config.max_consecutive_failures})"
            )
            return True

        try:
            with TensorScope(f"frame-{frame_data.frame_index}") as scope:
                detections = detect_frame(
                    frame_data.frame, self.model, self.threshold, self.overlay,
                    self.renderer, scope, bgr=self.config.bgr,
                )
        except Exception as e:
            self.stats.error_count += 1
            self.stats.consecutive_failures += 1
            if self.config.on_error != ON_ERROR_SKIP:
                logging.error(f"Detection failed on frame {frame_data.frame_index}: {e}")
                self._stop("error")
                raise
            logging.warning(f"Skipping frame {frame_data.frame_index}: {e}")
            if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                logging.error(
                    f"Too many consecutive failures ({self.stats.consecutive_failures}), stopping"
                )
                return self._stop("errors")
            return True

        self.stats.consecutive_failures = 0
        self.stats.frame_count += 1

        if detections:
            self.stats.detection_frames += 1
            self.stats.detection_count += len(detections)
            if self.on_detection is not None:
                try:
                    self.on_detection(detections)
                except Exception as e:
                    logging.warning(f"Detection callback error: {e}")

        for callback in self._callbacks:
            try:
                callback(frame_data, detections)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

        return True

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            elapsed = max(now - self.stats.start_time, 1e-6)
            logging.info(
                f"Video detection stats: frames={self.stats.frame_count}, "
                f"fps={self.stats.frame_count / elapsed:.1f}, "
                f"detections={self.stats.detection_count}, errors={self.stats.error_count}"
            )
            self.stats.last_stats_log_time = now


class VideoDetectionHandle:
    """Cancellation handle for a frame loop running on a background thread."""

    def __init__(self, detector: VideoDetector, cancel_event: threading.Event):
        self.detector = detector
        self.cancel_event = cancel_event
        self.error: Optional[BaseException] = None
        self.thread = threading.Thread(
            target=self._run,
            name=f"video-detector-{detector.source.source_id}",
            daemon=True,
        )

    def _run(self) -> None:
        try:
            self.detector.run(self.cancel_event)
        except Exception as e:
            self.error = e
            logging.error(f"Video detection aborted: {e}")

    @property
    def is_running(self) -> bool:
        return self.thread.is_alive()

    def cancel(self) -> None:
        """Ask the loop to stop; a tick already running the model finishes first."""
        self.cancel_event.set()

    def join(self, timeout: Optional[float] = None) -> VideoDetectorStats:
        """Wait for the loop to finish; re-raises the error that aborted it, if any."""
        self.thread.join(timeout)
        if self.error is not None:
            raise self.error
        return self.detector.stats
