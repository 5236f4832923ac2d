"""
Real-time video stabilization pipeline.

VideoStabilizer ties the FrameTracker to the TrajectorySmoother: every
incoming frame is tracked against the previous one, its motion is pushed
onto the trajectory together with a copy of the frame, and once the delay
lines are full the oldest frame comes back out warped onto the smoothed
path.
"""

import logging
import time
from typing import Any, Callable

import cv2
import numpy as np

from livestab.core.base import BaseProcessor
from livestab.core.config import StabilizerConfig
from livestab.geometry import CropRegion, Transform
from livestab.stabilization.smoother import (
    ReconfigureResult,
    StabilizedFrame,
    TrajectorySmoother,
)
from livestab.tracking.tracker import FrameTracker

logger = logging.getLogger(__name__)

# Test mode overlay
OVERLAY_COLOR = (255, 0, 255)
OVERLAY_THICKNESS = 2


class VideoStabilizer(BaseProcessor):
    """
    Streaming stabilizer for frames pushed by a host.

    Output lags input by frame_delay frames. Frames handed in with a handle
    and release hook are either returned with their handle on output or
    released exactly once if they are dropped (reset, reconfiguration or
    frame size change).

    Example:
        >>> stabilizer = VideoStabilizer(StabilizerConfig(smoothing_radius=10))
        >>> for frame in stream:
        ...     result = stabilizer.process(frame)
        ...     if result is not None:
        ...         show(result.cropped)
        >>> for result in stabilizer.flush():
        ...     show(result.cropped)
    """

    def __init__(self, config: StabilizerConfig | None = None):
        """
        Initialize the stabilizer.

        Args:
            config: Stabilizer settings (defaults if None)

        Raises:
            ConfigurationError: If the settings are invalid
        """
        super().__init__()
        config = config if config is not None else StabilizerConfig()
        config.validate()
        self.config = config

        self.tracker = FrameTracker(config.tracker)
        self.smoother = TrajectorySmoother(config.smoothing_radius)

        self._held_velocity: Any = Transform.identity()
        self._frame_size: tuple[int, int] | None = None
        self._crop: CropRegion | None = None
        self.frames_processed = 0
        self.last_frame_time_ms = 0.0

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def tracking_quality(self) -> float:
        return self.tracker.tracking_quality

    @property
    def scene_stability(self) -> float:
        return self.tracker.scene_stability

    @property
    def frame_delay(self) -> int:
        """Output latency in frames."""
        return self.smoother.frame_delay

    def frame_delay_ms(self, fps: float) -> float:
        """Output latency in milliseconds at a given frame rate."""
        if fps <= 0:
            raise ValueError(f"Frame rate must be positive, got {fps}")
        return self.frame_delay * 1000.0 / fps

    @property
    def crop_region(self) -> CropRegion | None:
        """Output rectangle, known once the frame size is."""
        return self._crop

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def _fit_frame_size(self, size: tuple[int, int]) -> None:
        if size == self._frame_size:
            return
        if self._frame_size is not None:
            released = self.reset()
            logger.info(
                "Frame size changed from %s to %s, %d buffered frames released",
                self._frame_size, size, released,
            )
        self._frame_size = size
        self._crop = CropRegion.from_frame(size, self.config.crop_proportion)

    def process(
        self,
        frame: np.ndarray,
        handle: Any = None,
        release: Callable[[Any], None] | None = None,
    ) -> StabilizedFrame | None:
        """
        Push a frame and get the next stabilized frame, if one is ready.

        Args:
            frame: Next input frame (BGR, BGRA or grayscale, 8-bit)
            handle: Host resource tied to the frame, returned with its output
            release: Hook that gives the handle back if the frame is dropped

        Returns:
            The frame from frame_delay frames ago warped onto the smoothed
            trajectory, or None while the delay lines are filling
        """
        start = time.perf_counter()
        self._fit_frame_size((frame.shape[1], frame.shape[0]))

        motion = self.tracker.track(frame)
        if motion is not None:
            self._held_velocity = motion

        self.smoother.push(frame, self._held_velocity, handle, release)
        self.frames_processed += 1

        result = self.smoother.stabilize(self._crop) if self.smoother.ready else None
        self.last_frame_time_ms = (time.perf_counter() - start) * 1000.0

        if result is not None and self.config.test_mode:
            self._draw_overlay(result.frame)
        return result

    def flush(self) -> list[StabilizedFrame]:
        """
        Drain every buffered frame at the end of a stream.

        The queue is padded with still copies of the newest frame until all
        real frames have been output. The stabilizer is reset afterwards.

        Returns:
            The remaining stabilized frames, oldest first
        """
        outputs = []
        while self.smoother.pending_frames() > 0:
            self.smoother.pad()
            if self.smoother.ready:
                result = self.smoother.stabilize(self._crop)
                if self.config.test_mode:
                    self._draw_overlay(result.frame)
                outputs.append(result)

        logger.debug("Flushed %d frames", len(outputs))
        self.reset()
        return outputs

    def reconfigure(self, config: StabilizerConfig) -> ReconfigureResult:
        """
        Apply new settings mid-stream.

        A changed smoothing radius releases the buffered frames and restarts
        the trajectory, as does a changed motion resolution. Invalid settings
        are rejected and the current ones stay in force.

        Raises:
            ConfigurationError: If the settings are invalid
        """
        config.validate()

        result = self.smoother.reconfigure(config.smoothing_radius)
        if config.tracker != self.config.tracker:
            self.tracker.configure(config.tracker)
            self._held_velocity = Transform.identity()
            # Buffered motion at the old field resolution cannot mix with new estimates
            if tuple(config.tracker.motion_resolution) != tuple(self.config.tracker.motion_resolution):
                released = self.smoother.reset()
                result.released += released
                logger.info(
                    "Motion resolution changed to %s, %d buffered frames released",
                    config.tracker.motion_resolution, released,
                )
        if self._frame_size is not None:
            self._crop = CropRegion.from_frame(self._frame_size, config.crop_proportion)

        self.config = config
        return result

    def reset(self) -> int:
        """
        Drop all buffered frames and restart tracking.

        Returns:
            Number of buffered frame handles released
        """
        released = self.smoother.reset()
        self.tracker.restart()
        self._held_velocity = Transform.identity()
        return released

    def _draw_overlay(self, frame: np.ndarray) -> None:
        """Draw the crop rectangle and processing time onto a full-size frame."""
        crop = self._crop
        cv2.rectangle(
            frame,
            (crop.x, crop.y),
            (crop.x + crop.width, crop.y + crop.height),
            OVERLAY_COLOR,
            OVERLAY_THICKNESS,
        )
        cv2.putText(
            frame,
            f"{self.last_frame_time_ms:.2f}ms",
            (crop.x + 5, crop.y + 40),
            cv2.FONT_HERSHEY_DUPLEX,
            1.5,
            OVERLAY_COLOR,
            OVERLAY_THICKNESS,
        )

    # ------------------------------------------------------------------
    # BaseProcessor interface
    # ------------------------------------------------------------------

    def output_frame(self, result: StabilizedFrame) -> np.ndarray:
        """The array to display or encode for a result."""
        return result.frame if self.config.test_mode else result.cropped

    def output_size(self, frame_size: tuple[int, int]) -> tuple[int, int]:
        """(width, height) of output_frame() for a given input size."""
        if self.config.test_mode:
            return frame_size
        return CropRegion.from_frame(frame_size, self.config.crop_proportion).size

    def initialize(self, video_props: dict[str, Any]) -> None:
        self._fit_frame_size((int(video_props["width"]), int(video_props["height"])))
        self._initialized = True

    def process_frame(
        self,
        frame_num: int,
        frame: np.ndarray,
        **kwargs
    ) -> np.ndarray | None:
        result = self.process(frame)
        if result is None:
            return None
        return self.output_frame(result)

    def finalize(self) -> list[np.ndarray]:
        """Flush the remaining frames as output arrays."""
        return [self.output_frame(result) for result in self.flush()]
