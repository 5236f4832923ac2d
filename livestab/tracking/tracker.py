"""
Frame-to-frame camera motion estimation.

This module provides the FrameTracker class which tracks grid-distributed
features between consecutive frames with Lucas-Kanade optical flow and
fits a robust global motion model to the matches.
"""

import logging
from dataclasses import dataclass
from typing import Any

import cv2
import numpy as np

from livestab.core.config import TrackerConfig
from livestab.geometry import Transform, WarpField
from livestab.tracking.detector import FeatureDetector

logger = logging.getLogger(__name__)


@dataclass
class TrackingStats:
    """Statistics from a tracking pass."""
    frame: int
    detected: int = 0
    matched: int = 0
    inliers: int = 0
    inlier_ratio: float = 0.0
    distribution: float = 0.0
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "frame": self.frame,
            "detected": self.detected,
            "matched": self.matched,
            "inliers": self.inliers,
            "inlier_ratio": self.inlier_ratio,
            "distribution": self.distribution,
            "degraded": self.degraded,
        }


class FrameTracker:
    """
    Camera motion estimator.

    Detects features in the previous frame, tracks them into the current
    frame and fits a similarity transform with RANSAC. When a motion
    resolution above 1x1 is configured, per-region corrections relative to
    the global fit are added to produce a WarpField.

    The first frame after construction or restart() only seeds the tracker
    and produces no motion.

    Attributes:
        config: Tracker settings
        frame_count: Number of frames seen since the last restart
        degraded: True when the last estimate was held for lack of evidence

    Example:
        >>> tracker = FrameTracker()
        >>> for frame in video:
        ...     motion = tracker.track(frame)
        ...     if motion is not None:
        ...         print(motion.as_matrix(), tracker.tracking_quality)
    """

    def __init__(self, config: TrackerConfig | None = None):
        """
        Initialize the frame tracker.

        Args:
            config: Tracker settings (defaults if None)
        """
        self.config = TrackerConfig()
        self._detector: FeatureDetector | None = None
        self.configure(config if config is not None else TrackerConfig())

    def configure(self, config: TrackerConfig) -> None:
        """
        Apply new settings. Tracking restarts from the next frame.

        Raises:
            ConfigurationError: If the settings are invalid
        """
        config.validate()
        self.config = config

        self._detector = FeatureDetector(
            grid=config.detection_grid,
            quality_level=config.feature_quality,
            min_distance=config.feature_min_distance,
            block_size=config.feature_block_size,
        )
        self.lk_params = {
            "winSize": tuple(config.lk_window),
            "maxLevel": config.lk_max_level,
            "criteria": (
                cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT,
                config.lk_max_iterations,
                config.lk_epsilon,
            ),
        }
        self.restart()

    def restart(self) -> None:
        """Discard all tracked points and cached frames."""
        self._prev_gray: np.ndarray | None = None
        self._frame_size: tuple[int, int] | None = None
        self._scale = np.ones(2)
        self._last_motion: Transform | WarpField | None = None
        self._tracking_quality = 0.0
        self._scene_stability = 0.0
        self.frame_count = 0
        self.degraded = False
        self.last_stats: TrackingStats | None = None
        self._detector.reset()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def initialized(self) -> bool:
        return self._prev_gray is not None

    @property
    def tracking_quality(self) -> float:
        """Inlier support weighted by spatial spread, in [0, 1]."""
        return self._tracking_quality

    @property
    def scene_stability(self) -> float:
        """Fraction of matches consistent with the global motion, in [0, 1]."""
        return self._scene_stability

    @property
    def motion_resolution(self) -> tuple[int, int]:
        return tuple(self.config.motion_resolution)

    @property
    def tracking_resolution(self) -> tuple[int, int] | None:
        """(width, height) of the downscaled frames used for tracking."""
        if self._prev_gray is None:
            return None
        return (self._prev_gray.shape[1], self._prev_gray.shape[0])

    @property
    def tracking_points(self) -> np.ndarray:
        """Current features in full-resolution frame coordinates (Nx2)."""
        return self._detector.points / self._scale

    def draw_trackers(
        self,
        frame: np.ndarray,
        color: tuple[int, int, int] = (255, 0, 255),
        size: int = 10,
        thickness: int = 3,
    ) -> np.ndarray:
        """Draw the tracked points onto a full-resolution frame in place."""
        for x, y in self.tracking_points:
            cv2.circle(frame, (int(x), int(y)), size // 2, color, thickness)
        return frame

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def _prepare(self, frame: np.ndarray) -> np.ndarray:
        """Convert to a downscaled single-channel frame for tracking."""
        if frame.ndim == 3:
            code = cv2.COLOR_BGRA2GRAY if frame.shape[2] == 4 else cv2.COLOR_BGR2GRAY
            gray = cv2.cvtColor(frame, code)
        else:
            gray = frame

        h, w = gray.shape[:2]
        self._frame_size = (w, h)

        factor = min(1.0, self.config.tracking_width / w)
        if factor < 1.0:
            size = (max(1, round(w * factor)), max(1, round(h * factor)))
            gray = cv2.resize(gray, size, interpolation=cv2.INTER_AREA)

        self._scale = np.array([gray.shape[1] / w, gray.shape[0] / h])
        return gray

    def _held_motion(self) -> Transform | WarpField:
        if self._last_motion is not None:
            return self._last_motion
        if self.motion_resolution == (1, 1):
            return Transform.identity()
        return WarpField.identity(self._frame_size, self.motion_resolution)

    def track(self, frame: np.ndarray) -> Transform | WarpField | None:
        """
        Estimate the camera motion from the previous frame to this one.

        Args:
            frame: Next frame (BGR, BGRA or single-channel, 8-bit)

        Returns:
            Motion in full-resolution pixels, the held previous estimate when
            evidence is insufficient, or None on the first frame and when no
            usable features could be found
        """
        gray = self._prepare(frame)
        self.frame_count += 1
        stats = TrackingStats(frame=self.frame_count)
        self.last_stats = stats

        prev_gray = self._prev_gray
        self._prev_gray = gray

        if prev_gray is None or prev_gray.shape != gray.shape:
            if prev_gray is not None:
                logger.info("Frame size changed, restarting tracking")
                self._detector.reset()
                self._last_motion = None
            self._tracking_quality = 0.0
            self._scene_stability = 0.0
            return None

        points = self._detector.detect(prev_gray)
        stats.detected = len(points)
        if len(points) == 0:
            logger.debug("Frame %d: no features detected", self.frame_count)
            self._tracking_quality = 0.0
            self._scene_stability = 0.0
            self.degraded = True
            stats.degraded = True
            return None

        matched, status, _ = cv2.calcOpticalFlowPyrLK(
            prev_gray, gray, points.reshape(-1, 1, 2), None, **self.lk_params
        )
        matched = matched.reshape(-1, 2)

        h, w = gray.shape
        valid = (
            (status.ravel() == 1)
            & (matched[:, 0] >= 0) & (matched[:, 0] < w)
            & (matched[:, 1] >= 0) & (matched[:, 1] < h)
        )
        tracked = points[valid]
        matched = matched[valid]
        stats.matched = len(tracked)

        motion, inliers = self._fit_motion(tracked, matched)

        # Matches consistent with the fit seed the next detection pass
        self._detector.propagate(matched[inliers] if inliers is not None else matched)

        stats.inliers = int(inliers.sum()) if inliers is not None else 0
        stats.inlier_ratio = stats.inliers / stats.matched if stats.matched else 0.0
        stats.distribution = self._detector.distribution_quality()

        self._scene_stability = stats.inlier_ratio
        support = min(1.0, stats.inliers / self.config.min_motion_samples)
        self._tracking_quality = support * stats.distribution if stats.inliers else 0.0

        if (
            motion is None
            or stats.inliers < self.config.min_motion_samples
            or stats.inlier_ratio < self.config.min_motion_quality
        ):
            logger.debug(
                "Frame %d: insufficient evidence (%d inliers of %d matches), holding motion",
                self.frame_count, stats.inliers, stats.matched,
            )
            self.degraded = True
            stats.degraded = True
            return self._held_motion()

        self.degraded = False
        self._last_motion = motion
        return motion

    def _fit_motion(
        self,
        tracked: np.ndarray,
        matched: np.ndarray,
    ) -> tuple[Transform | WarpField | None, np.ndarray | None]:
        """Fit global (and local) motion in full-resolution coordinates."""
        if len(tracked) < 2:
            return None, None

        src = (tracked / self._scale).astype(np.float32)
        dst = (matched / self._scale).astype(np.float32)

        matrix, inlier_status = cv2.estimateAffinePartial2D(
            src,
            dst,
            method=cv2.RANSAC,
            ransacReprojThreshold=self.config.ransac_threshold / float(self._scale[0]),
            maxIters=self.config.ransac_max_iters,
            confidence=self.config.ransac_confidence,
        )
        if matrix is None or inlier_status is None:
            return None, None

        inliers = inlier_status.ravel().astype(bool)
        global_motion = Transform.from_matrix(matrix)

        if self.motion_resolution == (1, 1):
            return global_motion, inliers

        field = self.estimate_local_motions(global_motion, src[inliers], dst[inliers])
        return field, inliers

    def estimate_local_motions(
        self,
        global_motion: Transform,
        tracked: np.ndarray,
        matched: np.ndarray,
    ) -> WarpField:
        """
        Refine a global motion with one translation correction per region.

        Each region's correction is the median residual of its matches
        against the global model. Regions with too few matches keep a zero
        correction.

        Args:
            global_motion: Fitted global transform
            tracked: Nx2 inlier positions in the previous frame (full resolution)
            matched: Nx2 corresponding positions in the current frame

        Returns:
            WarpField covering the full-resolution frame
        """
        cols, rows = self.motion_resolution
        width, height = self._frame_size
        offsets = np.zeros((rows, cols, 2), dtype=np.float64)

        if len(tracked) > 0:
            residuals = matched - global_motion.transform_points(tracked)
            region_col = np.clip((tracked[:, 0] * cols / width).astype(int), 0, cols - 1)
            region_row = np.clip((tracked[:, 1] * rows / height).astype(int), 0, rows - 1)

            for row in range(rows):
                for col in range(cols):
                    selected = (region_row == row) & (region_col == col)
                    if selected.sum() >= self.config.min_local_samples:
                        offsets[row, col] = np.median(residuals[selected], axis=0)

        return WarpField(
            (width, height),
            (cols, rows),
            global_motion=global_motion,
            offsets=offsets,
        )
