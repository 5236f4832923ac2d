"""
Grid-distributed feature detection.

Features are kept in a SpatialIndex with one feature per bucket, so no
single region of the frame can dominate the tracked set. Points that
survived the previous tracking pass are propagated as seeds and only empty
buckets are refilled with new corners.
"""

import logging

import cv2
import numpy as np

from livestab.tracking.spatial_index import SpatialIndex

logger = logging.getLogger(__name__)


class FeatureDetector:
    """
    Shi-Tomasi corner detector that spreads features over a bucket grid.

    Example:
        >>> detector = FeatureDetector(grid=(16, 9))
        >>> points = detector.detect(gray)
        >>> detector.propagate(surviving_points)
    """

    def __init__(
        self,
        grid: tuple[int, int] = (32, 18),
        quality_level: float = 0.01,
        min_distance: int = 5,
        block_size: int = 7,
        candidate_factor: int = 4,
    ):
        """
        Initialize the detector.

        Args:
            grid: (cols, rows) of the bucket grid; at most one feature per bucket
            quality_level: Shi-Tomasi corner quality threshold (0-1)
            min_distance: Minimum distance between new corners in pixels
            block_size: Block size for corner detection
            candidate_factor: Corners requested per empty bucket
        """
        self.grid = grid
        self.candidate_factor = candidate_factor
        self.feature_params = {
            "qualityLevel": quality_level,
            "minDistance": min_distance,
            "blockSize": block_size,
        }

        # Region is fixed on the first detect() call
        self._index: SpatialIndex[np.ndarray] = SpatialIndex(grid, (0, 0, 1, 1))
        self._frame_shape: tuple[int, int] | None = None

    @property
    def index(self) -> SpatialIndex[np.ndarray]:
        return self._index

    @property
    def points(self) -> np.ndarray:
        """Current features as an Nx2 float32 array."""
        if len(self._index) == 0:
            return np.empty((0, 2), dtype=np.float32)
        return np.array(self._index.items(), dtype=np.float32).reshape(-1, 2)

    def _fit_region(self, shape: tuple[int, int]) -> None:
        if self._frame_shape == shape:
            return
        h, w = shape
        self._index.rescale(self.grid, (0, 0, w, h))
        self._frame_shape = shape

    def _occupancy_mask(self, shape: tuple[int, int]) -> np.ndarray:
        """Mask that blocks out buckets which already hold a feature."""
        mask = np.full(shape, 255, dtype=np.uint8)
        bw, bh = self._index.bucket_size
        for key in self._index.keys():
            x0, y0 = int(key.col * bw), int(key.row * bh)
            x1, y1 = int((key.col + 1) * bw), int((key.row + 1) * bh)
            mask[y0:y1, x0:x1] = 0
        return mask

    def detect(self, gray: np.ndarray) -> np.ndarray:
        """
        Refill empty buckets with new corners.

        Args:
            gray: Single-channel 8-bit frame

        Returns:
            All features (propagated and new) as an Nx2 float32 array
        """
        self._fit_region(gray.shape[:2])

        free = self._index.capacity - len(self._index)
        if free > 0:
            corners = cv2.goodFeaturesToTrack(
                gray,
                maxCorners=free * self.candidate_factor,
                mask=self._occupancy_mask(gray.shape[:2]),
                **self.feature_params,
            )
            if corners is not None:
                # Corners arrive strongest first; the first one claims its bucket
                for corner in corners.reshape(-1, 2):
                    key = self._index.key_of((corner[0], corner[1]))
                    if key is not None and not self._index.contains(key):
                        self._index.place((corner[0], corner[1]), corner.copy())

        logger.debug("Detected %d features (%d buckets free)", len(self._index), free)
        return self.points

    def propagate(self, points: np.ndarray) -> None:
        """
        Replace the feature set with points carried over from tracking.

        Points outside the frame are dropped; when several points share a
        bucket only the last one is kept.
        """
        self._index.clear()
        for point in np.asarray(points, dtype=np.float32).reshape(-1, 2):
            self._index.try_place((point[0], point[1]), point.copy())

    def distribution_quality(self) -> float:
        """Spatial spread of the current features (see SpatialIndex)."""
        return self._index.distribution_quality()

    def reset(self) -> None:
        """Forget all features."""
        self._index.clear()
