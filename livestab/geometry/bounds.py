"""
Crop rectangle and warped-frame bounds.
"""

from dataclasses import dataclass
from typing import Any

import cv2
import numpy as np


@dataclass(frozen=True)
class CropRegion:
    """Axis-aligned output rectangle in frame pixels."""
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_frame(cls, size: tuple[int, int], proportion: float) -> "CropRegion":
        """
        Centre a crop rectangle inside a frame.

        Args:
            size: Frame (width, height)
            proportion: Total fraction cropped along each dimension (0-1)

        Returns:
            The centred crop rectangle
        """
        if not 0.0 <= proportion < 1.0:
            raise ValueError(f"Crop proportion must be in [0, 1), got {proportion}")

        width, height = size
        total_horz = int(width * proportion)
        total_vert = int(height * proportion)
        return cls(
            x=total_horz // 2,
            y=total_vert // 2,
            width=width - total_horz,
            height=height - total_vert,
        )

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def corners(self) -> np.ndarray:
        """4x2 array of corners, clockwise from the top-left."""
        x0, y0 = self.x, self.y
        x1, y1 = self.x + self.width, self.y + self.height
        return np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1]], dtype=np.float64)

    def contains_point(self, x: float, y: float) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height

    def slice(self, frame: np.ndarray) -> np.ndarray:
        """Cut this region out of a frame (a view, not a copy)."""
        return frame[self.y:self.y + self.height, self.x:self.x + self.width]

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


class BoundingBox:
    """
    Outline of a frame after it has been warped by a motion estimate.

    Example:
        >>> crop = CropRegion.from_frame((640, 480), 0.1)
        >>> BoundingBox((640, 480), Transform((5.0, 0.0))).encloses(crop)
        True
    """

    def __init__(self, frame_size: tuple[int, int], estimate: Any = None):
        """
        Args:
            frame_size: (width, height) of the unwarped frame
            estimate: Transform or WarpField applied to the frame (None = identity)
        """
        width, height = frame_size
        self.frame_size = (int(width), int(height))
        self._frame_corners = np.array(
            [[0, 0], [width, 0], [width, height], [0, height]], dtype=np.float64
        )
        self.corners = self._frame_corners.copy()
        if estimate is not None:
            self.transform(estimate)

    def transform(self, estimate: Any) -> "BoundingBox":
        """Re-target the box to the frame warped by a new estimate."""
        self.corners = estimate.transform_points(self._frame_corners)
        return self

    def encloses(self, region: CropRegion) -> bool:
        """Check that every corner of the region lies inside the warped frame."""
        contour = self.corners.astype(np.float32).reshape(-1, 1, 2)
        return all(
            cv2.pointPolygonTest(contour, (float(x), float(y)), False) >= 0
            for x, y in region.corners()
        )
