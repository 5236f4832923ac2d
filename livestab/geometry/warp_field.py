"""
Dense motion field for scenes with non-uniform motion.

A WarpField is a global Transform refined by a coarse grid of local
translation offsets, one per region. Offsets are interpolated bilinearly
between region centres and clamped at the frame edges.
"""

from typing import Any

import cv2
import numpy as np
from scipy.ndimage import map_coordinates

from livestab.geometry.transform import Transform


class WarpField:
    """
    Global motion plus per-region local corrections.

    Supports the same algebra as Transform (+, -, *, lerp) so that it can
    flow through trajectory accumulation and smoothing unchanged. Adding a
    plain Transform promotes it to a field with zero local offsets.

    Example:
        >>> field = WarpField.identity((1280, 720), resolution=(2, 2))
        >>> moved = field + Transform((3.0, 0.0))
        >>> moved.as_matrix()[0, 2]
        3.0
    """

    def __init__(
        self,
        size: tuple[int, int],
        resolution: tuple[int, int] = (2, 2),
        global_motion: Transform | None = None,
        offsets: np.ndarray | None = None,
    ):
        """
        Create a warp field.

        Args:
            size: (width, height) of the frame the field covers
            resolution: (cols, rows) of the local offset grid
            global_motion: Global component (identity if None)
            offsets: (rows, cols, 2) array of local (dx, dy) corrections
        """
        cols, rows = resolution
        if cols < 1 or rows < 1:
            raise ValueError(f"Invalid warp field resolution: {resolution}")

        self.size = (int(size[0]), int(size[1]))
        self.resolution = (int(cols), int(rows))
        self.global_motion = global_motion if global_motion is not None else Transform.identity()

        if offsets is None:
            offsets = np.zeros((rows, cols, 2), dtype=np.float64)
        else:
            offsets = np.array(offsets, dtype=np.float64)
            if offsets.shape != (rows, cols, 2):
                raise ValueError(
                    f"Offsets shape {offsets.shape} does not match resolution {resolution}"
                )
        offsets.setflags(write=False)
        self._offsets = offsets

    @classmethod
    def identity(
        cls,
        size: tuple[int, int],
        resolution: tuple[int, int] = (2, 2),
    ) -> "WarpField":
        """A field that moves nothing."""
        return cls(size, resolution)

    @classmethod
    def from_transform(
        cls,
        transform: Transform,
        size: tuple[int, int],
        resolution: tuple[int, int] = (2, 2),
    ) -> "WarpField":
        """Promote a global transform to a field with zero local offsets."""
        return cls(size, resolution, global_motion=transform)

    @property
    def offsets(self) -> np.ndarray:
        """Read-only (rows, cols, 2) grid of local corrections."""
        return self._offsets

    def _coerce(self, other: Any) -> "WarpField | None":
        if isinstance(other, Transform):
            return WarpField.from_transform(other, self.size, self.resolution)
        if isinstance(other, WarpField):
            if other.resolution != self.resolution or other.size != self.size:
                raise ValueError(
                    "Cannot combine warp fields of different shapes: "
                    f"{self.size}@{self.resolution} vs {other.size}@{other.resolution}"
                )
            return other
        return None

    def __add__(self, other: Any) -> "WarpField":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return WarpField(
            self.size,
            self.resolution,
            global_motion=self.global_motion + rhs.global_motion,
            offsets=self._offsets + rhs._offsets,
        )

    __radd__ = __add__

    def __sub__(self, other: Any) -> "WarpField":
        rhs = self._coerce(other)
        if rhs is None:
            return NotImplemented
        return self + rhs * -1.0

    def __rsub__(self, other: Any) -> "WarpField":
        lhs = self._coerce(other)
        if lhs is None:
            return NotImplemented
        return lhs + self * -1.0

    def __mul__(self, factor: float) -> "WarpField":
        if not np.isscalar(factor):
            return NotImplemented
        factor = float(factor)
        return WarpField(
            self.size,
            self.resolution,
            global_motion=self.global_motion * factor,
            offsets=self._offsets * factor,
        )

    __rmul__ = __mul__

    def __neg__(self) -> "WarpField":
        return self * -1.0

    def lerp(self, other: Any, t: float) -> "WarpField":
        """Interpolate towards other; t=0 gives self, t=1 gives other."""
        return self * (1.0 - t) + other * t

    @property
    def magnitude(self) -> float:
        """Global magnitude plus the largest local correction."""
        local = float(np.linalg.norm(self._offsets, axis=2).max())
        return self.global_motion.magnitude + local

    def is_identity(self, tol: float = 1e-9) -> bool:
        return self.magnitude <= tol

    def as_matrix(self) -> np.ndarray:
        """2x3 affine matrix of the global component."""
        return self.global_motion.as_matrix()

    def has_local_motion(self, tol: float = 1e-9) -> bool:
        return bool(np.abs(self._offsets).max() > tol)

    def sample_offsets(self, points: np.ndarray) -> np.ndarray:
        """
        Bilinearly sample the local corrections at arbitrary positions.

        Args:
            points: Nx2 array of (x, y) positions in frame pixels

        Returns:
            Nx2 array of (dx, dy) corrections
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        cols, rows = self.resolution
        width, height = self.size

        # Region centres sit at (i + 0.5) * region_size
        grid_x = pts[:, 0] * cols / width - 0.5
        grid_y = pts[:, 1] * rows / height - 0.5
        coords = np.vstack([grid_y, grid_x])

        return np.column_stack([
            map_coordinates(self._offsets[..., 0], coords, order=1, mode="nearest"),
            map_coordinates(self._offsets[..., 1], coords, order=1, mode="nearest"),
        ])

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Apply global motion and local corrections to Nx2 points."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        return self.global_motion.transform_points(pts) + self.sample_offsets(pts)

    def dense_offsets(self, size: tuple[int, int] | None = None) -> np.ndarray:
        """Upsample the offset grid to a per-pixel (h, w, 2) field."""
        width, height = size if size is not None else self.size
        return cv2.resize(
            self._offsets.astype(np.float32),
            (width, height),
            interpolation=cv2.INTER_LINEAR,
        ).reshape(height, width, 2)

    def warp(self, frame: np.ndarray, size: tuple[int, int] | None = None) -> np.ndarray:
        """
        Resample a frame through this field.

        Falls back to a plain affine warp when there is no local motion.
        """
        if size is None:
            size = (frame.shape[1], frame.shape[0])

        if not self.has_local_motion():
            return self.global_motion.warp(frame, size)

        width, height = size
        dense = self.dense_offsets(size)
        xs, ys = np.meshgrid(
            np.arange(width, dtype=np.float32),
            np.arange(height, dtype=np.float32),
        )

        # Inverse mapping: remove the local correction, then undo the global motion
        inv = cv2.invertAffineTransform(self.as_matrix()).astype(np.float32)
        qx = xs - dense[..., 0]
        qy = ys - dense[..., 1]
        map_x = inv[0, 0] * qx + inv[0, 1] * qy + inv[0, 2]
        map_y = inv[1, 0] * qx + inv[1, 1] * qy + inv[1, 2]

        return cv2.remap(frame, map_x, map_y, cv2.INTER_LINEAR)

    def __repr__(self) -> str:
        return (
            f"WarpField(size={self.size}, resolution={self.resolution}, "
            f"global_motion={self.global_motion!r})"
        )
