"""
Similarity transform used as the global camera-motion model.

Transforms are added, scaled and interpolated component-wise in
(x, y, rotation, log(scale)) space. This is a linear approximation of
rigid-motion composition; error accumulates slowly over long windows.
"""

import math
from dataclasses import dataclass
from typing import Any

import cv2
import numpy as np


@dataclass(frozen=True)
class Transform:
    """
    Compact 2-D camera motion: translation, rotation and uniform scale.

    Attributes:
        translation: (x, y) offset in pixels
        rotation: Rotation in radians, counter-clockwise about the origin
        scale: Uniform scale factor (1.0 = no scaling)

    Example:
        >>> jitter = Transform((2.0, -1.0))
        >>> drift = Transform((1.0, 0.0))
        >>> (jitter + drift).translation
        (3.0, -1.0)
        >>> (jitter * 0.5).translation
        (1.0, -0.5)
    """
    translation: tuple[float, float] = (0.0, 0.0)
    rotation: float = 0.0
    scale: float = 1.0

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"Transform scale must be positive, got {self.scale}")
        x, y = self.translation
        object.__setattr__(self, "translation", (float(x), float(y)))
        object.__setattr__(self, "rotation", float(self.rotation))
        object.__setattr__(self, "scale", float(self.scale))

    @classmethod
    def identity(cls) -> "Transform":
        """The transform that leaves every point where it is."""
        return cls()

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "Transform":
        """
        Decompose a 2x3 (or 3x3) similarity matrix.

        Shear and anisotropic scaling are not representable and are
        folded into the nearest similarity.

        Args:
            matrix: Affine matrix as produced by cv2.estimateAffinePartial2D

        Returns:
            Equivalent Transform
        """
        m = np.asarray(matrix, dtype=np.float64)
        if m.shape not in ((2, 3), (3, 3)):
            raise ValueError(f"Expected a 2x3 or 3x3 matrix, got shape {m.shape}")

        a, b = m[0, 0], m[1, 0]
        scale = math.hypot(a, b)
        return cls(
            translation=(m[0, 2], m[1, 2]),
            rotation=math.atan2(b, a),
            scale=scale if scale > 0 else 1.0,
        )

    def __add__(self, other: Any) -> "Transform":
        if not isinstance(other, Transform):
            return NotImplemented
        return Transform(
            translation=(
                self.translation[0] + other.translation[0],
                self.translation[1] + other.translation[1],
            ),
            rotation=self.rotation + other.rotation,
            scale=self.scale * other.scale,
        )

    def __sub__(self, other: Any) -> "Transform":
        if not isinstance(other, Transform):
            return NotImplemented
        return self + other * -1.0

    def __mul__(self, factor: float) -> "Transform":
        if isinstance(factor, Transform) or not np.isscalar(factor):
            return NotImplemented
        factor = float(factor)
        return Transform(
            translation=(self.translation[0] * factor, self.translation[1] * factor),
            rotation=self.rotation * factor,
            scale=self.scale ** factor,
        )

    __rmul__ = __mul__

    def __neg__(self) -> "Transform":
        return self * -1.0

    def lerp(self, other: "Transform", t: float) -> "Transform":
        """Interpolate towards other; t=0 gives self, t=1 gives other."""
        return self * (1.0 - t) + other * t

    @property
    def magnitude(self) -> float:
        """Distance from identity in (pixels, radians, log-scale) space."""
        return math.sqrt(
            self.translation[0] ** 2
            + self.translation[1] ** 2
            + self.rotation ** 2
            + math.log(self.scale) ** 2
        )

    def is_identity(self, tol: float = 1e-9) -> bool:
        """Check whether this transform is (numerically) the identity."""
        return self.magnitude <= tol

    def as_matrix(self) -> np.ndarray:
        """Return the 2x3 affine matrix suitable for cv2.warpAffine."""
        c = self.scale * math.cos(self.rotation)
        s = self.scale * math.sin(self.rotation)
        return np.array([
            [c, -s, self.translation[0]],
            [s, c, self.translation[1]],
        ], dtype=np.float64)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """
        Apply the transform to an array of points.

        Args:
            points: Nx2 (or Nx1x2) array of (x, y) positions

        Returns:
            Nx2 array of transformed positions
        """
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        m = self.as_matrix()
        return pts @ m[:, :2].T + m[:, 2]

    def warp(self, frame: np.ndarray, size: tuple[int, int] | None = None) -> np.ndarray:
        """
        Resample a frame through this transform.

        Args:
            frame: Image to warp
            size: Output (width, height); defaults to the input size

        Returns:
            Warped image
        """
        if size is None:
            size = (frame.shape[1], frame.shape[0])
        return cv2.warpAffine(frame, self.as_matrix(), size)


def lerp(a: Any, b: Any, t: float) -> Any:
    """Linear interpolation between two motion estimates."""
    return a * (1.0 - t) + b * t
