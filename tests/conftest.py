"""
Shared fixtures: synthetic frames cut from a larger random texture.
"""

import cv2
import numpy as np
import pytest


@pytest.fixture
def scene():
    """
    Factory for frames that look at a static textured scene.

    frame_at(dx, dy) returns a window whose origin is moved by (dx, dy)
    pixels, so the content appears to move by (-dx, -dy).
    """
    rng = np.random.default_rng(7)
    noise = rng.integers(0, 256, (90, 120), dtype=np.uint8)
    texture = cv2.resize(noise, (480, 360), interpolation=cv2.INTER_CUBIC)
    texture = cv2.cvtColor(texture, cv2.COLOR_GRAY2BGR)

    def frame_at(dx: int = 0, dy: int = 0, size: tuple[int, int] = (320, 240)) -> np.ndarray:
        width, height = size
        x, y = 80 + dx, 60 + dy
        return texture[y:y + height, x:x + width].copy()

    return frame_at


@pytest.fixture
def release_counter():
    """Release hook that records how often each handle was given back."""
    from collections import Counter

    counts = Counter()

    def release(handle):
        counts[handle] += 1

    release.counts = counts
    return release
