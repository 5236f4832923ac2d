"""
Stabilization module - Trajectory smoothing and the streaming pipeline.

This module provides:
- DelayLine: Fixed-capacity FIFO with a deterministic lag
- TrajectorySmoother: Gaussian smoothing of the delayed camera path
- VideoStabilizer: Tracker and smoother wired together for hosts

Example:
    >>> from livestab.stabilization import VideoStabilizer
    >>> stabilizer = VideoStabilizer()
    >>> for frame in video:
    ...     result = stabilizer.process(frame)
"""

from livestab.stabilization.delay_line import DelayLine
from livestab.stabilization.smoother import (
    CROP_STEPS,
    FrameBuffer,
    MotionSample,
    ReconfigureResult,
    StabilizedFrame,
    TrajectorySmoother,
    enclose_crop,
)
from livestab.stabilization.stabilizer import VideoStabilizer

__all__ = [
    "DelayLine",
    "CROP_STEPS",
    "FrameBuffer",
    "MotionSample",
    "ReconfigureResult",
    "StabilizedFrame",
    "TrajectorySmoother",
    "enclose_crop",
    "VideoStabilizer",
]
