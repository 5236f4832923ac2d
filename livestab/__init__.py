"""
livestab - Real-time video stabilization
========================================

A streaming stabilizer: frames are tracked as they arrive, the camera path
is smoothed over a delayed sliding window and each frame comes back out
warped onto the smoothed path and cropped.

Main modules:
- livestab.geometry: Motion estimates (Transform, WarpField) and crop bounds
- livestab.tracking: Feature detection and frame-to-frame motion tracking
- livestab.stabilization: Trajectory smoothing and the VideoStabilizer pipeline
- livestab.core: Configuration, video I/O and OpenCL settings

OpenCL Acceleration:
    >>> import livestab
    >>> livestab.configure_acceleration(enabled=False)
    >>> livestab.print_acceleration_status()

Quick start:
    >>> from livestab import VideoStabilizer, StabilizerConfig
    >>> stabilizer = VideoStabilizer(StabilizerConfig(smoothing_radius=10))
    >>> for frame in video:
    ...     result = stabilizer.process(frame)
    ...     if result is not None:
    ...         show(result.cropped)
"""

__version__ = "0.1.0"

# Convenience imports
from livestab.core.config import ConfigurationError, StabilizerConfig, TrackerConfig
from livestab.core.hardware import (
    accel_config,
    configure_acceleration,
    print_acceleration_status,
)
from livestab.geometry import Transform, WarpField, CropRegion
from livestab.tracking import FrameTracker
from livestab.stabilization import TrajectorySmoother, VideoStabilizer

__all__ = [
    "__version__",
    "ConfigurationError",
    "StabilizerConfig",
    "TrackerConfig",
    "accel_config",
    "configure_acceleration",
    "print_acceleration_status",
    "Transform",
    "WarpField",
    "CropRegion",
    "FrameTracker",
    "TrajectorySmoother",
    "VideoStabilizer",
]
