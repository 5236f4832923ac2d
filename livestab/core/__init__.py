"""
Core module - Configuration, processor base class and video I/O.
"""

from livestab.core.base import BaseProcessor
from livestab.core.video import VideoReader, VideoWriter, VideoProperties
from livestab.core.config import (
    ConfigurationError,
    StabilizerConfig,
    TrackerConfig,
    load_config,
    save_config,
)
from livestab.core.hardware import (
    accel_config,
    configure_acceleration,
    print_acceleration_status,
    AccelerationConfig,
)

__all__ = [
    "BaseProcessor",
    "VideoReader",
    "VideoWriter",
    "VideoProperties",
    "ConfigurationError",
    "StabilizerConfig",
    "TrackerConfig",
    "load_config",
    "save_config",
    "accel_config",
    "configure_acceleration",
    "print_acceleration_status",
    "AccelerationConfig",
]
