"""
OpenCL acceleration settings for livestab.

OpenCV can dispatch image operations (resize, warpAffine, remap, optical
flow) to an OpenCL device through its transparent API. This module wraps
that switch in a package-level configuration object.

Usage:
    from livestab.core.hardware import accel_config

    print(accel_config.enabled)
    accel_config.disable()
    accel_config.enable()

    # Or through the package
    import livestab
    livestab.configure_acceleration(enabled=False)
"""

import logging
import platform
from dataclasses import dataclass, field

import cv2

logger = logging.getLogger(__name__)


@dataclass
class AccelerationConfig:
    """
    OpenCL acceleration configuration.

    A single module-level instance (accel_config) controls the setting for
    the whole process, since cv2.ocl is itself process-wide.

    Attributes:
        enabled: Requested state of the OpenCL switch
    """
    enabled: bool = True

    # Runtime state
    _initialized: bool = field(default=False, repr=False)
    _opencl_available: bool = field(default=False, repr=False)
    _device_name: str = field(default="", repr=False)

    def __post_init__(self):
        if not self._initialized:
            self._detect_capabilities()

    def _detect_capabilities(self) -> None:
        """Probe OpenCV for an OpenCL device."""
        self._initialized = True
        self._opencl_available = bool(cv2.ocl.haveOpenCL())

        if self._opencl_available:
            device = cv2.ocl.Device.getDefault()
            self._device_name = device.name() if device is not None else ""
        else:
            self.enabled = False

        self._apply()

    def _apply(self) -> None:
        cv2.ocl.setUseOpenCL(self.enabled and self._opencl_available)
        logger.debug("OpenCL %s", "enabled" if self.active else "disabled")

    @property
    def available(self) -> bool:
        return self._opencl_available

    @property
    def active(self) -> bool:
        """Whether OpenCV is currently dispatching to OpenCL."""
        return bool(cv2.ocl.useOpenCL())

    def enable(self) -> None:
        """Enable OpenCL if a device is available."""
        self.enabled = self._opencl_available
        self._apply()

    def disable(self) -> None:
        """Disable OpenCL."""
        self.enabled = False
        self._apply()

    def status(self) -> dict:
        """Get current acceleration status."""
        return {
            "enabled": self.enabled,
            "active": self.active,
            "platform": platform.system(),
            "opencv_version": cv2.__version__,
            "opencl_available": self._opencl_available,
            "device": self._device_name,
        }

    def __repr__(self) -> str:
        status = "enabled" if self.enabled else "disabled"
        device = self._device_name or "none"
        return f"AccelerationConfig({status}, device={device})"


# Global configuration instance
accel_config = AccelerationConfig()


def configure_acceleration(enabled: bool = True) -> AccelerationConfig:
    """
    Configure OpenCL acceleration at the package level.

    Enabling has no effect when no OpenCL device is available.

    Args:
        enabled: Master switch for OpenCL

    Returns:
        The updated AccelerationConfig instance

    Example:
        >>> from livestab.core.hardware import configure_acceleration
        >>> configure_acceleration(enabled=False)
    """
    if enabled:
        accel_config.enable()
    else:
        accel_config.disable()
    return accel_config


def print_acceleration_status() -> None:
    """Print current acceleration status."""
    status = accel_config.status()
    print("livestab Acceleration Status")
    print("=" * 40)
    print(f"  Platform:        {status['platform']}")
    print(f"  OpenCV:          {status['opencv_version']}")
    print(f"  OpenCL:          {'available' if status['opencl_available'] else 'not found'}")
    print(f"  Master switch:   {'enabled' if status['enabled'] else 'disabled'}")
    print(f"  Active:          {'yes' if status['active'] else 'no'}")
    if status['device']:
        print(f"  Device:          {status['device']}")
