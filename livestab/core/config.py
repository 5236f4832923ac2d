"""
Configuration management for livestab.

Provides dataclass settings for tracking and stabilization, with JSON
file persistence and environment variable overrides.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict, fields, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SMOOTHING_RADIUS_MIN = 2
SMOOTHING_RADIUS_DEFAULT = 14
CROP_PROPORTION_DEFAULT = 0.05


class ConfigurationError(ValueError):
    """Raised when a configuration value is out of range."""


@dataclass
class TrackerConfig:
    """Settings for feature detection, optical flow and motion fitting."""
    # Frames wider than this are downscaled before tracking
    tracking_width: int = 640

    # Feature detection
    detection_grid: tuple[int, int] = (32, 18)
    feature_quality: float = 0.01
    feature_min_distance: int = 5
    feature_block_size: int = 7

    # Lucas-Kanade optical flow
    lk_window: tuple[int, int] = (21, 21)
    lk_max_level: int = 3
    lk_max_iterations: int = 30
    lk_epsilon: float = 0.01

    # Robust motion fit
    ransac_threshold: float = 2.0
    ransac_confidence: float = 0.99
    ransac_max_iters: int = 2000
    min_motion_quality: float = 0.3
    min_motion_samples: int = 100

    # Local motion refinement, (1, 1) disables it
    motion_resolution: tuple[int, int] = (2, 2)
    min_local_samples: int = 6

    def validate(self) -> None:
        """
        Check that all values are usable.

        Raises:
            ConfigurationError: If a value is out of range
        """
        if self.tracking_width < 16:
            raise ConfigurationError(f"tracking_width too small: {self.tracking_width}")
        for name in ("detection_grid", "motion_resolution", "lk_window"):
            cols, rows = getattr(self, name)
            if cols < 1 or rows < 1:
                raise ConfigurationError(f"{name} must be positive, got {(cols, rows)}")
        if not 0.0 < self.feature_quality < 1.0:
            raise ConfigurationError(f"feature_quality must be in (0, 1), got {self.feature_quality}")
        if not 0.0 <= self.min_motion_quality <= 1.0:
            raise ConfigurationError(
                f"min_motion_quality must be in [0, 1], got {self.min_motion_quality}"
            )
        if self.min_motion_samples < 2:
            raise ConfigurationError(
                f"min_motion_samples must be at least 2, got {self.min_motion_samples}"
            )
        if self.ransac_threshold <= 0:
            raise ConfigurationError(f"ransac_threshold must be positive, got {self.ransac_threshold}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrackerConfig":
        """Create a tracker config from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown tracker setting '%s'", key)
                continue
            if isinstance(value, list):
                value = tuple(value)
            values[key] = value
        return cls(**values)


@dataclass
class StabilizerConfig:
    """
    Main configuration container.

    Example:
        config = StabilizerConfig.load("stabilizer.json")
        config.smoothing_radius = 20
        stabilizer = VideoStabilizer(config)
    """
    smoothing_radius: int = SMOOTHING_RADIUS_DEFAULT
    crop_proportion: float = CROP_PROPORTION_DEFAULT
    test_mode: bool = False
    tracker: TrackerConfig = field(default_factory=TrackerConfig)

    def validate(self) -> None:
        """
        Check that all values are usable.

        Raises:
            ConfigurationError: If a value is out of range
        """
        validate_smoothing_radius(self.smoothing_radius)
        if not 0.0 < self.crop_proportion < 1.0:
            raise ConfigurationError(
                f"crop_proportion must be in (0, 1), got {self.crop_proportion}"
            )
        self.tracker.validate()

    @property
    def local_motion_resolution(self) -> tuple[int, int]:
        return self.tracker.motion_resolution

    def copy(self, **changes: Any) -> "StabilizerConfig":
        """Return a copy with some top-level values replaced."""
        return replace(self, tracker=replace(self.tracker), **changes)

    @classmethod
    def load(cls, path: str | Path) -> "StabilizerConfig":
        """Load configuration from a JSON file."""
        return load_config(path)

    def save(self, path: str | Path) -> None:
        """Save configuration to a JSON file."""
        save_config(self, path)

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StabilizerConfig":
        """Create a config from a dictionary."""
        return cls(
            smoothing_radius=int(data.get("smoothing_radius", SMOOTHING_RADIUS_DEFAULT)),
            crop_proportion=float(data.get("crop_proportion", CROP_PROPORTION_DEFAULT)),
            test_mode=bool(data.get("test_mode", False)),
            tracker=TrackerConfig.from_dict(data.get("tracker", {})),
        )


def validate_smoothing_radius(radius: int) -> None:
    """
    Check a smoothing radius.

    Raises:
        ConfigurationError: If the radius is odd or below the minimum
    """
    if radius < SMOOTHING_RADIUS_MIN:
        raise ConfigurationError(
            f"Smoothing radius must be at least {SMOOTHING_RADIUS_MIN}, got {radius}"
        )
    if radius % 2 != 0:
        raise ConfigurationError(f"Smoothing radius must be even, got {radius}")


def load_config(path: str | Path) -> StabilizerConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        Parsed and validated StabilizerConfig

    Raises:
        FileNotFoundError: If the config file doesn't exist
        json.JSONDecodeError: If the JSON is invalid
        ConfigurationError: If a value is out of range
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, "r") as f:
        data = json.load(f)

    config = StabilizerConfig.from_dict(data)
    config.validate()
    return config


def save_config(config: StabilizerConfig, path: str | Path) -> None:
    """
    Save configuration to a JSON file.

    Args:
        config: Configuration object to save
        path: Output path for the JSON file
    """
    path = Path(path)
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)


def get_env_config(prefix: str = "LIVESTAB_") -> dict[str, Any]:
    """
    Get configuration from environment variables.

    All environment variables starting with the prefix will be included.
    Variable names are converted to lowercase with the prefix removed.

    Example:
        LIVESTAB_SMOOTHING_RADIUS=20 -> {"smoothing_radius": "20"}
    """
    config = {}
    for key, value in os.environ.items():
        if key.startswith(prefix):
            config_key = key[len(prefix):].lower()
            config[config_key] = value
    return config


def apply_env_overrides(
    config: StabilizerConfig,
    prefix: str = "LIVESTAB_",
) -> StabilizerConfig:
    """
    Return a copy of config with top-level values taken from the environment.

    Raises:
        ConfigurationError: If an override cannot be parsed or is out of range
    """
    overrides = get_env_config(prefix)
    changes: dict[str, Any] = {}

    try:
        if "smoothing_radius" in overrides:
            changes["smoothing_radius"] = int(overrides["smoothing_radius"])
        if "crop_proportion" in overrides:
            changes["crop_proportion"] = float(overrides["crop_proportion"])
    except ValueError as e:
        raise ConfigurationError(f"Invalid environment override: {e}") from e

    if "test_mode" in overrides:
        changes["test_mode"] = overrides["test_mode"].strip().lower() in ("1", "true", "yes", "on")

    updated = config.copy(**changes)
    updated.validate()
    return updated
