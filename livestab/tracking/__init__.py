"""
Tracking module - Frame-to-frame camera motion estimation.

This module provides:
- FrameTracker: Lucas-Kanade optical flow with robust similarity fitting
- FeatureDetector: Shi-Tomasi corners spread over a bucket grid
- SpatialIndex: Fixed grid of buckets holding at most one item each

Example:
    >>> from livestab.tracking import FrameTracker
    >>> tracker = FrameTracker()
    >>> for frame in video:
    ...     motion = tracker.track(frame)
"""

from livestab.tracking.spatial_index import SpatialIndex, SpatialKey
from livestab.tracking.detector import FeatureDetector
from livestab.tracking.tracker import FrameTracker, TrackingStats

__all__ = [
    "SpatialIndex",
    "SpatialKey",
    "FeatureDetector",
    "FrameTracker",
    "TrackingStats",
]
