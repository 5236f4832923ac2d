"""
Geometry module - Motion estimates and frame bounds.

This module provides:
- Transform: Global similarity motion with linear algebra for smoothing
- WarpField: Global motion refined by a coarse grid of local offsets
- CropRegion: The fixed output rectangle
- BoundingBox: Outline of a warped frame, used for crop enclosure
"""

from livestab.geometry.transform import Transform, lerp
from livestab.geometry.warp_field import WarpField
from livestab.geometry.bounds import BoundingBox, CropRegion

__all__ = [
    "Transform",
    "WarpField",
    "BoundingBox",
    "CropRegion",
    "lerp",
]
