"""
Axis-aligned box and interval utilities.

All room geometry is expressed as boxes in a Y-up frame: X and Z span the
horizontal footprint, Y is the vertical axis. Rotations are yaw-only
(about +Y) except for explicit custom elements.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from shapely import affinity
from shapely.geometry import box as shapely_box
from trimesh import transformations

Vec3 = Tuple[float, float, float]

SNAP_STEP = 0.001
BOUNDS_DECIMALS = 9             # drops float noise so touching faces stay touching


@dataclass(frozen=True)
class Box:
    """Axis-aligned bounding volume with ``min <= max`` on every axis."""

    min: Vec3
    max: Vec3

    def __post_init__(self):
        lo = tuple(float(min(a, b)) for a, b in zip(self.min, self.max))
        hi = tuple(float(max(a, b)) for a, b in zip(self.min, self.max))
        object.__setattr__(self, "min", lo)
        object.__setattr__(self, "max", hi)

    @classmethod
    def from_center_size(cls, center: Sequence[float], size: Sequence[float]) -> "Box":
        half = [abs(s) / 2.0 for s in size]
        return cls(
            tuple(c - h for c, h in zip(center, half)),
            tuple(c + h for c, h in zip(center, half)),
        )

    @classmethod
    def enclosing(cls, boxes: Iterable["Box"]) -> Optional["Box"]:
        """Smallest box containing every box in *boxes* (``None`` if empty)."""
        result = None
        for b in boxes:
            result = b if result is None else result.union(b)
        return result

    @property
    def center(self) -> Vec3:
        return tuple((a + b) / 2.0 for a, b in zip(self.min, self.max))

    @property
    def size(self) -> Vec3:
        return tuple(b - a for a, b in zip(self.min, self.max))

    def union(self, other: "Box") -> "Box":
        return Box(
            tuple(min(a, b) for a, b in zip(self.min, other.min)),
            tuple(max(a, b) for a, b in zip(self.max, other.max)),
        )

    def translated(self, delta: Sequence[float]) -> "Box":
        return Box(
            tuple(a + d for a, d in zip(self.min, delta)),
            tuple(b + d for b, d in zip(self.max, delta)),
        )

    def to_dict(self) -> dict:
        return {"min": [round(v, 4) for v in self.min],
                "max": [round(v, 4) for v in self.max]}


# ===========================================================================
# INTERVALS
# ===========================================================================

def interval_gap(min_a: float, max_a: float, min_b: float, max_b: float) -> float:
    """
    Separation between two closed intervals.

    Returns ``min_b - max_a`` when A ends before B starts,
    ``min_a - max_b`` when B ends before A starts, else ``0``.
    """
    if max_a < min_b:
        return min_b - max_a
    if max_b < min_a:
        return min_a - max_b
    return 0.0


def interval_overlap(min_a: float, max_a: float, min_b: float, max_b: float) -> float:
    """Positive overlap length of two intervals (``0`` when they only touch or are apart)."""
    return max(0.0, min(max_a, max_b) - max(min_a, min_b))


def axis_overlaps(a: Box, b: Box) -> Vec3:
    return tuple(interval_overlap(a.min[i], a.max[i], b.min[i], b.max[i]) for i in range(3))


def axis_gaps(a: Box, b: Box) -> Vec3:
    return tuple(interval_gap(a.min[i], a.max[i], b.min[i], b.max[i]) for i in range(3))


def overlap_depth(a: Box, b: Box) -> float:
    """
    Penetration depth of two boxes.

    The smallest of the three per-axis overlaps; non-zero only when the
    boxes overlap on all three axes, so touching faces report ``0``.
    """
    return min(axis_overlaps(a, b))


def horizontal_gap(a: Box, b: Box) -> Optional[float]:
    """
    Horizontal separation ``max(gap_x, gap_z)`` of two boxes.

    Returns ``None`` when the boxes are vertically separated (stacked on
    different floors), since such pairs are never considered neighbours.
    """
    gap_x, gap_y, gap_z = axis_gaps(a, b)
    if gap_y > 0.0:
        return None
    return max(gap_x, gap_z)


# ===========================================================================
# YAW ROTATIONS
# ===========================================================================

def yaw_matrix(yaw_deg: float) -> np.ndarray:
    """3x3 rotation about +Y by *yaw_deg* degrees."""
    return transformations.rotation_matrix(math.radians(yaw_deg), [0, 1, 0])[:3, :3]


def rotate_yaw(vec: Sequence[float], yaw_deg: float) -> np.ndarray:
    return yaw_matrix(yaw_deg) @ np.asarray(vec, dtype=float)


def yaw_forward(yaw_deg: float) -> Tuple[float, float]:
    """Horizontal (x, z) forward direction of a yaw; 0 degrees faces +Z."""
    rad = math.radians(yaw_deg)
    return math.sin(rad), math.cos(rad)


def heading(x: float, z: float) -> float:
    """Yaw in degrees whose forward direction points along (x, z)."""
    return math.degrees(math.atan2(x, z))


def normalize_yaw(yaw_deg: float) -> float:
    """Wrap an angle into ``(-180, 180]``."""
    wrapped = math.fmod(yaw_deg, 360.0)
    if wrapped <= -180.0:
        wrapped += 360.0
    elif wrapped > 180.0:
        wrapped -= 360.0
    return wrapped


def signed_yaw_between(src: Sequence[float], dst: Sequence[float]) -> float:
    """
    Yaw (degrees) that turns horizontal direction *src* onto *dst*.

    Both arguments are (x, z) pairs; the result lies in ``(-180, 180]``.
    """
    return normalize_yaw(heading(dst[0], dst[1]) - heading(src[0], src[1]))


def euler_matrix(rotation_deg: Sequence[float]) -> np.ndarray:
    """3x3 matrix for static XYZ Euler angles in degrees."""
    rx, ry, rz = (math.radians(a) for a in rotation_deg)
    return transformations.euler_matrix(rx, ry, rz, "sxyz")[:3, :3]


def transformed_box(center: Sequence[float],
                    size: Sequence[float],
                    rotation: Optional[np.ndarray] = None,
                    translation: Sequence[float] = (0.0, 0.0, 0.0)) -> Box:
    """
    World-space AABB of a box after rotation and translation.

    Parameters
    ----------
    center, size : sequence of float
        Box centre and extents in its parent frame.
    rotation : ndarray, optional
        3x3 rotation applied about the parent origin.
    translation : sequence of float
        Offset added after rotating.
    """
    half = np.abs(np.asarray(size, dtype=float)) / 2.0
    signs = np.array([[sx, sy, sz] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)])
    corners = np.asarray(center, dtype=float) + signs * half
    if rotation is not None:
        corners = corners @ np.asarray(rotation).T
    corners = corners + np.asarray(translation, dtype=float)
    lo = np.round(corners.min(axis=0), BOUNDS_DECIMALS)
    hi = np.round(corners.max(axis=0), BOUNDS_DECIMALS)
    return Box(tuple(lo.tolist()), tuple(hi.tolist()))


def footprint_bounds(center_xz: Sequence[float],
                     size_xz: Sequence[float],
                     yaw_deg: float) -> Tuple[float, float, float, float]:
    """
    Axis-aligned (min_x, min_z, max_x, max_z) of a yawed rectangle.

    The footprint is built as a Shapely box in the (x, z) plane; a positive
    yaw turns +Z towards +X, which is clockwise in that plane.
    """
    cx, cz = center_xz
    hw, hd = abs(size_xz[0]) / 2.0, abs(size_xz[1]) / 2.0
    rect = shapely_box(cx - hw, cz - hd, cx + hw, cz + hd)
    rect = affinity.rotate(rect, -yaw_deg, origin=(cx, cz))
    return rect.bounds


def snap(value: float, step: float = SNAP_STEP) -> float:
    return round(round(value / step) * step, 6)


def snap_vec(vec: Sequence[float], step: float = SNAP_STEP) -> Vec3:
    return tuple(snap(v, step) for v in vec)


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp *value* into ``[lo, hi]``; *hi* wins if the range is inverted."""
    return min(max(value, lo), hi)
