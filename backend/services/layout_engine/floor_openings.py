"""
Stairwell holes in floor slabs.

A slab with one rectangular hole is rebuilt from up to four strips: the
left and right strips run the full slab depth (and own the corners), the
front and back strips only span the hole's X range.
"""

from dataclasses import dataclass
from typing import List, Sequence

from .geometry_utils import Box, Vec3, clamp

EPSILON = 0.001
MIN_HOLE = 0.01


@dataclass(frozen=True)
class FloorStrip:
    name: str
    box: Box

    @property
    def position(self) -> Vec3:
        return self.box.center

    @property
    def size(self) -> Vec3:
        return self.box.size


def punch_floor(floor_box: Box,
                hole_center_xz: Sequence[float],
                hole_size_xz: Sequence[float]) -> List[FloorStrip]:
    """
    Cut a rectangular hole out of *floor_box*.

    The hole is clamped into the slab. If it degenerates to no area the
    full slab is returned unchanged as a single ``Floor`` strip, otherwise
    the ``Floor_Left``/``Floor_Right``/``Floor_Front``/``Floor_Back``
    strips that are thicker than ``EPSILON``.
    """
    min_x, min_y, min_z = floor_box.min
    max_x, max_y, max_z = floor_box.max

    hole_w = clamp(hole_size_xz[0], MIN_HOLE, (max_x - min_x) - MIN_HOLE)
    hole_d = clamp(hole_size_xz[1], MIN_HOLE, (max_z - min_z) - MIN_HOLE)
    cx, cz = hole_center_xz

    hole_min_x = clamp(cx - hole_w / 2.0, min_x, max_x)
    hole_max_x = clamp(cx + hole_w / 2.0, min_x, max_x)
    hole_min_z = clamp(cz - hole_d / 2.0, min_z, max_z)
    hole_max_z = clamp(cz + hole_d / 2.0, min_z, max_z)

    if hole_max_x - hole_min_x <= EPSILON or hole_max_z - hole_min_z <= EPSILON:
        return [FloorStrip("Floor", floor_box)]

    candidates = [
        ("Floor_Left", (min_x, min_y, min_z), (hole_min_x, max_y, max_z)),
        ("Floor_Right", (hole_max_x, min_y, min_z), (max_x, max_y, max_z)),
        ("Floor_Front", (hole_min_x, min_y, hole_max_z), (hole_max_x, max_y, max_z)),
        ("Floor_Back", (hole_min_x, min_y, min_z), (hole_max_x, max_y, hole_min_z)),
    ]
    strips = []
    for name, lo, hi in candidates:
        if hi[0] - lo[0] > EPSILON and hi[2] - lo[2] > EPSILON:
            strips.append(FloorStrip(name, Box(lo, hi)))
    return strips
