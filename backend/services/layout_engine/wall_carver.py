"""
Wall opening carver.

Splits a straight wall into the solid boxes left over once its door and
window openings are cut out: side pieces between openings, a sill below
each raised opening and a header above each opening that stops short of
the wall top. The output covers the wall exactly once, minus the openings.
"""

from dataclasses import dataclass, replace
from typing import Iterable, List

from .geometry_utils import Vec3, clamp
from .room_model import WallOpening

EPSILON = 0.001             # pieces thinner than this are skipped
MIN_OPENING = 0.01
MAX_OPENING_RATIO = 0.95    # an opening never takes the whole wall


@dataclass(frozen=True)
class WallSegment:
    """A solid piece of a carved wall, centred in the wall's frame."""

    kind: str                 # side | sill | header
    name: str
    position: Vec3
    size: Vec3


def clamp_opening(opening: WallOpening, length: float, height: float) -> WallOpening:
    """Clamp an opening so it fits inside a ``length`` x ``height`` wall."""
    half = length / 2.0
    width = clamp(opening.width, MIN_OPENING, MAX_OPENING_RATIO * length)
    op_height = clamp(opening.height, MIN_OPENING, MAX_OPENING_RATIO * height)
    center = clamp(opening.center, -half + width / 2.0, half - width / 2.0)
    base_y = clamp(opening.base_y, 0.0, height - op_height)
    return replace(opening, width=width, height=op_height, center=center, base_y=base_y)


def carve_wall(length: float,
               height: float,
               depth: float,
               axis: str = "x",
               openings: Iterable[WallOpening] = ()) -> List[WallSegment]:
    """
    Carve *openings* out of a wall and return the remaining solids.

    Parameters
    ----------
    length, height, depth : float
        Wall extents along its run, vertically and through its thickness.
    axis : str
        ``"x"`` for a wall running along X, ``"z"`` for one running along Z.
    openings : iterable of WallOpening
        Openings in wall coordinates; they are clamped into the wall first.

    Returns
    -------
    list[WallSegment]
        Segments ordered along the wall. Positions are relative to the
        wall centre, with Y measured from mid-height.
    """
    if length <= EPSILON or height <= EPSILON:
        return []

    half = length / 2.0
    segments: List[WallSegment] = []

    def emit(kind: str, start: float, end: float, y0: float, y1: float):
        run = end - start
        rise = y1 - y0
        along = (start + end) / 2.0
        y = (y0 + y1) / 2.0 - height / 2.0
        if axis == "x":
            position, size = (along, y, 0.0), (run, rise, depth)
        else:
            position, size = (0.0, y, along), (depth, rise, run)
        prefix = {"side": "Seg", "sill": "Sill", "header": "Header"}[kind]
        segments.append(WallSegment(kind, f"{prefix}_{len(segments)}", position, size))

    ordered = sorted(openings, key=lambda o: o.center)
    cursor = -half
    for raw in ordered:
        op = clamp_opening(raw, length, height)
        left, right = op.left, op.right

        if left > cursor + EPSILON:
            emit("side", cursor, left, 0.0, height)

        # an opening overlapping the previous one only carves what is left
        span_start = max(left, cursor)
        if right - span_start > EPSILON:
            if op.base_y > EPSILON:
                emit("sill", span_start, right, 0.0, op.base_y)
            top = op.base_y + op.height
            if height - top > EPSILON:
                emit("header", span_start, right, top, height)

        cursor = max(cursor, right)

    if cursor < half - EPSILON:
        emit("side", cursor, half, 0.0, height)

    return segments
