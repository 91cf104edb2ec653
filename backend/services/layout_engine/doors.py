"""
Door and window placement on the four walls of a box room.

An opening is given as a rectangle in room-local coordinates (centre on
the floor plane plus its bottom height). It is snapped onto whichever wall
its centre is nearest, clamped into that wall's span, and rejected if it
collides with an opening already placed on the same wall.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .geometry_utils import Vec3, yaw_forward
from .room_model import WallOpening
from .wall_carver import clamp_opening

logger = logging.getLogger(__name__)

# Default opening dimensions (meters): width, height, thickness
DEFAULT_DOOR_SIZE = (1.0, 2.0, 0.2)
DEFAULT_WINDOW_SIZE = (2.0, 1.2, 0.2)
DEFAULT_WINDOW_BASE = 1.0

CANDIDATE_YAWS = (0.0, 90.0, 180.0, 270.0)

_AXIS_EPS = 1e-9


class WallSide(str, Enum):
    FRONT = "front"     # +Z
    BACK = "back"       # -Z
    RIGHT = "right"     # +X
    LEFT = "left"       # -X

    @property
    def normal(self) -> Vec3:
        return _WALL_NORMALS[self]

    @property
    def axis(self) -> str:
        """Axis the wall runs along."""
        return "x" if self in (WallSide.FRONT, WallSide.BACK) else "z"


_WALL_NORMALS = {
    WallSide.FRONT: (0.0, 0.0, 1.0),
    WallSide.BACK: (0.0, 0.0, -1.0),
    WallSide.RIGHT: (1.0, 0.0, 0.0),
    WallSide.LEFT: (-1.0, 0.0, 0.0),
}

# evaluation order doubles as the tie-break order
WALL_ORDER = (WallSide.FRONT, WallSide.BACK, WallSide.RIGHT, WallSide.LEFT)


@dataclass(frozen=True)
class OpeningRequest:
    """A door or window as described in the level document, room-local."""

    x: float
    z: float
    base_y: float
    width: float
    height: float
    depth: float = 0.2
    kind: str = "door"
    opening_id: Optional[str] = None
    yaw: float = 0.0             # facing, degrees about +Y


@dataclass
class OpeningAssignment:
    by_wall: Dict[WallSide, List[WallOpening]] = field(
        default_factory=lambda: {side: [] for side in WALL_ORDER})
    dropped: List[OpeningRequest] = field(default_factory=list)
    placed: List[Tuple[OpeningRequest, WallSide, WallOpening]] = field(default_factory=list)


def wall_length(room_size: Sequence[float], side: WallSide) -> float:
    """Run length of *side* for a room of size (width, height, depth)."""
    return room_size[0] if side.axis == "x" else room_size[2]


def nearest_wall(half_x: float, half_z: float, dx: float, dz: float,
                 wall_thickness: float) -> WallSide:
    """
    Pick the wall whose mid-plane is closest to the point (dx, dz).

    Wall mid-planes sit ``wall_thickness / 2`` inside the room extents.
    Ties go to the earlier wall in front, back, right, left order.
    """
    inset_x = half_x - wall_thickness / 2.0
    inset_z = half_z - wall_thickness / 2.0
    distances = {
        WallSide.FRONT: abs(dz - inset_z),
        WallSide.BACK: abs(dz + inset_z),
        WallSide.RIGHT: abs(dx - inset_x),
        WallSide.LEFT: abs(dx + inset_x),
    }
    best = WALL_ORDER[0]
    for side in WALL_ORDER[1:]:
        if distances[side] < distances[best]:
            best = side
    return best


def place_opening(room_size: Sequence[float], request: OpeningRequest,
                  wall_thickness: float) -> Tuple[WallSide, WallOpening]:
    """Map a room-local opening onto its wall, clamped into the wall span."""
    width, height, depth = room_size
    side = nearest_wall(width / 2.0, depth / 2.0, request.x, request.z, wall_thickness)
    along = request.x if side.axis == "x" else request.z
    opening = WallOpening(
        width=request.width,
        height=request.height,
        base_y=request.base_y,
        center=along,
        depth=request.depth,
        kind=request.kind,
        opening_id=request.opening_id,
        yaw=request.yaw,
    )
    return side, clamp_opening(opening, wall_length(room_size, side), height)


def spans_overlap(a: WallOpening, b: WallOpening, tolerance: float = 1e-6) -> bool:
    """Open-interval test: openings that only touch do not overlap."""
    return a.left < b.right - tolerance and b.left < a.right - tolerance


def assign_openings(room_size: Sequence[float],
                    doors: Sequence[OpeningRequest],
                    windows: Sequence[OpeningRequest],
                    wall_thickness: float) -> OpeningAssignment:
    """
    Place every door, then every window, onto the room's walls.

    First come, first served: an opening whose clamped span overlaps an
    opening already on the same wall is dropped and listed in
    ``OpeningAssignment.dropped``.
    """
    result = OpeningAssignment()
    for request in list(doors) + list(windows):
        side, opening = place_opening(room_size, request, wall_thickness)
        taken = result.by_wall[side]
        if any(spans_overlap(opening, other) for other in taken):
            logger.debug(f"Opening {request.opening_id} overlaps on {side.value} wall, dropped")
            result.dropped.append(request)
            continue
        taken.append(opening)
        result.placed.append((request, side, opening))
    return result


# ===========================================================================
# CLEARANCE-BASED FACING
# ===========================================================================

def clearance_score(room_size: Sequence[float], position: Sequence[float],
                    yaw: float) -> float:
    """
    Distance from *position* (x, z) to the room boundary along *yaw*.

    The room footprint is ``[-w/2, w/2] x [-d/2, d/2]`` for a room of
    size (width, height, depth).
    """
    half_x = room_size[0] / 2.0
    half_z = room_size[2] / 2.0
    fx, fz = yaw_forward(yaw)
    px, pz = position

    hits = []
    for p, f, half in ((px, fx, half_x), (pz, fz, half_z)):
        if abs(f) < _AXIS_EPS:
            continue
        bound = half if f > 0 else -half
        hits.append((bound - p) / f)
    if not hits:
        return 0.0
    return max(0.0, min(hits))


def best_yaw(room_size: Sequence[float], position: Sequence[float]) -> float:
    """Cardinal yaw with the most open space ahead; earlier yaw wins ties."""
    best, best_score = CANDIDATE_YAWS[0], clearance_score(room_size, position, CANDIDATE_YAWS[0])
    for yaw in CANDIDATE_YAWS[1:]:
        score = clearance_score(room_size, position, yaw)
        if score > best_score:
            best, best_score = yaw, score
    return best


# ===========================================================================
# CONNECTORS
# ===========================================================================

def door_connector(room_size: Sequence[float], side: WallSide,
                   opening: WallOpening) -> Tuple[Vec3, Vec3]:
    """
    Local (position, outward normal) of a door's connector.

    The point sits on the wall's outer face at the opening's mid-height.
    """
    half_x = room_size[0] / 2.0
    half_y = room_size[1] / 2.0
    half_z = room_size[2] / 2.0
    y = -half_y + opening.base_y + opening.height / 2.0

    if side is WallSide.FRONT:
        position = (opening.center, y, half_z)
    elif side is WallSide.BACK:
        position = (opening.center, y, -half_z)
    elif side is WallSide.RIGHT:
        position = (half_x, y, opening.center)
    else:
        position = (-half_x, y, opening.center)
    return position, side.normal
