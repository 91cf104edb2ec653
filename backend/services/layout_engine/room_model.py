"""
Value records shared by the geometry pipeline.

Rooms, openings, solids and connectors are plain dataclasses. Transforms
only change by building a new record (``dataclasses.replace``), never by
mutating a record another stage may still hold.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .geometry_utils import Box, Vec3, euler_matrix, transformed_box, yaw_matrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WallOpening:
    """A door or window void in a wall, in the wall's own frame."""

    width: float
    height: float
    base_y: float                 # bottom above the room floor
    center: float                 # signed offset along the wall
    depth: float = 0.2            # panel thickness, capped by the wall
    kind: str = "door"
    opening_id: Optional[str] = None
    yaw: float = 0.0              # facing, degrees about +Y

    @property
    def left(self) -> float:
        return self.center - self.width / 2.0

    @property
    def right(self) -> float:
        return self.center + self.width / 2.0

    def to_dict(self) -> dict:
        return {
            "id": self.opening_id,
            "kind": self.kind,
            "width": round(self.width, 4),
            "height": round(self.height, 4),
            "base_y": round(self.base_y, 4),
            "center": round(self.center, 4),
            "depth": round(self.depth, 4),
            "yaw": round(self.yaw, 4),
        }


@dataclass(frozen=True)
class SolidBox:
    """One emitted solid: a box in its parent's local frame."""

    name: str
    position: Vec3
    size: Vec3
    material: str = "wall"
    rotation: Vec3 = (0.0, 0.0, 0.0)
    parent: Optional[str] = None
    group: Optional[str] = None

    def local_bounds(self) -> Box:
        if any(abs(a) > 1e-9 for a in self.rotation):
            return transformed_box((0.0, 0.0, 0.0), self.size,
                                   euler_matrix(self.rotation), self.position)
        return Box.from_center_size(self.position, self.size)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "group": self.group,
            "parent": self.parent,
            "material": self.material,
            "position": [round(v, 4) for v in self.position],
            "size": [round(v, 4) for v in self.size],
            "rotation": [round(v, 4) for v in self.rotation],
        }


@dataclass(frozen=True)
class RoomRecord:
    """A placed room: world anchor (centre + yaw) plus its local solids."""

    id: str
    floor_id: str
    position: Vec3
    size: Vec3                    # width (x), height (y), depth (z)
    yaw: float = 0.0
    room_type: str = "room"
    openings: Tuple[Tuple[str, WallOpening], ...] = ()
    solids: Tuple[SolidBox, ...] = ()

    def world_boxes(self) -> List[Box]:
        rot = yaw_matrix(self.yaw)
        boxes = []
        for solid in self.solids:
            local = solid.local_bounds()
            boxes.append(transformed_box(local.center, local.size, rot, self.position))
        return boxes

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "floor": self.floor_id,
            "type": self.room_type,
            "position": [round(v, 4) for v in self.position],
            "yaw": round(self.yaw, 4),
            "size": [round(v, 4) for v in self.size],
            "openings": [dict(o.to_dict(), wall=side) for side, o in self.openings],
            "solid_count": len(self.solids),
        }


@dataclass(frozen=True)
class Connector:
    """
    Named attachment point on a room.

    Connectors sharing an ``id`` form one group; the aligner moves every
    non-anchor member so it faces and meets the group's anchor.
    """

    id: str
    room_id: str
    local_position: Vec3
    local_normal: Vec3 = (0.0, 0.0, 1.0)
    is_anchor: bool = False
    order: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "room": self.room_id,
            "position": [round(v, 4) for v in self.local_position],
            "normal": [round(v, 4) for v in self.local_normal],
            "anchor": self.is_anchor,
        }


@dataclass
class LevelDiagnostics:
    """Mutable warning sink threaded through one generation run."""

    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str):
        logger.warning(message)
        self.warnings.append(message)
