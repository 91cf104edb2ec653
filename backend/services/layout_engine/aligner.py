"""
Connector-based room alignment.

Rooms are built independently at their described positions; doors that
join two rooms leave a connector in each. Aligning turns and moves every
non-anchor room so its connector faces the anchor's connector and sits
just outside it. The pass is a bounded fixed-point relaxation: chained
rooms may disturb each other, so sweeps repeat until nothing moves or
``MAX_ALIGN_SWEEPS`` is reached. Cyclic graphs with conflicting yaw
requirements are not guaranteed to settle within that bound.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from .geometry_utils import normalize_yaw, rotate_yaw, signed_yaw_between
from .room_model import Connector, RoomRecord

logger = logging.getLogger(__name__)

MAX_ALIGN_SWEEPS = 4
MOVE_EPSILON_SQ = 1e-4
ROTATE_EPSILON_DEG = 0.01


@dataclass
class AlignmentResult:
    rooms: Dict[str, RoomRecord]
    sweeps: int = 0
    converged: bool = True
    moved_rooms: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"sweeps": self.sweeps, "converged": self.converged,
                "moved_rooms": list(self.moved_rooms)}


def build_connector_groups(connectors: Sequence[Connector]) -> "OrderedDict[str, List[Connector]]":
    """Group connectors by id, in first-seen order, each sorted by creation order."""
    groups: "OrderedDict[str, List[Connector]]" = OrderedDict()
    for conn in connectors:
        groups.setdefault(conn.id, []).append(conn)
    for members in groups.values():
        members.sort(key=lambda c: c.order)
    return groups


def select_anchor(group: Sequence[Connector]) -> Connector:
    for conn in group:
        if conn.is_anchor:
            return conn
    return group[0]


def connector_world_pose(room: RoomRecord, conn: Connector) -> Tuple[np.ndarray, np.ndarray]:
    position = rotate_yaw(conn.local_position, room.yaw) + np.asarray(room.position, dtype=float)
    normal = rotate_yaw(conn.local_normal, room.yaw)
    return position, normal


def _align_to_anchor(room: RoomRecord, conn: Connector,
                     anchor_pos: np.ndarray, anchor_fwd: np.ndarray,
                     clearance: float) -> Tuple[RoomRecord, bool]:
    pivot, forward = connector_world_pose(room, conn)

    # turn the connector to face the anchor
    delta_yaw = signed_yaw_between((forward[0], forward[2]), (-anchor_fwd[0], -anchor_fwd[2]))
    offset = np.asarray(room.position, dtype=float) - pivot
    position = pivot + rotate_yaw(offset, delta_yaw)

    target = anchor_pos + anchor_fwd * (clearance / 2.0)
    position = position + (target - pivot)

    moved_sq = float(np.sum((position - np.asarray(room.position)) ** 2))
    moved = moved_sq > MOVE_EPSILON_SQ or abs(delta_yaw) > ROTATE_EPSILON_DEG
    updated = replace(room, position=tuple(float(v) for v in position),
                      yaw=normalize_yaw(room.yaw + delta_yaw))
    return updated, moved


def align_rooms(rooms: Mapping[str, RoomRecord],
                connectors: Sequence[Connector],
                clearance: float,
                max_sweeps: int = MAX_ALIGN_SWEEPS) -> AlignmentResult:
    """
    Snap rooms together through their shared connectors.

    Parameters
    ----------
    rooms : mapping
        Room id to record; not modified.
    connectors : sequence of Connector
        All connectors of the level in creation order.
    clearance : float
        Thickness kept between paired connectors; each non-anchor connector
        ends ``clearance / 2`` outside its anchor.
    max_sweeps : int
        Upper bound on full passes over all groups.
    """
    result = AlignmentResult(rooms=dict(rooms))
    groups = [g for g in build_connector_groups(connectors).values() if len(g) >= 2]
    if not groups:
        return result

    moved_ids: List[str] = []
    result.converged = False
    for sweep in range(1, max_sweeps + 1):
        result.sweeps = sweep
        any_moved = False
        for group in groups:
            anchor = select_anchor(group)
            anchor_room = result.rooms.get(anchor.room_id)
            if anchor_room is None:
                continue
            anchor_pos, anchor_fwd = connector_world_pose(anchor_room, anchor)
            for conn in group:
                if conn is anchor or conn.room_id == anchor.room_id:
                    continue
                room = result.rooms.get(conn.room_id)
                if room is None:
                    continue
                updated, moved = _align_to_anchor(room, conn, anchor_pos, anchor_fwd, clearance)
                result.rooms[conn.room_id] = updated
                if moved:
                    any_moved = True
                    if conn.room_id not in moved_ids:
                        moved_ids.append(conn.room_id)
        if not any_moved:
            result.converged = True
            break

    result.moved_rooms = moved_ids
    if not result.converged:
        logger.warning(f"Room alignment did not settle after {max_sweeps} sweeps")
    logger.info(f"Aligned {len(moved_ids)} room(s) over {len(groups)} connector group(s) "
                f"in {result.sweeps} sweep(s)")
    return result
