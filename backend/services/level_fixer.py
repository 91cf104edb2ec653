"""
Level document auto-fix pass.

Runs before any geometry is built and turns a loosely written level
description into one the builder can trust:

  1. Missing / zero / NaN array entries are replaced by per-field defaults
     and negative sizes are made positive
  2. Missing and duplicate room / floor ids are renamed deterministically
  3. Rooms overlapping an earlier room on the same floor are pushed apart
  4. Doors and windows without a rotation face the most open direction
  5. Stairs are clamped inside their floor and given room at the entry

The input document is never modified; a fixed deep copy is returned.
"""

import logging
import math
from typing import Optional, Sequence

from config import (
    DEFAULT_ROOM_HEIGHT, DEFAULT_STAIR_HEIGHT, SEPARATION_GAP, SLAB_THICKNESS,
)
from schemas import LevelDocument, OpeningSpec, RoomSpec
from services.layout_engine.doors import (
    DEFAULT_DOOR_SIZE, DEFAULT_WINDOW_BASE, DEFAULT_WINDOW_SIZE, best_yaw,
)
from services.layout_engine.geometry_utils import Box, clamp, overlap_depth, yaw_forward
from services.layout_engine.room_model import LevelDiagnostics

logger = logging.getLogger(__name__)

# ===========================================================================
# CONSTANTS
# ===========================================================================

DEFAULT_ROOM_FOOTPRINT = (4.0, 4.0)
DEFAULT_STAIR_FOOTPRINT = (2.0, 3.0)          # width, depth
DEFAULT_FREE_DOOR_SIZE = (1.0, 0.3, 2.0)      # width, depth, height
MIN_STAIR_BOUNDS = (7.0, 5.0)                 # half extents of a typical hall
MIN_STAIR_MARGIN = 1.0
STAIR_ENTRY_CLEARANCE = 1.0


def _is_blank(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value)) or value == 0


def default_array(values: Optional[Sequence[Optional[float]]],
                  defaults: Sequence[float]) -> list:
    """Pad/replace *values* so every entry is a usable number."""
    values = list(values or [])
    values += [None] * (len(defaults) - len(values))
    return [float(d) if _is_blank(v) else float(v)
            for v, d in zip(values[:len(defaults)], defaults)]


def default_size(values: Optional[Sequence[Optional[float]]],
                 defaults: Sequence[float]) -> list:
    """Like default_array, with negative extents turned positive."""
    return [abs(v) for v in default_array(values, defaults)]


def _rotation_unset(rotation) -> bool:
    if rotation is None or len(rotation) < 3:
        return True
    return any(r is None or (isinstance(r, float) and math.isnan(r)) for r in rotation[:3])


def room_size_xyz(room: RoomSpec) -> tuple:
    """Room extents as (width, height, depth) from a fixed room."""
    return room.size[0], room.size[2], room.size[1]


def room_box(room: RoomSpec) -> Box:
    x, z, y = room.position
    return Box.from_center_size((x, y, z), room_size_xyz(room))


# ===========================================================================
# DEFAULTS
# ===========================================================================

def _fill_opening_defaults(openings: Sequence[OpeningSpec], is_window: bool):
    for op in openings:
        op.size = default_size(op.size, DEFAULT_WINDOW_SIZE if is_window else DEFAULT_DOOR_SIZE)
        op.position = default_array(
            op.position, (0.0, 0.0, DEFAULT_WINDOW_BASE) if is_window else (0.0, 0.0, 0.0))


def _fill_room_defaults(room: RoomSpec, room_height: float):
    room.size = default_size(room.size, DEFAULT_ROOM_FOOTPRINT + (room_height,))
    room.position = default_array(room.position, (0.0, 0.0, 0.0))
    width, depth, height = room.size

    if room.floor is not None:
        room.floor.size = default_size(room.floor.size, (width, depth, SLAB_THICKNESS))
        room.floor.position = default_array(
            room.floor.position, (0.0, 0.0, -height / 2.0 + room.floor.size[2] / 2.0))
        room.floor.rotation = default_array(room.floor.rotation, (0.0, 0.0, 0.0))
    if room.roof is not None:
        room.roof.size = default_size(room.roof.size, (width, depth, SLAB_THICKNESS))
        room.roof.position = default_array(
            room.roof.position, (0.0, 0.0, height / 2.0 - room.roof.size[2] / 2.0))
        room.roof.rotation = default_array(room.roof.rotation, (0.0, 0.0, 0.0))
    for wall in room.walls:
        wall.size = default_size(wall.size, (SLAB_THICKNESS, SLAB_THICKNESS, height))
        wall.position = default_array(wall.position, (0.0, 0.0, 0.0))
        wall.rotation = default_array(wall.rotation, (0.0, 0.0, 0.0))

    _fill_opening_defaults(room.doors, is_window=False)
    _fill_opening_defaults(room.windows, is_window=True)


def fill_defaults(doc: LevelDocument, room_height: float = DEFAULT_ROOM_HEIGHT,
                  stair_height: float = DEFAULT_STAIR_HEIGHT):
    for floor in doc.floors:
        for room in floor.rooms:
            _fill_room_defaults(room, room_height)
        for door in floor.doors:
            door.size = default_size(door.size, DEFAULT_FREE_DOOR_SIZE)
            door.position = default_array(door.position, (0.0, 0.0, door.size[2] / 2.0))
            door.rotation = default_array(door.rotation, (0.0, 0.0, 0.0))
        for prop in floor.props:
            prop.size = default_size(prop.size, (1.0, 1.0, room_height))
            prop.position = default_array(prop.position, (0.0, 0.0, prop.size[2] / 2.0))
            prop.rotation = default_array(prop.rotation, (0.0, 0.0, 0.0))
    for stair in doc.stairs:
        stair.size = default_size(stair.size, DEFAULT_STAIR_FOOTPRINT + (stair_height,))
        stair.position = default_array(stair.position, (0.0, 0.0, 0.0))
        stair.rotation = default_array(stair.rotation, (0.0, 0.0, 0.0))


# ===========================================================================
# IDS
# ===========================================================================

def _unique_name(base: str, taken: set) -> str:
    n = 1
    while f"{base}_{n}" in taken:
        n += 1
    return f"{base}_{n}"


def rename_duplicates(doc: LevelDocument, diagnostics: LevelDiagnostics):
    """Give every floor and room a unique id, renaming later duplicates ``id_1``, ``id_2``, ..."""
    floor_ids: set = set()
    for index, floor in enumerate(doc.floors):
        if not floor.id:
            floor.id = f"floor_{index}"
            if floor.id in floor_ids:
                floor.id = _unique_name(floor.id, floor_ids)
        elif floor.id in floor_ids:
            new_id = _unique_name(floor.id, floor_ids)
            diagnostics.warn(f"Duplicate floor id '{floor.id}' renamed to '{new_id}'")
            floor.id = new_id
        floor_ids.add(floor.id)

    room_ids: set = set()
    count = 0
    for floor in doc.floors:
        for room in floor.rooms:
            if not room.id:
                room.id = f"room_{count}"
                if room.id in room_ids:
                    room.id = _unique_name(room.id, room_ids)
                diagnostics.warn(f"Room without id on floor '{floor.id}' named '{room.id}'")
            elif room.id in room_ids:
                new_id = _unique_name(room.id, room_ids)
                diagnostics.warn(f"Duplicate room id '{room.id}' renamed to '{new_id}'")
                room.id = new_id
            room_ids.add(room.id)
            count += 1


# ===========================================================================
# SEPARATION / FACING
# ===========================================================================

def separate_rooms(doc: LevelDocument, gap: float = SEPARATION_GAP):
    """
    Push each room clear of earlier rooms on its floor that it overlaps.

    The push runs along the centre-to-centre direction and spans the gap
    plus both half extents on each horizontal axis. Rooms that only touch
    are left alone.
    """
    for floor in doc.floors:
        placed = []
        for room in floor.rooms:
            box = room_box(room)
            width, _, depth = room_size_xyz(room)
            for other in placed:
                other_box = room_box(other)
                if overlap_depth(box, other_box) <= 0.0:
                    continue
                dx = box.center[0] - other_box.center[0]
                dz = box.center[2] - other_box.center[2]
                length = math.hypot(dx, dz)
                if length * length < 1e-4:
                    dx, dz, length = 1.0, 0.0, 1.0
                dx, dz = dx / length, dz / length
                ow, _, od = room_size_xyz(other)
                x, z, y = room.position
                room.position = [x + dx * (gap + width / 2.0 + ow / 2.0),
                                 z + dz * (gap + depth / 2.0 + od / 2.0), y]
                logger.info(f"  Room '{room.id}' pushed clear of '{other.id}'")
                box = room_box(room)
            placed.append(room)


def auto_rotate_openings(doc: LevelDocument):
    """Face every door and window without a rotation toward open space."""
    for floor in doc.floors:
        for room in floor.rooms:
            size = room_size_xyz(room)
            for op in list(room.doors) + list(room.windows):
                if _rotation_unset(op.rotation):
                    op.rotation = [0.0, best_yaw(size, (op.position[0], op.position[1])), 0.0]
                else:
                    op.rotation = default_array(op.rotation, (0.0, 0.0, 0.0))


# ===========================================================================
# STAIRS
# ===========================================================================

def fix_stairs(doc: LevelDocument, diagnostics: LevelDiagnostics):
    """
    Keep stairs inside their source floor with a clear entry.

    Floor bounds are the largest room half extents of the floor (never
    below a typical hall). The stair centre is clamped inside those bounds
    with a margin, then pushed back along its facing direction when less
    than ``1 + depth / 2`` is left in front of it.
    """
    bounds_by_floor = {}
    for floor in doc.floors:
        half_x, half_z = MIN_STAIR_BOUNDS
        for room in floor.rooms:
            half_x = max(half_x, room.size[0] / 2.0)
            half_z = max(half_z, room.size[1] / 2.0)
        bounds_by_floor[floor.id] = (half_x, half_z)

    for stair in doc.stairs:
        for ref in (stair.floor_from, stair.floor_to):
            if ref is not None and ref not in bounds_by_floor:
                diagnostics.warn(f"Stair '{stair.id or stair.description}' references unknown floor '{ref}'")

        half_x, half_z = bounds_by_floor.get(stair.floor_from, MIN_STAIR_BOUNDS)
        width, depth = stair.size[0], stair.size[1]
        margin = max(MIN_STAIR_MARGIN, max(width, depth) / 2.0 + 0.5)
        x, z, y = stair.position
        x = clamp(x, -half_x + margin, half_x - margin)
        z = clamp(z, -half_z + margin, half_z - margin)

        fx, fz = yaw_forward(stair.rotation[1])
        entry_margin = STAIR_ENTRY_CLEARANCE + depth / 2.0
        if abs(fz) >= abs(fx):
            forward_dist = half_z - z if fz > 0 else half_z + z
        else:
            forward_dist = half_x - x if fx > 0 else half_x + x
        if forward_dist < entry_margin:
            push = entry_margin - forward_dist
            x -= fx * push
            z -= fz * push
        stair.position = [x, z, y]


def fix_level(doc: LevelDocument,
              room_height: float = DEFAULT_ROOM_HEIGHT,
              stair_height: float = DEFAULT_STAIR_HEIGHT,
              separation_gap: float = SEPARATION_GAP,
              diagnostics: Optional[LevelDiagnostics] = None) -> LevelDocument:
    """Return an auto-fixed deep copy of *doc*."""
    diagnostics = diagnostics if diagnostics is not None else LevelDiagnostics()
    fixed = doc.model_copy(deep=True)

    fill_defaults(fixed, room_height, stair_height)
    rename_duplicates(fixed, diagnostics)
    separate_rooms(fixed, separation_gap)
    auto_rotate_openings(fixed)
    fix_stairs(fixed, diagnostics)

    n_rooms = sum(len(f.rooms) for f in fixed.floors)
    logger.info(f"Level fixed: {len(fixed.floors)} floors, {n_rooms} rooms, "
                f"{len(fixed.stairs)} stairs")
    return fixed
