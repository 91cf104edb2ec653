"""
Level Geometry Builder.

Compiles a level document into placed box solids:

  1. Auto-fix the document (defaults, ids, separation, facing, stairs)
  2. Place stairs between floor elevations
  3. Build every room: floor slab (with stairwell hole), four walls carved
     around their doors and windows, or the room's explicit elements
  4. Create door connectors and snap rooms together through them
  5. Validate room connectivity, optionally resolving small gaps/overlaps

Rooms are returned as value records keyed by id; free elements (stairs,
floor-level doors, props) carry no parent room.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from config import (
    ALLOWED_GAP, CONNECTOR_CLEARANCE, DEFAULT_ROOM_HEIGHT, DEFAULT_STAIR_HEIGHT,
    MAX_SNAP_DISTANCE, SEPARATION_GAP, SLAB_THICKNESS, WALL_THICKNESS,
)
from schemas import ElementSpec, FloorSpec, LevelDocument, OpeningSpec, RoomSpec
from services.level_fixer import fix_level
from services.layout_engine.aligner import AlignmentResult, align_rooms, build_connector_groups
from services.layout_engine.connectivity import (
    Adjustment, Issue, PairGaps, apply_adjustments, format_report, log_report,
    moves_to_adjustments, resolve_minor, validate_rooms,
)
from services.layout_engine.doors import (
    WALL_ORDER, OpeningAssignment, OpeningRequest, WallSide, assign_openings,
    door_connector, wall_length,
)
from services.layout_engine.floor_openings import FloorStrip, punch_floor
from services.layout_engine.geometry_utils import Box, Vec3, footprint_bounds, snap_vec
from services.layout_engine.room_model import Connector, LevelDiagnostics, RoomRecord, SolidBox
from services.layout_engine.wall_carver import carve_wall

logger = logging.getLogger(__name__)

MIN_ELEMENT_SIZE = 0.01
VERTICAL_SPAN_EPS = 0.01


@dataclass(frozen=True)
class GenerationSettings:
    room_height: float = DEFAULT_ROOM_HEIGHT
    stair_height: float = DEFAULT_STAIR_HEIGHT
    wall_thickness: float = WALL_THICKNESS
    slab_thickness: float = SLAB_THICKNESS
    allowed_gap: float = ALLOWED_GAP
    max_snap_distance: float = MAX_SNAP_DISTANCE
    separation_gap: float = SEPARATION_GAP
    connector_clearance: float = CONNECTOR_CLEARANCE
    align: bool = True
    auto_resolve: bool = False
    panels: bool = True

    @property
    def joined_gap(self) -> float:
        """Gap tolerated between rooms an aligned connector pair joins."""
        return max(self.allowed_gap, self.connector_clearance / 2.0 + 1e-6)


@dataclass(frozen=True)
class StairPlacement:
    name: str
    floor_from: Optional[str]
    floor_to: Optional[str]
    center: Vec3
    size: Vec3                  # width, height, depth
    yaw: float


@dataclass
class LevelResult:
    rooms: Dict[str, RoomRecord]
    free_solids: List[SolidBox] = field(default_factory=list)
    connectors: List[Connector] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    alignment: Optional[AlignmentResult] = None
    adjustments: Dict[str, Adjustment] = field(default_factory=dict)

    @property
    def solids(self) -> List[SolidBox]:
        """Every emitted solid, room solids first, in build order."""
        out = []
        for room in self.rooms.values():
            out.extend(room.solids)
        out.extend(self.free_solids)
        return out

    def room_boxes(self) -> Dict[str, List[Box]]:
        return {room_id: room.world_boxes() for room_id, room in self.rooms.items()}

    @property
    def report(self) -> str:
        return format_report(self.issues)

    def to_dict(self) -> dict:
        return {
            "rooms": [room.to_dict() for room in self.rooms.values()],
            "solids": [solid.to_dict() for solid in self.solids],
            "connectors": [c.to_dict() for c in self.connectors],
            "issues": [issue.to_dict() for issue in self.issues],
            "warnings": list(self.warnings),
            "alignment": self.alignment.to_dict() if self.alignment else None,
            "report": self.report,
        }


# ===========================================================================
# CONVERSIONS (document arrays -> engine frame)
# ===========================================================================

def _doc_position(values: Sequence[float]) -> Vec3:
    """Document ``[x, z, y]`` to ``(x, y, z)``."""
    return values[0], values[2], values[1]


def _doc_size(values: Sequence[float]) -> Vec3:
    """Document ``[width, depth, height]`` to ``(width, height, depth)``, never below 1 cm."""
    return tuple(max(v, MIN_ELEMENT_SIZE) for v in (values[0], values[2], values[1]))


def _opening_request(spec: OpeningSpec, kind: str) -> OpeningRequest:
    width, height, depth = spec.size
    return OpeningRequest(
        x=spec.position[0],
        z=spec.position[1],
        base_y=spec.position[2],
        width=max(width, MIN_ELEMENT_SIZE),
        height=max(height, MIN_ELEMENT_SIZE),
        depth=max(depth, MIN_ELEMENT_SIZE),
        kind=kind,
        opening_id=spec.id,
        yaw=spec.rotation[1],
    )


def _element_solid(spec: ElementSpec, default_name: str, material: str,
                   parent: Optional[str], group: str) -> SolidBox:
    return SolidBox(
        name=spec.id or default_name,
        position=snap_vec(_doc_position(spec.position)),
        size=_doc_size(spec.size),
        material=material,
        rotation=tuple(spec.rotation[:3]),
        parent=parent,
        group=group,
    )


# ===========================================================================
# STAIRS
# ===========================================================================

def place_stairs(doc: LevelDocument, elevations: Dict[str, float],
                 settings: GenerationSettings) -> List[StairPlacement]:
    """
    Seat every stair on its source floor slab.

    The stair's height spans the two floor elevations when they differ,
    otherwise it keeps its own height.
    """
    placements = []
    for index, stair in enumerate(doc.stairs):
        from_y = elevations.get(stair.floor_from, 0.0)
        to_y = elevations.get(stair.floor_to, 0.0)
        width, depth, height = stair.size
        span = abs(to_y - from_y)
        if span > VERTICAL_SPAN_EPS:
            height = span
        elif height <= VERTICAL_SPAN_EPS:
            height = settings.stair_height

        base_y = from_y - settings.room_height / 2.0 + settings.slab_thickness
        x, z = stair.position[0], stair.position[1]
        placements.append(StairPlacement(
            name=stair.description or stair.id or f"Stairs_{index}",
            floor_from=stair.floor_from,
            floor_to=stair.floor_to,
            center=snap_vec((x, base_y + height / 2.0, z)),
            size=(width, height, depth),
            yaw=stair.rotation[1],
        ))
    return placements


def find_stair_hole(room_position: Vec3, room_size: Vec3, floor_id: str,
                    stairs: Sequence[StairPlacement]) -> Optional[Tuple[Tuple[float, float], Tuple[float, float]]]:
    """
    Local (centre, size) of the stairwell hole a room's slab needs, if any.

    A stair arriving on *floor_id* whose centre lies inside the room's
    footprint opens a hole the size of its yawed footprint's bounds.
    """
    half_x, half_z = room_size[0] / 2.0, room_size[2] / 2.0
    rx, rz = room_position[0], room_position[2]
    for sp in stairs:
        if sp.floor_to != floor_id:
            continue
        sx, sz = sp.center[0], sp.center[2]
        if not (rx - half_x <= sx <= rx + half_x and rz - half_z <= sz <= rz + half_z):
            continue
        min_x, min_z, max_x, max_z = footprint_bounds((sx, sz), (sp.size[0], sp.size[2]), sp.yaw)
        return (sx - rx, sz - rz), (max_x - min_x, max_z - min_z)
    return None


# ===========================================================================
# ROOMS
# ===========================================================================

def _floor_solids(room_id: str, size: Vec3, hole, slab: float) -> List[SolidBox]:
    half_x, half_y, half_z = (s / 2.0 for s in size)
    slab_box = Box((-half_x, -half_y, -half_z), (half_x, -half_y + slab, half_z))
    if hole is None:
        strips = [FloorStrip("Floor", slab_box)]
    else:
        strips = punch_floor(slab_box, hole[0], hole[1])
    return [SolidBox(s.name, snap_vec(s.position), s.size, "floor", parent=room_id, group="Floor")
            for s in strips]


def _wall_center(size: Vec3, side: WallSide, thickness: float) -> Vec3:
    inset_x = size[0] / 2.0 - thickness / 2.0
    inset_z = size[2] / 2.0 - thickness / 2.0
    return {
        WallSide.FRONT: (0.0, 0.0, inset_z),
        WallSide.BACK: (0.0, 0.0, -inset_z),
        WallSide.RIGHT: (inset_x, 0.0, 0.0),
        WallSide.LEFT: (-inset_x, 0.0, 0.0),
    }[side]


def _wall_solids(room_id: str, size: Vec3, assignment: OpeningAssignment,
                 thickness: float) -> List[SolidBox]:
    solids = []
    for side in WALL_ORDER:
        group = f"Wall_{side.value.title()}"
        origin = _wall_center(size, side, thickness)
        segments = carve_wall(wall_length(size, side), size[1], thickness,
                              side.axis, assignment.by_wall[side])
        for seg in segments:
            position = tuple(o + p for o, p in zip(origin, seg.position))
            solids.append(SolidBox(f"{group}_{seg.name}", snap_vec(position), seg.size,
                                   "wall", parent=room_id, group=group))
    return solids


def _panel_solids(room_id: str, size: Vec3, assignment: OpeningAssignment,
                  thickness: float) -> List[SolidBox]:
    """Door leaves and window glass filling each carved opening, never thicker than the wall."""
    panels = []
    for index, (request, side, opening) in enumerate(assignment.placed):
        panel_depth = min(opening.depth, thickness)
        origin = _wall_center(size, side, thickness)
        y = -size[1] / 2.0 + opening.base_y + opening.height / 2.0
        if side.axis == "x":
            position = (origin[0] + opening.center, y, origin[2])
            panel_size = (opening.width, opening.height, panel_depth)
        else:
            position = (origin[0], y, origin[2] + opening.center)
            panel_size = (panel_depth, opening.height, opening.width)
        material = "glass" if opening.kind == "window" else "door"
        name = f"{opening.kind.title()}_{opening.opening_id or index}"
        panels.append(SolidBox(name, snap_vec(position), panel_size, material,
                               parent=room_id, group="Panels"))
    return panels


def build_room(room: RoomSpec, floor: FloorSpec, elevation: float,
               stairs: Sequence[StairPlacement], settings: GenerationSettings,
               diagnostics: LevelDiagnostics) -> Tuple[RoomRecord, OpeningAssignment, Dict[int, OpeningSpec]]:
    """
    Build one room's local solids.

    Returns the room record, its opening assignment and a lookup from each
    request's ``id()`` back to the document opening it came from.
    """
    width, depth, height = room.size
    size = (width, height, depth)
    x, z, y = room.position
    position = snap_vec((x, elevation + y, z))

    requests, spec_by_request = [], {}
    for kind, specs in (("door", room.doors), ("window", room.windows)):
        for spec in specs:
            request = _opening_request(spec, kind)
            requests.append(request)
            spec_by_request[id(request)] = spec
    doors = [r for r in requests if r.kind == "door"]
    windows = [r for r in requests if r.kind == "window"]
    assignment = assign_openings(size, doors, windows, settings.wall_thickness)
    for dropped in assignment.dropped:
        diagnostics.warn(f"Room '{room.id}': {dropped.kind} '{dropped.opening_id}' overlaps "
                         f"another opening on its wall and was dropped")

    solids: List[SolidBox] = []
    custom = room.floor is not None or len(room.walls) > 0
    if not custom:
        hole = find_stair_hole(position, size, floor.id, stairs)
        solids.extend(_floor_solids(room.id, size, hole, settings.slab_thickness))
        solids.extend(_wall_solids(room.id, size, assignment, settings.wall_thickness))
        if settings.panels:
            solids.extend(_panel_solids(room.id, size, assignment, settings.wall_thickness))
    else:
        if room.floor is not None:
            solids.append(_element_solid(room.floor, "Floor", "floor", room.id, "Floor"))
        for index, wall in enumerate(room.walls):
            solids.append(_element_solid(wall, f"Wall_{index}", "wall", room.id, "Walls"))
    if room.roof is not None:
        solids.append(_element_solid(room.roof, "Roof", "roof", room.id, "Roof"))

    record = RoomRecord(
        id=room.id,
        floor_id=floor.id,
        position=position,
        size=size,
        room_type=room.type or "room",
        openings=tuple((side.value, opening) for _, side, opening in assignment.placed),
        solids=tuple(solids),
    )
    return record, assignment, spec_by_request


def build_free_elements(floor: FloorSpec, elevation: float,
                        settings: GenerationSettings) -> List[SolidBox]:
    """Floor-level doors and props, positioned above the floor's base."""
    base_y = elevation - settings.room_height / 2.0
    solids = []
    for index, door in enumerate(floor.doors):
        solid = _element_solid(door, f"Door_{index}", "door", None, f"{floor.id}_Doors")
        pos = solid.position
        solids.append(SolidBox(solid.name, snap_vec((pos[0], base_y + pos[1], pos[2])),
                               solid.size, solid.material, solid.rotation, None, solid.group))
    for index, prop in enumerate(floor.props):
        solid = _element_solid(prop, prop.type or f"Prop_{index}", "element", None, f"{floor.id}_Props")
        pos = solid.position
        solids.append(SolidBox(solid.name, snap_vec((pos[0], base_y + pos[1], pos[2])),
                               solid.size, solid.material, solid.rotation, None, solid.group))
    return solids


def stair_solid(sp: StairPlacement) -> SolidBox:
    return SolidBox(sp.name, sp.center, sp.size, "stair", (0.0, sp.yaw, 0.0), None, "Stairs")


# ===========================================================================
# CONNECTORS
# ===========================================================================

def connection_key(a: str, b: str) -> str:
    first, second = sorted([a or "", b or ""])
    return f"{first}__{second}"


def create_door_connectors(built: Sequence[Tuple[RoomRecord, OpeningAssignment, Dict[int, OpeningSpec]]],
                           diagnostics: LevelDiagnostics) -> List[Connector]:
    """
    One connector per placed door that names both of its rooms.

    Connectors of the same room pair share the key ``"<a>__<b>"`` (ids
    sorted); the first one created for a key is that group's anchor.
    """
    connectors: List[Connector] = []
    anchored = set()
    for record, assignment, spec_by_request in built:
        for request, side, opening in assignment.placed:
            if request.kind != "door":
                continue
            spec = spec_by_request[id(request)]
            if not spec.from_room or not spec.to_room:
                if spec.from_room or spec.to_room:
                    diagnostics.warn(f"Room '{record.id}': door '{spec.id}' names only one room, "
                                     f"no connector created")
                continue
            key = connection_key(spec.from_room, spec.to_room)
            position, normal = door_connector(record.size, side, opening)
            connectors.append(Connector(key, record.id, position, normal,
                                        is_anchor=key not in anchored, order=len(connectors)))
            anchored.add(key)
    return connectors


def joined_pair_gaps(connectors: Sequence[Connector], tolerance: float) -> Dict[frozenset, float]:
    """
    Gap tolerance for every pair of rooms a connector group joins.

    Aligned connectors stop ``clearance / 2`` apart, so those pairs keep that
    gap; every other pair is held to the caller's ``allowed_gap``.
    """
    gaps = {}
    for group in build_connector_groups(connectors).values():
        room_ids = list(dict.fromkeys(c.room_id for c in group))
        for i, a in enumerate(room_ids):
            for b in room_ids[i + 1:]:
                gaps[frozenset((a, b))] = tolerance
    return gaps


# ===========================================================================
# PIPELINE
# ===========================================================================

def generate_level(doc: LevelDocument,
                   settings: Optional[GenerationSettings] = None) -> LevelResult:
    """
    Compile *doc* into placed room geometry.

    Args:
        doc: Level document; never modified.
        settings: Per-run overrides of the configured defaults.

    Returns:
        LevelResult with room records, free solids, connectors, the
        alignment summary, connectivity issues and diagnostics.
    """
    settings = settings or GenerationSettings()
    diagnostics = LevelDiagnostics()

    fixed = fix_level(doc, settings.room_height, settings.stair_height,
                      settings.separation_gap, diagnostics)
    elevations = {floor.id: index * settings.room_height for index, floor in enumerate(fixed.floors)}
    stairs = place_stairs(fixed, elevations, settings)

    built = []
    free_solids: List[SolidBox] = []
    for floor in fixed.floors:
        elevation = elevations[floor.id]
        for room in floor.rooms:
            built.append(build_room(room, floor, elevation, stairs, settings, diagnostics))
        free_solids.extend(build_free_elements(floor, elevation, settings))
    free_solids.extend(stair_solid(sp) for sp in stairs)

    rooms = {record.id: record for record, _, _ in built}
    connectors = create_door_connectors(built, diagnostics)
    logger.info(f"Built {len(rooms)} rooms, {len(free_solids)} free elements, "
                f"{len(connectors)} connectors")

    result = LevelResult(rooms=rooms, free_solids=free_solids, connectors=connectors)
    pair_gaps: PairGaps = {}
    if settings.align:
        result.alignment = align_rooms(rooms, connectors, settings.connector_clearance)
        result.rooms = result.alignment.rooms
        pair_gaps = joined_pair_gaps(connectors, settings.joined_gap)

    gap = settings.allowed_gap
    if settings.auto_resolve:
        moves = resolve_minor(result.room_boxes(), gap, settings.max_snap_distance, pair_gaps)
        result.adjustments = moves_to_adjustments(result.rooms, moves)
        result.rooms = apply_adjustments(result.rooms, result.adjustments)
        if moves:
            logger.info(f"Auto-resolved {len(moves)} room(s)")

    result.issues = validate_rooms(result.room_boxes(), gap, pair_gaps)
    result.warnings = diagnostics.warnings
    log_report(result.issues)
    return result
