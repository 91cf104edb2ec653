"""
Layout Engine for level geometry.

Pure box geometry: wall carving, stairwell holes in slabs, opening
placement, connectivity validation and connector-based room alignment.
All solids are axis-aligned boxes in a Y-up frame.
"""

from .aligner import align_rooms, AlignmentResult
from .connectivity import Issue, IssueKind, validate_rooms, resolve_minor
from .doors import WallSide, assign_openings, best_yaw, nearest_wall
from .floor_openings import punch_floor
from .geometry_utils import Box, interval_gap, overlap_depth
from .room_model import Connector, RoomRecord, SolidBox, WallOpening
from .wall_carver import carve_wall

__all__ = [
    "align_rooms",
    "AlignmentResult",
    "Issue",
    "IssueKind",
    "validate_rooms",
    "resolve_minor",
    "WallSide",
    "assign_openings",
    "best_yaw",
    "nearest_wall",
    "punch_floor",
    "Box",
    "interval_gap",
    "overlap_depth",
    "Connector",
    "RoomRecord",
    "SolidBox",
    "WallOpening",
    "carve_wall",
]
