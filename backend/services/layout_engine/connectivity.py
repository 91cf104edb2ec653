"""
Room connectivity validation.

Every pair of rooms is classified from their combined world boxes:
overlapping rooms, rooms separated by more than the allowed gap, and rooms
without geometry are reported as issues. Small problems can be corrected
automatically by nudging the second room of a pair.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence

from .geometry_utils import Box, Vec3, axis_gaps, axis_overlaps, horizontal_gap, overlap_depth
from .room_model import RoomRecord

logger = logging.getLogger(__name__)


class IssueKind(str, Enum):
    MISSING_GEOMETRY = "MissingGeometry"
    OVERLAP = "Overlap"
    GAP = "Gap"


@dataclass(frozen=True)
class Issue:
    kind: IssueKind
    room_a: str
    room_b: Optional[str] = None
    magnitude: float = 0.0            # overlap depth or gap distance
    bounds_a: Optional[Box] = None
    bounds_b: Optional[Box] = None

    def __str__(self) -> str:
        if self.kind is IssueKind.MISSING_GEOMETRY:
            return f"{self.kind.value}: room '{self.room_a}' has no geometry"
        return (f"{self.kind.value}: '{self.room_a}' <-> '{self.room_b}' "
                f"({self.magnitude:.4g}m)")

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "room_a": self.room_a,
            "room_b": self.room_b,
            "magnitude": round(self.magnitude, 4),
            "bounds_a": self.bounds_a.to_dict() if self.bounds_a else None,
            "bounds_b": self.bounds_b.to_dict() if self.bounds_b else None,
            "message": str(self),
        }


@dataclass(frozen=True)
class Adjustment:
    """Optional transform overrides for one room."""

    position: Optional[Vec3] = None
    rotation: Optional[float] = None      # yaw, degrees
    scale: Optional[Vec3] = None


def combined_bounds(room_boxes: Mapping[str, Sequence[Box]]) -> Dict[str, Optional[Box]]:
    return {room_id: Box.enclosing(boxes) for room_id, boxes in room_boxes.items()}


PairGaps = Mapping[FrozenSet[str], float]


def validate_rooms(room_boxes: Mapping[str, Sequence[Box]],
                   allowed_gap: float,
                   pair_gaps: Optional[PairGaps] = None) -> List[Issue]:
    """
    Classify every room and room pair.

    Parameters
    ----------
    room_boxes : mapping
        Room id to the world boxes of that room's solids, in room order.
    allowed_gap : float
        Horizontal separation tolerated between neighbours.
    pair_gaps : mapping, optional
        Per-pair tolerance keyed by ``frozenset({id_a, id_b})``; replaces
        *allowed_gap* for the pairs it names.

    Returns
    -------
    list[Issue]
        ``MissingGeometry`` for rooms with no boxes, then ``Overlap`` and
        ``Gap`` issues for pairs in encounter order. Vertically separated
        pairs and exactly touching pairs are never reported.
    """
    issues: List[Issue] = []
    bounds = combined_bounds(room_boxes)

    present = []
    for room_id, box in bounds.items():
        if box is None:
            issues.append(Issue(IssueKind.MISSING_GEOMETRY, room_id))
        else:
            present.append((room_id, box))

    for i in range(len(present)):
        id_a, box_a = present[i]
        for j in range(i + 1, len(present)):
            id_b, box_b = present[j]
            depth = overlap_depth(box_a, box_b)
            if depth > 0.0:
                issues.append(Issue(IssueKind.OVERLAP, id_a, id_b, depth, box_a, box_b))
                continue
            gap = horizontal_gap(box_a, box_b)
            tolerance = allowed_gap
            if pair_gaps:
                tolerance = pair_gaps.get(frozenset((id_a, id_b)), allowed_gap)
            if gap is not None and gap > tolerance:
                issues.append(Issue(IssueKind.GAP, id_a, id_b, gap, box_a, box_b))
    return issues


def _overlap_push(box_a: Box, box_b: Box) -> Vec3:
    """Shortest horizontal move that takes B out of A, away from A's centre."""
    ox, _, oz = axis_overlaps(box_a, box_b)
    ca, cb = box_a.center, box_b.center
    if ox <= oz:
        sign = 1.0 if cb[0] >= ca[0] else -1.0
        return (sign * ox, 0.0, 0.0)
    sign = 1.0 if cb[2] >= ca[2] else -1.0
    return (0.0, 0.0, sign * oz)


def _gap_pull(box_a: Box, box_b: Box) -> Vec3:
    """Move that closes the dominant horizontal gap of B toward A."""
    gx, _, gz = axis_gaps(box_a, box_b)
    ca, cb = box_a.center, box_b.center
    if gx > gz:
        sign = -1.0 if cb[0] > ca[0] else 1.0
        return (sign * gx, 0.0, 0.0)
    sign = -1.0 if cb[2] > ca[2] else 1.0
    return (0.0, 0.0, sign * gz)


def resolve_minor(room_boxes: Mapping[str, Sequence[Box]],
                  allowed_gap: float,
                  max_snap_distance: float,
                  pair_gaps: Optional[PairGaps] = None) -> Dict[str, Vec3]:
    """
    Translation deltas that fix small overlaps and gaps.

    Detection is re-run first. For each ``Overlap`` or ``Gap`` whose
    correction is no longer than *max_snap_distance*, the second room of
    the pair is moved; larger problems are left for the report. A room is
    moved at most once per call.
    """
    moves: Dict[str, Vec3] = {}
    for issue in validate_rooms(room_boxes, allowed_gap, pair_gaps):
        if issue.kind is IssueKind.MISSING_GEOMETRY or issue.room_b in moves:
            continue
        if issue.kind is IssueKind.OVERLAP:
            delta = _overlap_push(issue.bounds_a, issue.bounds_b)
        else:
            delta = _gap_pull(issue.bounds_a, issue.bounds_b)
        distance = max(abs(d) for d in delta)
        if distance > max_snap_distance:
            logger.info(f"  {issue} exceeds snap distance, left unresolved")
            continue
        moves[issue.room_b] = delta
    return moves


def apply_adjustments(rooms: Mapping[str, RoomRecord],
                      adjustments: Mapping[str, Adjustment]) -> Dict[str, RoomRecord]:
    """Return *rooms* with each adjustment's overrides applied."""
    updated = dict(rooms)
    for room_id, adj in adjustments.items():
        room = updated.get(room_id)
        if room is None:
            continue
        if adj.position is not None:
            room = replace(room, position=tuple(adj.position))
        if adj.rotation is not None:
            room = replace(room, yaw=float(adj.rotation))
        if adj.scale is not None:
            room = replace(room, size=tuple(s * k for s, k in zip(room.size, adj.scale)),
                           solids=tuple(
                               replace(solid,
                                       position=tuple(p * k for p, k in zip(solid.position, adj.scale)),
                                       size=tuple(s * k for s, k in zip(solid.size, adj.scale)))
                               for solid in room.solids))
        updated[room_id] = room
    return updated


def moves_to_adjustments(rooms: Mapping[str, RoomRecord],
                         moves: Mapping[str, Vec3]) -> Dict[str, Adjustment]:
    adjustments = {}
    for room_id, delta in moves.items():
        room = rooms[room_id]
        adjustments[room_id] = Adjustment(
            position=tuple(p + d for p, d in zip(room.position, delta)))
    return adjustments


def format_report(issues: Sequence[Issue]) -> str:
    counts = {kind: 0 for kind in IssueKind}
    for issue in issues:
        counts[issue.kind] += 1
    header = (f"Connectivity report: {len(issues)} issue(s) "
              f"[overlaps={counts[IssueKind.OVERLAP]}, gaps={counts[IssueKind.GAP]}, "
              f"missing={counts[IssueKind.MISSING_GEOMETRY]}]")
    return "\n".join([header] + [f"  - {issue}" for issue in issues])


def log_report(issues: Sequence[Issue]):
    if not issues:
        logger.info("Connectivity report: all rooms connected")
        return
    for line in format_report(issues).splitlines():
        logger.warning(line)
