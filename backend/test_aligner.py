"""
Tests for connector-based room alignment.

Run: pytest test_aligner.py
"""

import numpy as np
import pytest

from services.layout_engine.aligner import (
    MAX_ALIGN_SWEEPS, align_rooms, build_connector_groups, connector_world_pose, select_anchor,
)
from services.layout_engine.room_model import Connector, RoomRecord

SIZE = (4.0, 3.0, 4.0)
CLEARANCE = 0.1


def _room(room_id, position, yaw=0.0):
    return RoomRecord(room_id, "f0", position, SIZE, yaw=yaw)


def _pair_poses(rooms, a, b):
    pa, na = connector_world_pose(rooms[a.room_id], a)
    pb, nb = connector_world_pose(rooms[b.room_id], b)
    return pa, na, pb, nb


def test_two_rooms_meet_face_to_face():
    rooms = {"A": _room("A", (0.0, 0.0, 0.0)), "B": _room("B", (10.0, 0.0, 3.0))}
    ca = Connector("A__B", "A", (0.0, -0.5, 2.0), (0.0, 0.0, 1.0), is_anchor=True, order=0)
    cb = Connector("A__B", "B", (2.0, -0.5, 0.0), (1.0, 0.0, 0.0), order=1)

    result = align_rooms(rooms, [ca, cb], CLEARANCE)

    pa, na, pb, nb = _pair_poses(result.rooms, ca, cb)
    assert np.linalg.norm(pa - pb) <= CLEARANCE
    assert float(np.dot(na, nb)) == pytest.approx(-1.0, abs=1e-6)
    assert result.rooms["B"].position == pytest.approx((0.0, 0.0, 4.05), abs=1e-6)
    assert result.rooms["B"].yaw == pytest.approx(90.0)
    assert result.rooms["A"] == rooms["A"]
    assert result.converged
    assert result.sweeps == 2
    assert result.moved_rooms == ["B"]


def test_input_rooms_are_not_modified():
    rooms = {"A": _room("A", (0.0, 0.0, 0.0)), "B": _room("B", (7.0, 0.0, 0.0))}
    ca = Connector("k", "A", (2.0, -0.5, 0.0), (1.0, 0.0, 0.0), is_anchor=True)
    cb = Connector("k", "B", (-2.0, -0.5, 0.0), (-1.0, 0.0, 0.0), order=1)
    align_rooms(rooms, [ca, cb], CLEARANCE)
    assert rooms["B"].position == (7.0, 0.0, 0.0)


def test_single_connector_groups_are_ignored():
    rooms = {"A": _room("A", (0.0, 0.0, 0.0)), "B": _room("B", (9.0, 0.0, 0.0))}
    lone = Connector("A__B", "A", (2.0, -0.5, 0.0), (1.0, 0.0, 0.0), is_anchor=True)
    result = align_rooms(rooms, [lone], CLEARANCE)
    assert result.rooms == rooms
    assert result.sweeps == 0
    assert result.converged


def test_anchor_defaults_to_first_by_order():
    late = Connector("k", "B", (0, 0, 0), order=5)
    early = Connector("k", "A", (0, 0, 0), order=1)
    groups = build_connector_groups([late, early])
    assert select_anchor(groups["k"]) is early

    flagged = Connector("k", "C", (0, 0, 0), is_anchor=True, order=9)
    groups = build_connector_groups([late, early, flagged])
    assert select_anchor(groups["k"]) is flagged


def test_connectors_in_anchor_room_are_skipped():
    rooms = {"A": _room("A", (0.0, 0.0, 0.0))}
    ca = Connector("k", "A", (2.0, -0.5, 0.0), (1.0, 0.0, 0.0), is_anchor=True)
    cb = Connector("k", "A", (-2.0, -0.5, 0.0), (-1.0, 0.0, 0.0), order=1)
    result = align_rooms(rooms, [ca, cb], CLEARANCE)
    assert result.rooms["A"] == rooms["A"]
    assert result.sweeps == 1


def test_chain_of_rooms_settles():
    rooms = {
        "A": _room("A", (0.0, 0.0, 0.0)),
        "B": _room("B", (6.0, 0.0, 1.0)),
        "C": _room("C", (13.0, 0.0, -2.0)),
    }
    connectors = [
        Connector("A__B", "A", (2.0, -0.5, 0.0), (1.0, 0.0, 0.0), is_anchor=True, order=0),
        Connector("A__B", "B", (-2.0, -0.5, 0.0), (-1.0, 0.0, 0.0), order=1),
        Connector("B__C", "B", (2.0, -0.5, 0.0), (1.0, 0.0, 0.0), is_anchor=True, order=2),
        Connector("B__C", "C", (-2.0, -0.5, 0.0), (-1.0, 0.0, 0.0), order=3),
    ]
    result = align_rooms(rooms, connectors, CLEARANCE)

    assert result.converged
    assert result.sweeps <= MAX_ALIGN_SWEEPS
    assert result.rooms["B"].position == pytest.approx((4.05, 0.0, 0.0), abs=1e-6)
    assert result.rooms["C"].position == pytest.approx((8.1, 0.0, 0.0), abs=1e-6)
    assert result.rooms["C"].yaw == pytest.approx(0.0, abs=1e-6)


def test_unconnected_room_keeps_placement():
    rooms = {
        "A": _room("A", (0.0, 0.0, 0.0)),
        "B": _room("B", (8.0, 0.0, 0.0)),
        "Z": _room("Z", (-20.0, 0.0, 5.0), yaw=30.0),
    }
    connectors = [
        Connector("A__B", "A", (2.0, -0.5, 0.0), (1.0, 0.0, 0.0), is_anchor=True),
        Connector("A__B", "B", (-2.0, -0.5, 0.0), (-1.0, 0.0, 0.0), order=1),
    ]
    result = align_rooms(rooms, connectors, CLEARANCE)
    assert result.rooms["Z"] == rooms["Z"]
