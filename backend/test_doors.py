"""
Tests for opening placement, clearance facing and door connectors.

Run: pytest test_doors.py
"""

import pytest

from services.layout_engine.doors import (
    OpeningRequest, WallSide, assign_openings, best_yaw, clearance_score,
    door_connector, nearest_wall, place_opening,
)

ROOM = (4.0, 3.0, 4.0)       # width, height, depth
T = 0.1


def _door(x, z, width=1.0, opening_id=None):
    return OpeningRequest(x=x, z=z, base_y=0.0, width=width, height=2.0, opening_id=opening_id)


def _window(x, z, opening_id=None):
    return OpeningRequest(x=x, z=z, base_y=1.0, width=1.5, height=1.2,
                          kind="window", opening_id=opening_id)


@pytest.mark.parametrize("point, side", [
    ((0.0, 1.95), WallSide.FRONT),
    ((0.0, -1.95), WallSide.BACK),
    ((1.95, 0.0), WallSide.RIGHT),
    ((-1.95, 0.0), WallSide.LEFT),
    ((0.3, 1.2), WallSide.FRONT),
])
def test_nearest_wall(point, side):
    assert nearest_wall(2.0, 2.0, point[0], point[1], T) is side


def test_nearest_wall_ties_follow_evaluation_order():
    assert nearest_wall(2.0, 2.0, 0.0, 0.0, T) is WallSide.FRONT
    assert nearest_wall(2.0, 2.0, 1.95, 1.95, T) is WallSide.FRONT
    assert nearest_wall(2.0, 2.0, 1.95, -1.95, T) is WallSide.BACK
    assert nearest_wall(2.0, 2.0, -1.95, 0.5, T) is WallSide.LEFT


def test_place_opening_clamps_along_wall():
    side, opening = place_opening(ROOM, _door(1.9, 1.95), T)
    assert side is WallSide.FRONT
    assert opening.center == pytest.approx(1.5)

    side, opening = place_opening(ROOM, _door(1.95, -1.8), T)
    assert side is WallSide.RIGHT
    assert opening.center == pytest.approx(-1.5)


def test_place_opening_clamps_base_into_room_height():
    request = OpeningRequest(x=0.0, z=1.95, base_y=2.5, width=1.0, height=1.0, kind="window")
    _, opening = place_opening(ROOM, request, T)
    assert opening.base_y == pytest.approx(2.0)


def test_overlapping_opening_is_dropped_first_come_first_served():
    result = assign_openings(
        ROOM,
        doors=[_door(0.0, 1.95, opening_id="d1"), _door(0.5, 1.95, opening_id="d2")],
        windows=[_window(0.0, -1.95, opening_id="w1")],
        wall_thickness=T,
    )
    assert [r.opening_id for r in result.dropped] == ["d2"]
    assert [o.opening_id for o in result.by_wall[WallSide.FRONT]] == ["d1"]
    assert [o.opening_id for o in result.by_wall[WallSide.BACK]] == ["w1"]
    assert [side for _, side, _ in result.placed] == [WallSide.FRONT, WallSide.BACK]


def test_doors_are_placed_before_windows():
    result = assign_openings(
        ROOM,
        doors=[_door(0.2, 1.95, opening_id="d1")],
        windows=[_window(0.0, 1.95, opening_id="w1")],
        wall_thickness=T,
    )
    assert [r.opening_id for r in result.dropped] == ["w1"]


def test_touching_openings_both_kept():
    result = assign_openings(ROOM, [_door(-0.5, 1.95), _door(0.5, 1.95)], [], T)
    assert result.dropped == []
    assert len(result.by_wall[WallSide.FRONT]) == 2


def test_clearance_score():
    assert clearance_score(ROOM, (0.0, -1.5), 0.0) == pytest.approx(3.5)
    assert clearance_score(ROOM, (0.0, -1.5), 180.0) == pytest.approx(0.5)
    assert clearance_score(ROOM, (0.0, -1.5), 90.0) == pytest.approx(2.0)
    assert clearance_score(ROOM, (5.0, 0.0), 90.0) == 0.0


def test_best_yaw_faces_open_space():
    assert best_yaw(ROOM, (0.0, -1.5)) == 0.0
    assert best_yaw(ROOM, (0.0, 1.5)) == 180.0
    assert best_yaw(ROOM, (-1.5, 0.0)) == 90.0
    assert best_yaw(ROOM, (1.5, 0.0)) == 270.0


def test_best_yaw_tie_keeps_first_candidate():
    assert best_yaw(ROOM, (0.0, 0.0)) == 0.0


def test_door_connector_sits_on_outer_face():
    _, opening = place_opening(ROOM, _door(0.5, 1.95), T)
    position, normal = door_connector(ROOM, WallSide.FRONT, opening)
    assert position == pytest.approx((0.5, -0.5, 2.0))
    assert normal == (0.0, 0.0, 1.0)

    position, normal = door_connector(ROOM, WallSide.LEFT, opening)
    assert position == pytest.approx((-2.0, -0.5, 0.5))
    assert normal == (-1.0, 0.0, 0.0)
