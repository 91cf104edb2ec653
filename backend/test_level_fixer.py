"""
Tests for the level document auto-fix pass.

Run: pytest test_level_fixer.py
"""

import math

import pytest

from schemas import LevelDocument
from services.level_fixer import default_array, default_size, fix_level
from services.layout_engine.room_model import LevelDiagnostics


def _doc(rooms, stairs=None, floor_id="f0"):
    return LevelDocument.model_validate({
        "floors": [{"id": floor_id, "rooms": rooms}],
        "stairs": stairs or [],
    })


def test_default_array_replaces_blank_entries():
    assert default_array([None, 0, math.nan], (4, 4, 3)) == [4.0, 4.0, 3.0]
    assert default_array([5], (4, 4, 3)) == [5.0, 4.0, 3.0]
    assert default_array(None, (1, 2, 0.2)) == [1.0, 2.0, 0.2]
    assert default_array([2.5, -1, 7], (4, 4, 3)) == [2.5, -1.0, 7.0]


def test_room_and_opening_defaults():
    fixed = fix_level(_doc([{"id": "r", "doors": [{}], "windows": [{"size": [0, 0, 0]}]}]))
    room = fixed.floors[0].rooms[0]

    assert room.size == [4.0, 4.0, 3.0]
    assert room.position == [0.0, 0.0, 0.0]
    assert room.doors[0].size == [1.0, 2.0, 0.2]
    assert room.windows[0].size == [2.0, 1.2, 0.2]
    assert room.windows[0].position == [0.0, 0.0, 1.0]


def test_input_document_is_not_modified():
    doc = _doc([{"id": "r"}])
    fix_level(doc)
    assert doc.floors[0].rooms[0].size is None


def test_duplicate_ids_renamed_in_encounter_order():
    diagnostics = LevelDiagnostics()
    doc = LevelDocument.model_validate({"floors": [
        {"id": "f0", "rooms": [{"id": "a", "position": [0, 0, 0]}, {"id": "a", "position": [10, 0, 0]}]},
        {"id": "f1", "rooms": [{"id": "a"}, {}]},
    ]})
    fixed = fix_level(doc, diagnostics=diagnostics)

    ids = [r.id for f in fixed.floors for r in f.rooms]
    assert ids == ["a", "a_1", "a_2", "room_3"]
    assert any("'a' renamed to 'a_1'" in w for w in diagnostics.warnings)


def test_missing_floor_ids_are_generated():
    fixed = fix_level(LevelDocument.model_validate({"floors": [{"rooms": []}, {"id": "up"}]}))
    assert [f.id for f in fixed.floors] == ["floor_0", "up"]


def test_overlapping_rooms_are_separated():
    fixed = fix_level(_doc([{"id": "a"}, {"id": "b"}]))
    a, b = fixed.floors[0].rooms
    assert a.position == [0.0, 0.0, 0.0]
    # coincident centres push along +X by gap + both half widths
    assert b.position == pytest.approx([4.5, 0.0, 0.0])


def test_separation_follows_centre_direction():
    fixed = fix_level(_doc([{"id": "a"}, {"id": "b", "position": [0.01, 3, 0]}]))
    b = fixed.floors[0].rooms[1]
    assert b.position[1] == pytest.approx(3.0 + 0.5 + 4.0, abs=0.01)


def test_touching_rooms_are_not_separated():
    fixed = fix_level(_doc([{"id": "a"}, {"id": "b", "position": [4, 0, 0]}]))
    assert fixed.floors[0].rooms[1].position == [4.0, 0.0, 0.0]


def test_rooms_on_other_floors_never_separated():
    doc = LevelDocument.model_validate({"floors": [
        {"id": "f0", "rooms": [{"id": "a"}]},
        {"id": "f1", "rooms": [{"id": "b"}]},
    ]})
    fixed = fix_level(doc)
    assert fixed.floors[1].rooms[0].position == [0.0, 0.0, 0.0]


def test_openings_without_rotation_face_open_space():
    fixed = fix_level(_doc([{
        "id": "r",
        "doors": [{"position": [0, -1.9, 0]}, {"position": [1.9, 0.5, 0]},
                  {"position": [0, 1.9, 0], "rotation": [0, 45, 0]}],
    }]))
    doors = fixed.floors[0].rooms[0].doors
    assert doors[0].rotation == [0.0, 0.0, 0.0]
    assert doors[1].rotation == [0.0, 270.0, 0.0]
    assert doors[2].rotation == [0.0, 45.0, 0.0]


def test_stair_clamped_inside_floor():
    fixed = fix_level(_doc([{"id": "hall"}], stairs=[{"floor_from": "f0", "position": [20, 0, 0]}]))
    assert fixed.stairs[0].position == pytest.approx([5.0, 0.0, 0.0])


def test_stair_pushed_back_from_entry_wall():
    fixed = fix_level(_doc([{"id": "hall"}], stairs=[{"floor_from": "f0", "position": [0, 4.9, 0]}]))
    # clamped to z=3, then pushed back so 1 + depth/2 = 2.5 stays in front
    assert fixed.stairs[0].position == pytest.approx([0.0, 2.5, 0.0])


def test_stair_unknown_floor_is_reported():
    diagnostics = LevelDiagnostics()
    fix_level(_doc([{"id": "hall"}], stairs=[{"floor_from": "f0", "floor_to": "nowhere"}]),
              diagnostics=diagnostics)
    assert any("unknown floor 'nowhere'" in w for w in diagnostics.warnings)


def test_negative_sizes_are_made_positive():
    assert default_size([-4, 4, -3], (4, 4, 3)) == [4.0, 4.0, 3.0]

    fixed = fix_level(_doc([{"id": "r", "size": [-5, 4, 3], "doors": [{"size": [-1, 2, 0.2]}]}],
                           stairs=[{"floor_from": "f0", "size": [2, -3, 3]}]))
    room = fixed.floors[0].rooms[0]
    assert room.size == [5.0, 4.0, 3.0]
    assert room.doors[0].size == [1.0, 2.0, 0.2]
    assert fixed.stairs[0].size == [2.0, 3.0, 3.0]
