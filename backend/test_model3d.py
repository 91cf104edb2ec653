"""
Tests for the trimesh scene export.

Run: pytest test_model3d.py
"""

from dataclasses import replace
from pathlib import Path

import numpy as np
import pytest

from schemas import LevelDocument
from services.level_builder import LevelResult, generate_level
from services.layout_engine.room_model import SolidBox
from services.model3d import build_scene, generate_3d_model, solid_mesh, room_transform


def _result():
    doc = LevelDocument.model_validate({
        "floors": [{"id": "f0", "rooms": [{"id": "r", "doors": [{"id": "d", "position": [0, 1.95, 0]}]}]}],
        "stairs": [{"floor_from": "f0", "position": [6, 0, 0]}],
    })
    return generate_level(doc)


def test_scene_has_one_geometry_per_solid():
    result = _result()
    scene = build_scene(result)
    assert len(scene.geometry) == len(result.solids)
    assert "r/Floor" in scene.geometry


def test_room_solids_follow_room_yaw_and_position():
    result = _result()
    room = replace(result.rooms["r"], position=(10.0, 0.0, 0.0), yaw=90.0)
    front = next(s for s in room.solids if s.name == "Wall_Front_Seg_0")

    mesh = solid_mesh(front, room_transform(room))
    expected = room.world_boxes()[list(room.solids).index(front)]
    assert np.allclose(mesh.bounds[0], expected.min, atol=1e-6)
    assert np.allclose(mesh.bounds[1], expected.max, atol=1e-6)
    assert mesh.metadata["name"] == "Wall_Front_Seg_0"


def test_degenerate_solid_is_skipped():
    assert solid_mesh(SolidBox("thin", (0.0, 0.0, 0.0), (1.0, 0.001, 1.0))) is None


def test_glb_export(tmp_path):
    path = generate_3d_model(_result(), str(tmp_path / "level.glb"))
    assert Path(path).exists()
    assert Path(path).stat().st_size > 0


def test_unknown_extension_gets_glb(tmp_path):
    path = generate_3d_model(_result(), str(tmp_path / "level"))
    assert path.endswith(".glb")
    assert Path(path).exists()


def test_empty_level_raises():
    with pytest.raises(ValueError, match="No valid geometry"):
        build_scene(LevelResult(rooms={}))
