"""
3D Level Model Exporter.

Turns a built level into a trimesh scene of coloured boxes:
  - Floor slabs (with stairwell strips)
  - Carved wall segments, sills and headers
  - Door leaves & window glass
  - Roofs and explicit room elements
  - Stairs, floor-level doors and props

Room solids are placed through their room's yaw + position; free
elements are already in world space. Exports as glTF/GLB (or OBJ).
"""

import trimesh
import numpy as np
from pathlib import Path
import logging
import math

from services.layout_engine.geometry_utils import yaw_matrix

logger = logging.getLogger(__name__)

# ===========================================================================
# CONSTANTS
# ===========================================================================

# Material colors (RGBA)
COLORS = {
    'wall':     [235, 225, 215, 255],   # Warm off-white plaster
    'floor':    [180, 140, 100, 255],   # Warm wood / vitrified tile
    'roof':     [165, 140, 115, 255],   # Terracotta/concrete roof
    'stair':    [155, 115, 75, 255],    # Medium wood treads
    'door':     [185, 150, 110, 255],   # Light wood leaf
    'glass':    [180, 210, 230, 120],   # Window glass (semi-transparent)
    'element':  [200, 195, 185, 255],   # Default neutral
}

# Stage order: material groups exported together, logged per stage
STAGES = (
    ('Floors', ('floor',)),
    ('Walls', ('wall',)),
    ('Panels', ('door', 'glass')),
    ('Roofs', ('roof',)),
    ('Stairs', ('stair',)),
    ('Elements', ('element',)),
)


def _make_box(size, rotation_deg=(0.0, 0.0, 0.0), position=(0.0, 0.0, 0.0)):
    """Create a box mesh of *size*, rotated (static XYZ Euler) then moved to *position*."""
    if min(size) < 0.01:
        return trimesh.Trimesh()
    mesh = trimesh.creation.box(extents=list(size))
    if any(abs(a) > 1e-9 for a in rotation_deg):
        rx, ry, rz = (math.radians(a) for a in rotation_deg)
        mesh.apply_transform(trimesh.transformations.euler_matrix(rx, ry, rz, 'sxyz'))
    mesh.apply_translation(list(position))
    return mesh


def _color_mesh(mesh, color_key):
    """Apply a solid color to a mesh."""
    if mesh is None or not hasattr(mesh, 'vertices') or mesh.vertices.shape[0] == 0:
        return mesh
    c = COLORS.get(color_key, COLORS['element'])
    mesh.visual = trimesh.visual.ColorVisuals(mesh=mesh, face_colors=c)
    return mesh


def _is_valid_mesh(mesh):
    """Check if a mesh has valid geometry."""
    return (mesh is not None and hasattr(mesh, 'vertices')
            and mesh.vertices.shape[0] > 0)


def room_transform(room):
    """4x4 world transform of a room record (yaw about +Y, then position)."""
    matrix = np.eye(4)
    matrix[:3, :3] = yaw_matrix(room.yaw)
    matrix[:3, 3] = room.position
    return matrix


def solid_mesh(solid, parent_transform=None):
    """Coloured mesh for one SolidBox, optionally placed by its room transform."""
    mesh = _make_box(solid.size, solid.rotation, solid.position)
    if not _is_valid_mesh(mesh):
        return None
    if parent_transform is not None:
        mesh.apply_transform(parent_transform)
    _color_mesh(mesh, solid.material)
    mesh.metadata['name'] = solid.name
    return mesh


def _stage_meshes(result, materials):
    meshes = []
    for room in result.rooms.values():
        transform = room_transform(room)
        for solid in room.solids:
            if solid.material in materials:
                mesh = solid_mesh(solid, transform)
                if mesh is not None:
                    meshes.append((f"{room.id}/{solid.name}", mesh))
    for solid in result.free_solids:
        if solid.material in materials:
            mesh = solid_mesh(solid)
            if mesh is not None:
                meshes.append((solid.name, mesh))
    return meshes


def build_scene(result):
    """
    Build a trimesh Scene from a LevelResult.

    Each stage is independent: a failing stage is logged and skipped so
    the rest of the level still exports.
    """
    all_meshes = []

    logger.info(f"Generating 3D model: {len(result.rooms)} rooms, "
                f"{len(result.free_solids)} free elements")

    for label, materials in STAGES:
        try:
            meshes = _stage_meshes(result, materials)
            all_meshes.extend(meshes)
            logger.info(f"  {label}: {len(meshes)} meshes")
        except Exception as e:
            logger.warning(f"  {label} failed: {e}")

    # ── Filter ───────────────────────────────────────────────────
    valid = [(name, m) for name, m in all_meshes if _is_valid_mesh(m)]
    if not valid:
        raise ValueError("No valid geometry generated for 3D model.")

    logger.info(f"  Total valid meshes: {len(valid)}")

    scene = trimesh.Scene()
    for name, mesh in valid:
        scene.add_geometry(mesh, geom_name=name)
    return scene


def generate_3d_model(result, output_path: str) -> str:
    """
    Export a built level as glTF/GLB (or OBJ).

    Args:
        result: LevelResult from the level builder.
        output_path: Path to save the file; ``.glb`` is appended when the
            extension is not a supported one.

    Returns:
        Path to the generated file.
    """
    scene = build_scene(result)

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    if output_path.endswith((".glb", ".gltf")):
        scene.export(output_path, file_type="glb")
    elif output_path.endswith(".obj"):
        scene.export(output_path, file_type="obj")
    else:
        output_path = output_path + ".glb"
        scene.export(output_path, file_type="glb")

    logger.info(f"3D model exported: {output_path}")
    return output_path
