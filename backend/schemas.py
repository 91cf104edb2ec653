"""Pydantic schemas for the level document and API request/response validation.

Arrays follow the level-document convention: positions are ``[x, z, y]``
and sizes ``[width, depth, height]``. Any entry may be missing, ``null``,
zero or NaN; the fixer replaces those with per-field defaults.
"""

from pydantic import BaseModel, Field
from typing import Optional

Vector = Optional[list[Optional[float]]]


# ---------- Level document ----------
class ElementSpec(BaseModel):
    """Explicit floor, roof or wall box of a custom room."""
    id: Optional[str] = None
    size: Vector = None
    position: Vector = None
    rotation: Vector = None


class OpeningSpec(BaseModel):
    """A door or window. ``position`` is ``[x_local, z_local, bottom_y]``."""
    id: Optional[str] = None
    from_room: Optional[str] = None
    to_room: Optional[str] = None
    size: Vector = None
    position: Vector = None
    rotation: Vector = None


class PropSpec(BaseModel):
    id: Optional[str] = None
    type: Optional[str] = "prop"
    size: Vector = None
    position: Vector = None
    rotation: Vector = None


class ConnectionSpec(BaseModel):
    from_room: Optional[str] = None
    to_room: Optional[str] = None


class RoomSpec(BaseModel):
    id: Optional[str] = None
    type: Optional[str] = "room"
    size: Vector = None
    position: Vector = None
    floor: Optional[ElementSpec] = None
    roof: Optional[ElementSpec] = None
    walls: list[ElementSpec] = []
    doors: list[OpeningSpec] = []
    windows: list[OpeningSpec] = []


class FloorSpec(BaseModel):
    id: Optional[str] = None
    rooms: list[RoomSpec] = []
    doors: list[OpeningSpec] = []
    props: list[PropSpec] = []
    connections: list[ConnectionSpec] = []


class StairSpec(BaseModel):
    id: Optional[str] = None
    floor_from: Optional[str] = None
    floor_to: Optional[str] = None
    description: Optional[str] = None
    size: Vector = None
    position: Vector = None
    rotation: Vector = None


class LevelDocument(BaseModel):
    floors: list[FloorSpec] = []
    stairs: list[StairSpec] = []


# ---------- Level generation API ----------
class GenerateLevelRequest(BaseModel):
    level: LevelDocument
    align: bool = True
    auto_resolve: bool = False
    panels: bool = True
    allowed_gap: Optional[float] = Field(default=None, ge=0)
    max_snap_distance: Optional[float] = Field(default=None, ge=0)


class LevelResponse(BaseModel):
    rooms: list[dict] = []
    solids: list[dict] = []
    connectors: list[dict] = []
    issues: list[dict] = []
    warnings: list[str] = []
    alignment: Optional[dict] = None
    report: str = ""


class ValidateResponse(BaseModel):
    valid: bool
    issues: list[dict] = []
    report: str = ""


class Model3DResponse(BaseModel):
    model_url: str
    solid_count: int
    issue_count: int = 0
