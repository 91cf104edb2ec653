"""
Level geometry routes.

Compile a level document into placed solids, validate its room layout, or
export it as a GLB model served from /exports.
"""

import logging
import uuid

from fastapi import APIRouter, HTTPException

from config import EXPORT_DIR
from schemas import GenerateLevelRequest, LevelResponse, Model3DResponse, ValidateResponse
from services.level_builder import GenerationSettings, LevelResult, generate_level
from services.model3d import generate_3d_model

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/level", tags=["level"])


def _settings(req: GenerateLevelRequest) -> GenerationSettings:
    overrides = {"align": req.align, "auto_resolve": req.auto_resolve, "panels": req.panels}
    if req.allowed_gap is not None:
        overrides["allowed_gap"] = req.allowed_gap
    if req.max_snap_distance is not None:
        overrides["max_snap_distance"] = req.max_snap_distance
    return GenerationSettings(**overrides)


def _build(req: GenerateLevelRequest) -> LevelResult:
    if not req.level.floors:
        raise HTTPException(status_code=400, detail="Level has no floors.")
    return generate_level(req.level, _settings(req))


@router.post("/generate", response_model=LevelResponse)
async def generate(req: GenerateLevelRequest):
    """Build every room, align them through their doors and report issues."""
    result = _build(req)
    return LevelResponse(**result.to_dict())


@router.post("/validate", response_model=ValidateResponse)
async def validate(req: GenerateLevelRequest):
    """Connectivity check only: overlaps, gaps and rooms without geometry."""
    result = _build(req)
    return ValidateResponse(
        valid=not result.issues,
        issues=[issue.to_dict() for issue in result.issues],
        report=result.report,
    )


@router.post("/model3d", response_model=Model3DResponse)
async def model3d(req: GenerateLevelRequest):
    """Build the level and export it as a GLB model."""
    result = _build(req)
    filename = f"level_{uuid.uuid4().hex[:8]}.glb"
    try:
        generate_3d_model(result, str(EXPORT_DIR / filename))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"3D export failed: {e}")
        raise HTTPException(status_code=500, detail=f"3D export failed: {e}")

    return Model3DResponse(
        model_url=f"/exports/{filename}",
        solid_count=len(result.solids),
        issue_count=len(result.issues),
    )
