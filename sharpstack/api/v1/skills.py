"""
Skill dimension catalog.
"""

from typing import List

from fastapi import APIRouter

from sharpstack.api.deps import CurrentUser, DbSession
from sharpstack.engines.criteria import active_skill_dimensions
from sharpstack.schemas.insights import SkillDimensionResponse

router = APIRouter()


@router.get("", response_model=List[SkillDimensionResponse])
async def list_skills(_: CurrentUser, db: DbSession):
    """Active skill dimensions, grouped by category."""
    rows = await active_skill_dimensions(db)
    return [SkillDimensionResponse.model_validate(row) for row in rows]
