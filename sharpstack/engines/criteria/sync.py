"""
Skill dimension sync - mirrors registry dimensions into skill_dimensions so
the read side can list and join them.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sharpstack.engines.criteria.registry import CriteriaRegistry
from sharpstack.kernel.models import SkillDimension
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)


async def sync_skill_dimensions(session: AsyncSession, registry: CriteriaRegistry) -> int:
    """
    Upsert every registry dimension; deactivate rows the registry dropped.

    Returns the number of rows created or changed. The caller commits.
    """
    result = await session.execute(select(SkillDimension))
    existing = {row.key: row for row in result.scalars().all()}

    changed = 0
    for definition in registry.dimensions:
        values = {
            "label": definition.label,
            "category": definition.category,
            "description": definition.description,
            "target": definition.target,
            "tips": list(definition.tips),
            "score_anchors": dict(definition.score_anchors) if definition.score_anchors else None,
            "is_active": True,
        }
        row = existing.pop(definition.key, None)
        if row is None:
            session.add(SkillDimension(key=definition.key, **values))
            changed += 1
            continue
        if any(getattr(row, field) != value for field, value in values.items()):
            for field, value in values.items():
                setattr(row, field, value)
            changed += 1

    for row in existing.values():
        if row.is_active:
            row.is_active = False
            changed += 1

    await session.flush()
    logger.info("Skill dimensions synced", extra={"changed": changed})
    return changed


async def active_skill_dimensions(session: AsyncSession) -> List[SkillDimension]:
    q = (
        select(SkillDimension)
        .where(SkillDimension.is_active.is_(True))
        .order_by(SkillDimension.category, SkillDimension.label)
    )
    result = await session.execute(q)
    return list(result.scalars().all())
