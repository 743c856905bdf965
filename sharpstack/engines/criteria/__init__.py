"""Criteria Registry: drill criteria, phase mapping, dimensions, plans, levels."""

from sharpstack.engines.criteria.registry import (
    Criterion,
    CriterionKind,
    CriterionValue,
    CriteriaRegistry,
    DimensionDefinition,
    LevelLadder,
    PlanTier,
    build_registry,
    get_registry,
    load_registry,
)
from sharpstack.engines.criteria.sync import active_skill_dimensions, sync_skill_dimensions

__all__ = [
    "Criterion",
    "CriterionKind",
    "CriterionValue",
    "CriteriaRegistry",
    "DimensionDefinition",
    "LevelLadder",
    "PlanTier",
    "build_registry",
    "get_registry",
    "load_registry",
    "active_skill_dimensions",
    "sync_skill_dimensions",
]
