"""
Criteria Registry - immutable view over the drill/criteria/dimension catalog.

Built once per process from the catalog (built-in defaults or a JSON file)
and passed to the engines that need it. Nothing here touches the database.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from sharpstack.config import get_settings
from sharpstack.engines.criteria.catalog import DEFAULT_CATALOG
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)

CriterionValue = Union[bool, int]


class CriterionKind(str, Enum):
    """Value kind an oracle returns for a criterion."""

    BOOLEAN = "boolean"
    COUNT = "count"

    def coerce(self, raw: Any) -> Optional[CriterionValue]:
        """
        Validate an oracle value for this kind.

        Returns None when the value has the wrong shape, so the criterion is
        recorded as absent rather than guessed.
        """
        if self is CriterionKind.BOOLEAN:
            if isinstance(raw, bool):
                return raw
            if isinstance(raw, int) and raw in (0, 1):
                return bool(raw)
            if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
                return raw.strip().lower() == "true"
            return None

        if isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            return raw if raw >= 0 else None
        if isinstance(raw, float) and raw.is_integer() and raw >= 0:
            return int(raw)
        return None


@dataclass(frozen=True)
class Criterion:
    key: str
    kind: CriterionKind
    description: str = ""
    # Universal criteria only: the boolean value that counts as the pattern firing
    fires_when: Optional[bool] = None

    def fired(self, value: CriterionValue) -> bool:
        """Whether an outcome counts as the behaviour being present."""
        if self.kind is CriterionKind.COUNT:
            return int(value) > 0
        target = True if self.fires_when is None else self.fires_when
        return bool(value) is target


@dataclass(frozen=True)
class DimensionDefinition:
    key: str
    label: str
    category: str
    description: str = ""
    target: str = ""
    positive: frozenset = field(default_factory=frozenset)
    negative: frozenset = field(default_factory=frozenset)
    tips: Tuple[str, ...] = ()
    score_anchors: Optional[Mapping[str, str]] = None

    @property
    def members(self) -> frozenset:
        return self.positive | self.negative


@dataclass(frozen=True)
class PlanTier:
    key: str
    label: str
    rank: int
    daily_exchanges: int
    max_level: int


@dataclass(frozen=True)
class LevelLadder:
    thresholds: Mapping[int, Optional[int]]
    max_level: int
    messages: Mapping[int, str]
    default_message: str
    cap_message: str

    def threshold_for(self, level: int) -> Optional[int]:
        return self.thresholds.get(level)

    def message_for(self, level: int) -> str:
        return self.messages.get(level) or self.default_message.format(level=level)


class CriteriaRegistry:
    """
    Read-only lookups over the catalog.

    All containers are tuples, frozensets or MappingProxyType so callers
    cannot mutate shared configuration.
    """

    def __init__(
        self,
        universal: Tuple[Criterion, ...],
        drill_criteria: Mapping[str, Tuple[Criterion, ...]],
        phase_mapping: Mapping[str, Optional[str]],
        dimensions: Mapping[str, DimensionDefinition],
        plans: Tuple[PlanTier, ...],
        levels: LevelLadder,
    ):
        self._universal = universal
        self._drill_criteria = MappingProxyType(dict(drill_criteria))
        self._phase_mapping = MappingProxyType(dict(phase_mapping))
        self._dimensions = MappingProxyType(dict(dimensions))
        self._plans = plans
        self._plans_by_key = MappingProxyType({p.key: p for p in plans})
        self.levels = levels

    # -- criteria ------------------------------------------------------

    @property
    def universal_criteria(self) -> Tuple[Criterion, ...]:
        return self._universal

    @property
    def drill_types(self) -> Tuple[str, ...]:
        return tuple(self._drill_criteria.keys())

    def criteria_for(self, drill_type: Optional[str]) -> Optional[Tuple[Criterion, ...]]:
        """Universal criteria plus the drill type's own; None for unknown types."""
        if not drill_type or drill_type not in self._drill_criteria:
            return None
        seen = {c.key for c in self._universal}
        specific = tuple(c for c in self._drill_criteria[drill_type] if c.key not in seen)
        return self._universal + specific

    # -- phases --------------------------------------------------------

    @property
    def phases(self) -> Mapping[str, Optional[str]]:
        return self._phase_mapping

    def drill_type_for_phase(self, phase: Optional[str]) -> Optional[str]:
        """Drill type for a phase tag; None for unmapped or non-scorable phases."""
        if not phase:
            return None
        return self._phase_mapping.get(phase)

    # -- dimensions ----------------------------------------------------

    @property
    def dimensions(self) -> Tuple[DimensionDefinition, ...]:
        return tuple(self._dimensions.values())

    def dimension(self, key: str) -> Optional[DimensionDefinition]:
        return self._dimensions.get(key)

    def dimensions_for(self, drill_type: str) -> Tuple[DimensionDefinition, ...]:
        """Dimensions whose member criteria intersect the drill type's criteria."""
        criteria = self.criteria_for(drill_type)
        if criteria is None:
            return ()
        keys = {c.key for c in criteria}
        return tuple(d for d in self._dimensions.values() if d.members & keys)

    # -- plans ---------------------------------------------------------

    @property
    def plans(self) -> Tuple[PlanTier, ...]:
        return self._plans

    def plan(self, key: Optional[str]) -> PlanTier:
        """Plan by key; unknown keys fall back to the lowest tier."""
        if key and key in self._plans_by_key:
            return self._plans_by_key[key]
        return self._plans[0]

    def plan_at_least(self, plan_key: Optional[str], required_key: str) -> bool:
        return self.plan(plan_key).rank >= self.plan(required_key).rank


# -- loading ---------------------------------------------------------------

def _int_keys(mapping: Dict[str, Any]) -> Dict[int, Any]:
    return {int(k): v for k, v in mapping.items()}


def build_registry(catalog: Dict[str, Any]) -> CriteriaRegistry:
    """Build a registry from a catalog dict shaped like DEFAULT_CATALOG."""
    universal = tuple(
        Criterion(
            key=key,
            kind=CriterionKind(entry.get("kind", "boolean")),
            description=entry.get("description", ""),
            fires_when=entry.get("fires_when"),
        )
        for key, entry in catalog["universal_criteria"].items()
    )

    drill_criteria: Dict[str, Tuple[Criterion, ...]] = {}
    for drill_type, criteria in catalog["drill_criteria"].items():
        items = []
        for key, entry in criteria.items():
            # Plain string = boolean criterion with that description
            if isinstance(entry, str):
                items.append(Criterion(key=key, kind=CriterionKind.BOOLEAN, description=entry))
            else:
                items.append(Criterion(
                    key=key,
                    kind=CriterionKind(entry.get("kind", "boolean")),
                    description=entry.get("description", ""),
                ))
        drill_criteria[drill_type] = tuple(items)

    dimensions = {
        key: DimensionDefinition(
            key=key,
            label=entry["label"],
            category=entry.get("category", "general"),
            description=entry.get("description", ""),
            target=entry.get("target", ""),
            positive=frozenset(entry.get("positive", [])),
            negative=frozenset(entry.get("negative", [])),
            tips=tuple(entry.get("tips", [])),
            score_anchors=MappingProxyType(dict(entry["score_anchors"])) if entry.get("score_anchors") else None,
        )
        for key, entry in catalog["dimensions"].items()
    }

    plans = tuple(
        PlanTier(
            key=entry["key"],
            label=entry.get("label", entry["key"].title()),
            rank=rank,
            daily_exchanges=int(entry["daily_exchanges"]),
            max_level=int(entry["max_level"]),
        )
        for rank, entry in enumerate(catalog["plans"])
    )
    if not plans:
        raise ValueError("Catalog must define at least one plan")

    level_entry = catalog["levels"]
    levels = LevelLadder(
        thresholds=MappingProxyType(_int_keys(level_entry["thresholds"])),
        max_level=int(level_entry["max_level"]),
        messages=MappingProxyType(_int_keys(level_entry.get("messages", {}))),
        default_message=level_entry.get("default_message", "You've reached Level {level}."),
        cap_message=level_entry.get("cap_message", "Upgrade your plan to unlock higher levels."),
    )

    return CriteriaRegistry(
        universal=universal,
        drill_criteria=drill_criteria,
        phase_mapping=dict(catalog["phase_mapping"]),
        dimensions=dimensions,
        plans=plans,
        levels=levels,
    )


def load_registry(path: Optional[str] = None) -> CriteriaRegistry:
    """Load the catalog from a JSON file, or the built-in defaults."""
    if not path:
        return build_registry(DEFAULT_CATALOG)

    with Path(path).open(encoding="utf-8") as fh:
        catalog = json.load(fh)
    logger.info("Loaded catalog override", extra={"catalog_path": path})
    return build_registry(catalog)


@lru_cache
def get_registry() -> CriteriaRegistry:
    """Process-wide registry, loaded on first use."""
    return load_registry(get_settings().catalog_path)
