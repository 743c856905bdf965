"""
Access Gate - decides how much of a pattern analysis a caller may see.

Decision table, first match wins:
    1. fewer than minimum_sessions completed -> insufficient_data
    2. plan below the unlocking tier         -> requires_upgrade (teaser only)
    3. otherwise                             -> unlocked (full detail, trends)

The same gate runs for the HTTP read endpoints and before notification sends.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from sharpstack.engines.criteria import CriteriaRegistry
from sharpstack.engines.insights.analyzer import (
    DimensionAnalysis,
    PatternAnalysis,
    TeaserSummary,
    TrendBucket,
    UniversalPattern,
    sessions_until_insights,
    teaser_summary,
)


class GateDecision(str, Enum):
    INSUFFICIENT_DATA = "insufficient_data"
    REQUIRES_UPGRADE = "requires_upgrade"
    UNLOCKED = "unlocked"


class GatedAnalysis(BaseModel):
    """
    What a caller is allowed to see.

    Detail fields are either all lists (unlocked) or all None; never a mix.
    """

    has_enough_data: bool
    is_unlocked: bool
    gate_reason: GateDecision
    sessions_until_insights: int
    total_sessions: int
    blind_spots: Optional[List[DimensionAnalysis]] = None
    improving: Optional[List[DimensionAnalysis]] = None
    slipping: Optional[List[DimensionAnalysis]] = None
    stable: Optional[List[DimensionAnalysis]] = None
    biggest_gap: Optional[DimensionAnalysis] = None
    biggest_win: Optional[DimensionAnalysis] = None
    growth_edge: Optional[DimensionAnalysis] = None
    universal_patterns: Optional[List[UniversalPattern]] = None
    teaser: Optional[TeaserSummary] = None


class GatedTrend(BaseModel):
    gate_reason: GateDecision
    weeks: Optional[List[TrendBucket]] = None


class AccessGate:
    """Applies plan tier and data sufficiency rules to analysis output."""

    def __init__(
        self,
        registry: CriteriaRegistry,
        unlocking_plan: str,
        minimum_sessions: int,
    ):
        self.registry = registry
        self.unlocking_plan = unlocking_plan
        self.minimum_sessions = minimum_sessions

    def has_full_access(self, plan_key: Optional[str]) -> bool:
        """Plan tier is at or above the unlocking tier."""
        return self.registry.plan_at_least(plan_key, self.unlocking_plan)

    def decide(self, plan_key: Optional[str], completed_sessions: int) -> GateDecision:
        if completed_sessions < self.minimum_sessions:
            return GateDecision.INSUFFICIENT_DATA
        if not self.has_full_access(plan_key):
            return GateDecision.REQUIRES_UPGRADE
        return GateDecision.UNLOCKED

    def apply(self, plan_key: Optional[str], analysis: PatternAnalysis) -> GatedAnalysis:
        decision = self.decide(plan_key, analysis.total_sessions)
        remaining = sessions_until_insights(analysis.total_sessions, self.minimum_sessions)

        if decision is GateDecision.INSUFFICIENT_DATA:
            return GatedAnalysis(
                has_enough_data=False,
                is_unlocked=False,
                gate_reason=decision,
                sessions_until_insights=remaining,
                total_sessions=analysis.total_sessions,
            )

        teaser = teaser_summary(analysis)
        if decision is GateDecision.REQUIRES_UPGRADE:
            return GatedAnalysis(
                has_enough_data=True,
                is_unlocked=False,
                gate_reason=decision,
                sessions_until_insights=0,
                total_sessions=analysis.total_sessions,
                teaser=teaser,
            )

        return GatedAnalysis(
            has_enough_data=True,
            is_unlocked=True,
            gate_reason=decision,
            sessions_until_insights=0,
            total_sessions=analysis.total_sessions,
            blind_spots=list(analysis.blind_spots),
            improving=list(analysis.improving),
            slipping=list(analysis.slipping),
            stable=list(analysis.stable),
            biggest_gap=analysis.biggest_gap,
            biggest_win=analysis.biggest_win,
            growth_edge=analysis.growth_edge,
            universal_patterns=list(analysis.universal_patterns),
            teaser=teaser,
        )

    def apply_trend(
        self,
        plan_key: Optional[str],
        completed_sessions: int,
        buckets: List[TrendBucket],
    ) -> GatedTrend:
        decision = self.decide(plan_key, completed_sessions)
        if decision is not GateDecision.UNLOCKED:
            return GatedTrend(gate_reason=decision)
        return GatedTrend(gate_reason=decision, weeks=buckets)
