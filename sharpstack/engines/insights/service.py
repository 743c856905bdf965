"""
Insights Service - loads committed score history and runs the analyzer
through the access gate.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sharpstack.config import Settings
from sharpstack.engines.criteria import CriteriaRegistry
from sharpstack.engines.insights.access_gate import (
    AccessGate,
    GateDecision,
    GatedAnalysis,
    GatedTrend,
)
from sharpstack.engines.insights.analyzer import (
    AnalysisThresholds,
    DimensionSample,
    PatternAnalysis,
    ScoreOutcomeSample,
    analyze,
    sessions_until_insights,
    split_samples,
    teaser_summary,
    weekly_trend,
    window_start,
)
from sharpstack.kernel.models import (
    DimensionScore,
    DrillScore,
    SessionStatus,
    TrainingSession,
    User,
    as_utc,
    utcnow,
)


class TeaserView(BaseModel):
    """Banner projection: counts and flags, no dimension identities."""

    has_enough_data: bool
    is_unlocked: bool
    gate_reason: GateDecision
    sessions_until_insights: int
    total_sessions: int
    blind_spot_count: Optional[int] = None
    has_improving: Optional[bool] = None
    has_regressing: Optional[bool] = None


class BlindSpotStatus(BaseModel):
    has_enough_data: bool
    has_pro_access: bool
    can_access_full_insights: bool
    show_teaser: bool
    total_sessions: int
    minimum_sessions: int
    sessions_until_insights: int
    blind_spot_count: Optional[int] = None


class InsightsService:
    """Read side of the scoring pipeline, one instance per request."""

    def __init__(self, session: AsyncSession, registry: CriteriaRegistry, settings: Settings):
        self.session = session
        self.registry = registry
        self.settings = settings
        self.thresholds = AnalysisThresholds.from_settings(settings)
        self.gate = AccessGate(
            registry,
            unlocking_plan=settings.unlocking_plan,
            minimum_sessions=settings.minimum_sessions,
        )

    async def completed_sessions(self, user_id: uuid.UUID) -> int:
        q = select(func.count(TrainingSession.id)).where(
            TrainingSession.user_id == user_id,
            TrainingSession.status == SessionStatus.COMPLETED.value,
        )
        result = await self.session.execute(q)
        return int(result.scalar_one())

    async def last_completed_at(self, user_id: uuid.UUID) -> Optional[datetime]:
        q = select(func.max(TrainingSession.ended_at)).where(
            TrainingSession.user_id == user_id,
            TrainingSession.status == SessionStatus.COMPLETED.value,
        )
        result = await self.session.execute(q)
        value = result.scalar_one_or_none()
        return as_utc(value) if value else None

    async def dimension_samples(self, user_id: uuid.UUID, since: datetime) -> List[DimensionSample]:
        q = (
            select(DimensionScore.dimension_key, DimensionScore.score, DimensionScore.created_at)
            .where(
                DimensionScore.user_id == user_id,
                DimensionScore.created_at >= since,
            )
            .order_by(DimensionScore.created_at)
        )
        result = await self.session.execute(q)
        return split_samples(result.all())

    async def score_records(self, user_id: uuid.UUID, since: datetime) -> List[ScoreOutcomeSample]:
        q = (
            select(DrillScore.outcomes, DrillScore.created_at)
            .where(
                DrillScore.user_id == user_id,
                DrillScore.created_at >= since,
            )
            .order_by(DrillScore.created_at)
        )
        result = await self.session.execute(q)
        return [ScoreOutcomeSample(outcomes or {}, as_utc(created)) for outcomes, created in result.all()]

    async def analysis(self, user: User, now: Optional[datetime] = None) -> PatternAnalysis:
        """Ungated analysis. Callers must pass the result through the gate."""
        now = as_utc(now or utcnow())
        total = await self.completed_sessions(user.id)
        if total < self.thresholds.minimum_sessions:
            return analyze([], total, now, self.thresholds, self.registry)

        since = window_start(now, self.thresholds)
        samples = await self.dimension_samples(user.id, since)
        records = await self.score_records(user.id, since)
        return analyze(samples, total, now, self.thresholds, self.registry, records)

    async def gated_analysis(self, user: User, now: Optional[datetime] = None) -> GatedAnalysis:
        analysis = await self.analysis(user, now)
        return self.gate.apply(user.plan, analysis)

    async def teaser(self, user: User, now: Optional[datetime] = None) -> TeaserView:
        analysis = await self.analysis(user, now)
        decision = self.gate.decide(user.plan, analysis.total_sessions)
        view = TeaserView(
            has_enough_data=analysis.has_enough_data,
            is_unlocked=decision is GateDecision.UNLOCKED,
            gate_reason=decision,
            sessions_until_insights=analysis.sessions_until_insights,
            total_sessions=analysis.total_sessions,
        )
        if analysis.has_enough_data:
            summary = teaser_summary(analysis)
            view.blind_spot_count = summary.blind_spot_count
            view.has_improving = summary.has_improving
            view.has_regressing = summary.has_regressing
        return view

    async def status(self, user: User, now: Optional[datetime] = None) -> BlindSpotStatus:
        analysis = await self.analysis(user, now)
        has_access = self.gate.has_full_access(user.plan)
        return BlindSpotStatus(
            has_enough_data=analysis.has_enough_data,
            has_pro_access=has_access,
            can_access_full_insights=analysis.has_enough_data and has_access,
            show_teaser=analysis.has_enough_data and not has_access,
            total_sessions=analysis.total_sessions,
            minimum_sessions=self.thresholds.minimum_sessions,
            sessions_until_insights=sessions_until_insights(
                analysis.total_sessions, self.thresholds.minimum_sessions,
            ),
            blind_spot_count=len(analysis.blind_spots) if analysis.has_enough_data else None,
        )

    async def trends(
        self,
        user: User,
        weeks: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> GatedTrend:
        now = as_utc(now or utcnow())
        weeks = weeks or self.settings.trend_weeks
        total = await self.completed_sessions(user.id)
        if self.gate.decide(user.plan, total) is not GateDecision.UNLOCKED:
            return self.gate.apply_trend(user.plan, total, [])

        since = window_start(now, self.thresholds, trend_weeks=weeks)
        samples = await self.dimension_samples(user.id, since)
        buckets = weekly_trend(samples, now, weeks, self.thresholds.pass_cutoff)
        return self.gate.apply_trend(user.plan, total, buckets)
