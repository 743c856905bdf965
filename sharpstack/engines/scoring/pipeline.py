"""
Drill Scoring Pipeline.

evaluate() asks the oracle and validates its answer; persist() writes the
immutable score record, its dimension scores and the progress counter in
the caller's transaction. score() does both for callers that do not need
the split (the worker pool retries evaluate() on its own).
"""

from typing import Dict, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from sharpstack.ai.errors import OracleResponseError
from sharpstack.ai.scoring_oracle import ScoringOracle
from sharpstack.config import Settings
from sharpstack.engines.criteria import CriteriaRegistry, CriterionValue
from sharpstack.engines.scoring.dimension_scoring import (
    score_dimensions,
    validate_outcomes,
    word_count,
)
from sharpstack.engines.scoring.jobs import ScoringJob
from sharpstack.kernel.models import DimensionScore, DrillScore, UserModeProgress
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)


class DrillScoringPipeline:
    """Turns one answer into a DrillScore and its DimensionScores."""

    def __init__(
        self,
        registry: CriteriaRegistry,
        oracle: ScoringOracle,
        settings: Settings,
    ):
        self.registry = registry
        self.oracle = oracle
        self.settings = settings

    async def evaluate(self, job: ScoringJob) -> Optional[Dict[str, CriterionValue]]:
        """
        Ask the oracle to judge the answer.

        Returns None for an unknown drill type (nothing to score).
        Raises OracleUnavailableError / OracleResponseError for the caller
        to retry.
        """
        criteria = self.registry.criteria_for(job.drill_type)
        if criteria is None:
            logger.info(
                "Skipping scoring for unknown drill type",
                extra={"drill_type": job.drill_type, "session_id": str(job.session_id)},
            )
            return None

        raw = await self.oracle.evaluate(job.drill_type, job.drill_phase, job.response_text, criteria)
        if not isinstance(raw, dict):
            raise OracleResponseError("Scoring oracle result is not a mapping")

        outcomes = validate_outcomes(criteria, raw)
        missing = len(criteria) - len(outcomes)
        if missing:
            logger.debug(
                "Oracle left criteria unanswered",
                extra={"drill_type": job.drill_type, "missing": missing},
            )
        return outcomes

    async def persist(
        self,
        session: AsyncSession,
        job: ScoringJob,
        outcomes: Dict[str, CriterionValue],
    ) -> DrillScore:
        """Write the score record, dimension scores and progress counter."""
        record = DrillScore(
            user_id=job.user_id,
            session_id=job.session_id,
            mode_id=job.mode_id,
            drill_type=job.drill_type,
            drill_phase=job.drill_phase,
            is_iteration=job.is_iteration,
            outcomes=dict(outcomes),
            response_text=job.response_text,
            word_count=word_count(job.response_text),
        )
        session.add(record)
        await session.flush()

        dimension_scores = score_dimensions(
            self.registry,
            job.drill_type,
            outcomes,
            penalty=self.settings.dimension_penalty,
        )
        for key, value in dimension_scores.items():
            session.add(DimensionScore(
                user_id=job.user_id,
                drill_score_id=record.id,
                drill_id=job.drill_id,
                dimension_key=key,
                score=value,
                created_at=record.created_at,
            ))

        if job.mode_id and (not job.is_iteration or self.settings.count_iterations_toward_progress):
            await session.execute(
                update(UserModeProgress)
                .where(
                    UserModeProgress.user_id == job.user_id,
                    UserModeProgress.mode_id == job.mode_id,
                )
                .values(total_drills_completed=UserModeProgress.total_drills_completed + 1)
            )

        await session.flush()
        logger.info(
            "Drill scored",
            extra={
                "session_id": str(job.session_id),
                "drill_type": job.drill_type,
                "is_iteration": job.is_iteration,
                "dimensions": sorted(dimension_scores),
            },
        )
        return record

    async def score(self, session: AsyncSession, job: ScoringJob) -> Optional[DrillScore]:
        """Evaluate and persist in one go; None when the drill type is unknown."""
        outcomes = await self.evaluate(job)
        if outcomes is None:
            return None
        return await self.persist(session, job, outcomes)
