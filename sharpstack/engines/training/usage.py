"""
Daily usage - per-plan exchange budget for the current UTC day.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sharpstack.engines.criteria import CriteriaRegistry
from sharpstack.kernel.models import DailyUsage, User, as_utc, insert_if_absent, utcnow
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)


class LimitReached(BaseModel):
    """The plan's daily exchange budget is used up. A result, not an error."""

    plan: str
    daily_limit: int
    used: int
    message: str


class UsageSnapshot(BaseModel):
    plan: str
    daily_limit: int
    used: int
    remaining: int
    usage_date: date


def usage_day(now: Optional[datetime] = None) -> date:
    return as_utc(now or utcnow()).date()


class UsageTracker:
    """Reads and increments the daily_usage row for (user, day)."""

    def __init__(self, session: AsyncSession, registry: CriteriaRegistry):
        self.session = session
        self.registry = registry

    async def _get_or_create(self, user_id: uuid.UUID, day: date) -> DailyUsage:
        q = select(DailyUsage).where(
            DailyUsage.user_id == user_id,
            DailyUsage.usage_date == day,
        )
        row = await self.session.scalar(q)
        if row is None:
            # First write of the day; a concurrent request may create it first
            await insert_if_absent(
                self.session,
                DailyUsage,
                ["user_id", "usage_date"],
                user_id=user_id,
                usage_date=day,
                exchange_count=0,
                sessions_started=0,
            )
            row = await self.session.scalar(q)
        return row

    async def used_today(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> int:
        q = select(DailyUsage.exchange_count).where(
            DailyUsage.user_id == user_id,
            DailyUsage.usage_date == usage_day(now),
        )
        result = await self.session.execute(q)
        return result.scalar_one_or_none() or 0

    async def snapshot(self, user: User, now: Optional[datetime] = None) -> UsageSnapshot:
        plan = self.registry.plan(user.plan)
        used = await self.used_today(user.id, now)
        return UsageSnapshot(
            plan=plan.key,
            daily_limit=plan.daily_exchanges,
            used=used,
            remaining=max(0, plan.daily_exchanges - used),
            usage_date=usage_day(now),
        )

    async def check(self, user: User, now: Optional[datetime] = None) -> Optional[LimitReached]:
        """LimitReached when no exchanges remain today, else None."""
        snapshot = await self.snapshot(user, now)
        if snapshot.remaining > 0:
            return None

        logger.info(
            "Daily exchange limit reached",
            extra={"user_id": str(user.id), "plan": snapshot.plan, "used": snapshot.used},
        )
        plan = self.registry.plan(user.plan)
        return LimitReached(
            plan=snapshot.plan,
            daily_limit=snapshot.daily_limit,
            used=snapshot.used,
            message=(
                f"You've used all {snapshot.daily_limit} exchanges for today on the "
                f"{plan.label} plan. Come back tomorrow or upgrade for more."
            ),
        )

    async def record_exchange(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> None:
        row = await self._get_or_create(user_id, usage_day(now))
        await self.session.execute(
            update(DailyUsage)
            .where(DailyUsage.id == row.id)
            .values(exchange_count=DailyUsage.exchange_count + 1)
        )

    async def record_session_start(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> None:
        row = await self._get_or_create(user_id, usage_day(now))
        await self.session.execute(
            update(DailyUsage)
            .where(DailyUsage.id == row.id)
            .values(sessions_started=DailyUsage.sessions_started + 1)
        )
