"""
Notification Trigger - teaser on the session that unlocks insights, and the
weekly report for users with full access.

Every send follows the same steps in one transaction:
    1. insert the EmailSend row for the (user, type, week, year) slot
    2. flush: a duplicate slot raises IntegrityError -> rollback, skipped
       (teasers are unique per user across all weeks)
    3. deliver the message
    4. commit
A delivery failure rolls back the row, so a rerun can send; a rerun after a
successful send hits the unique constraint and does nothing.
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sharpstack.config import Settings
from sharpstack.engines.criteria import CriteriaRegistry
from sharpstack.engines.insights import GateDecision, InsightsService, teaser_summary
from sharpstack.engines.notifications.content import (
    EmailMessage,
    build_teaser,
    build_weekly_report,
)
from sharpstack.engines.notifications.email_service import EmailSender
from sharpstack.kernel.events import EventStore
from sharpstack.kernel.models import (
    EmailSend,
    EmailType,
    EventType,
    SessionStatus,
    TrainingSession,
    User,
    as_utc,
    utcnow,
)
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)


class SendOutcome(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    NOT_ELIGIBLE = "not_eligible"


class WeeklyRunResult(BaseModel):
    week: int
    year: int
    candidates: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class NotificationTrigger:
    """Decides who gets an email and sends it at most once per slot."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        registry: CriteriaRegistry,
        settings: Settings,
        sender: EmailSender,
    ):
        self.session_maker = session_maker
        self.registry = registry
        self.settings = settings
        self.sender = sender

    async def on_session_completed(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> SendOutcome:
        """Teaser check, run after a completed session has been committed."""
        now = as_utc(now or utcnow())
        async with self.session_maker() as session:
            user = await session.get(User, user_id)
            if not user or not user.is_active or not user.teaser_emails_enabled:
                return SendOutcome.NOT_ELIGIBLE

            insights = InsightsService(session, self.registry, self.settings)
            completed = await insights.completed_sessions(user.id)
            # Only the session that reaches the minimum, never before or after
            if completed != self.settings.minimum_sessions:
                return SendOutcome.NOT_ELIGIBLE
            if insights.gate.decide(user.plan, completed) is not GateDecision.REQUIRES_UPGRADE:
                return SendOutcome.NOT_ELIGIBLE
            if await self._teaser_sent(session, user.id):
                return SendOutcome.SKIPPED

            analysis = await insights.analysis(user, now)
            if not analysis.blind_spots:
                return SendOutcome.NOT_ELIGIBLE

            snapshot = teaser_summary(analysis).model_dump(mode="json")
            iso = now.isocalendar()
            return await self._send_once(
                session,
                user,
                EmailType.TEASER,
                iso[1],
                iso[0],
                snapshot,
                build_teaser(user, snapshot, self.settings.app_url),
            )

    async def run_weekly(self, now: Optional[datetime] = None) -> WeeklyRunResult:
        """Weekly tick: one report per eligible user for the current ISO week."""
        now = as_utc(now or utcnow())
        iso = now.isocalendar()
        result = WeeklyRunResult(week=iso[1], year=iso[0])

        async with self.session_maker() as session:
            user_ids = await self._weekly_candidates(session, now)
        result.candidates = len(user_ids)

        for user_id in user_ids:
            try:
                outcome = await self.send_weekly_report(user_id, now)
            except Exception:
                result.failed += 1
                logger.exception("Weekly report failed", extra={"user_id": str(user_id)})
                continue
            if outcome is SendOutcome.SENT:
                result.sent += 1
            elif outcome is SendOutcome.SKIPPED:
                result.skipped += 1

        logger.info("Weekly report run finished", extra=result.model_dump())
        return result

    async def send_weekly_report(self, user_id: uuid.UUID, now: Optional[datetime] = None) -> SendOutcome:
        now = as_utc(now or utcnow())
        iso = now.isocalendar()
        async with self.session_maker() as session:
            user = await session.get(User, user_id)
            if not user or not user.is_active or not user.weekly_report_enabled:
                return SendOutcome.NOT_ELIGIBLE

            insights = InsightsService(session, self.registry, self.settings)
            gated = await insights.gated_analysis(user, now)
            if gated.gate_reason is not GateDecision.UNLOCKED:
                return SendOutcome.NOT_ELIGIBLE

            snapshot = gated.model_dump(mode="json")
            snapshot["week"] = f"{iso[0]}-W{iso[1]:02d}"
            return await self._send_once(
                session,
                user,
                EmailType.WEEKLY_REPORT,
                iso[1],
                iso[0],
                snapshot,
                build_weekly_report(user, snapshot, self.settings.app_url),
            )

    async def _teaser_sent(self, session: AsyncSession, user_id: uuid.UUID) -> bool:
        q = select(EmailSend.id).where(
            EmailSend.user_id == user_id,
            EmailSend.email_type == EmailType.TEASER.value,
        )
        return (await session.scalar(q.limit(1))) is not None

    async def _weekly_candidates(self, session: AsyncSession, now: datetime) -> List[uuid.UUID]:
        """Active, opted-in users at the unlocking tier who trained in the last 7 days."""
        since = now - timedelta(days=7)
        q = (
            select(User.id, User.plan)
            .join(TrainingSession, TrainingSession.user_id == User.id)
            .where(
                User.is_active.is_(True),
                User.weekly_report_enabled.is_(True),
                TrainingSession.status == SessionStatus.COMPLETED.value,
                TrainingSession.ended_at >= since,
            )
            .distinct()
        )
        rows = await session.execute(q)
        return [
            user_id for user_id, plan in rows.all()
            if self.registry.plan_at_least(plan, self.settings.unlocking_plan)
        ]

    async def _send_once(
        self,
        session: AsyncSession,
        user: User,
        email_type: EmailType,
        week: int,
        year: int,
        snapshot: Dict[str, Any],
        message: EmailMessage,
    ) -> SendOutcome:
        # Rollback expires ORM state, so keep plain values
        user_id = user.id
        record = EmailSend(
            user_id=user_id,
            email_type=email_type.value,
            week_number=week,
            year=year,
            snapshot=snapshot,
            subject=message.subject,
        )
        session.add(record)
        try:
            await session.flush()
        except IntegrityError:
            await session.rollback()
            logger.info(
                "Email already sent for slot, skipping",
                extra={"user_id": str(user_id), "email_type": email_type.value, "week": week, "year": year},
            )
            return SendOutcome.SKIPPED

        try:
            await self.sender.send(message)
            await EventStore(session).log(
                event_type=EventType.EMAIL_SENT,
                entity_type="email_send",
                entity_id=record.id,
                user_id=user_id,
                payload={"email_type": email_type.value, "week": week, "year": year},
            )
            await session.commit()
        except Exception:
            await session.rollback()
            raise

        logger.info(
            "Email sent",
            extra={"user_id": str(user_id), "email_type": email_type.value, "subject": message.subject},
        )
        return SendOutcome.SENT
