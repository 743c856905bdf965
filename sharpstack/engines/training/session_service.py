"""
Session Progression - the state machine behind start / respond / continue.

    start ──> insight ──continue──> scenario ──respond──> feedback ──continue──> next drill
                                       ^                     │
                                       └──── retry <─────────┘ (iteration re-ask)

The last drill's continue completes the session. Writes are guarded by a
conditional UPDATE on (exchange_count, phase, drill_index) so a double
submit cannot count an answer twice or skip a drill.

Scoring jobs are collected in `pending_jobs` and handed to the publisher by
publish_pending() once the caller has committed.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sharpstack.ai.card_oracle import CardOracle, DrillBrief
from sharpstack.ai.errors import OracleError
from sharpstack.config import Settings
from sharpstack.engines.criteria import CriteriaRegistry
from sharpstack.engines.scoring.jobs import ScoringJob, ScoringPublisher
from sharpstack.engines.training.cards import (
    RESPONSE_CARD_TYPES,
    SCORABLE_CARD_TYPES,
    Card,
    ChoiceOption,
    FeedbackCard,
    InsightCard,
    LevelCapCard,
    LevelUpCard,
    MultipleChoiceCard,
    PromptCard,
    ScenarioCard,
    dump_card,
    parse_card,
)
from sharpstack.engines.training.errors import (
    ConcurrentUpdateError,
    InvalidActionError,
    ModeNotFoundError,
    SessionNotFoundError,
)
from sharpstack.engines.training.levels import (
    LevelOutcome,
    effective_max_level,
    evaluate_level,
    exchanges_to_next_level,
)
from sharpstack.engines.training.usage import LimitReached, UsageSnapshot, UsageTracker
from sharpstack.kernel.events import EventStore
from sharpstack.kernel.models import (
    Drill,
    DrillInputType,
    EventType,
    InsightView,
    MessageRole,
    PracticeMode,
    SessionMessage,
    SessionPhase,
    SessionStatus,
    TrainingSession,
    User,
    UserModeProgress,
    as_utc,
    insert_if_absent,
    utcnow,
)
from sharpstack.logging_config import get_logger

logger = get_logger(__name__)

FEEDBACK_FALLBACK = "Let's continue. What's on your mind?"


class ProgressView(BaseModel):
    mode_slug: str
    current_level: int = 1
    max_level: int
    exchanges_at_current_level: int = 0
    exchanges_to_next_level: Optional[int] = None
    total_drills_completed: int = 0
    total_sessions: int = 0
    total_exchanges: int = 0


class SessionState(BaseModel):
    id: uuid.UUID
    mode_slug: str
    status: SessionStatus
    phase: SessionPhase
    drill_index: int
    total_drills: int
    exchange_count: int
    level_at_start: int
    started_at: datetime
    ended_at: Optional[datetime] = None


class SessionStep(BaseModel):
    """What the caller shows after start, respond or continue."""

    session: SessionState
    card: Optional[Card] = None
    # Informational cards shown alongside `card` (level up / level cap)
    notices: List[Card] = []
    progress: ProgressView
    summary: Optional[Dict[str, Any]] = None
    completed: bool = False


class MessageView(BaseModel):
    sequence: int
    role: MessageRole
    card: Optional[Card] = None
    response: Optional[Dict[str, Any]] = None
    created_at: datetime


class SessionView(BaseModel):
    """Resume view: state, the card awaiting action and the full log."""

    session: SessionState
    card: Optional[Card] = None
    progress: ProgressView
    messages: List[MessageView]
    summary: Optional[Dict[str, Any]] = None


class ModeView(BaseModel):
    slug: str
    name: str
    description: Optional[str] = None
    total_drills: int
    progress: ProgressView


class TrainingSessionService:
    """
    Drives one user's training sessions.

    One instance per request; all writes go through the caller's session
    and commit together.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: CriteriaRegistry,
        settings: Settings,
        card_oracle: CardOracle,
        publisher: ScoringPublisher,
    ):
        self.session = session
        self.registry = registry
        self.settings = settings
        self.card_oracle = card_oracle
        self.publisher = publisher
        self.usage = UsageTracker(session, registry)
        self.events = EventStore(session)
        self.pending_jobs: List[ScoringJob] = []

    # -- public operations -----------------------------------------------

    async def start(
        self,
        user: User,
        mode_slug: str,
        now: Optional[datetime] = None,
    ) -> Union[SessionStep, LimitReached]:
        """Open a session on the mode's first drill."""
        now = as_utc(now or utcnow())
        mode = await self._get_mode(mode_slug)

        limit = await self.usage.check(user, now)
        if limit:
            return limit

        progress = await self._get_progress(user.id, mode.id)
        training = TrainingSession(
            user_id=user.id,
            mode_id=mode.id,
            level_at_start=progress.current_level,
            exchange_count=0,
            drill_index=0,
            status=SessionStatus.ACTIVE.value,
            phase=SessionPhase.SCENARIO.value,
            started_at=now,
        )
        self.session.add(training)
        await self.session.flush()

        await self.usage.record_session_start(user.id, now)
        progress.last_trained_at = now

        card, phase = await self._open_drill(user, mode.drills[0], progress.current_level, now)
        training.phase = phase.value
        await self._append_card(training, card)

        await self.events.log(
            event_type=EventType.SESSION_STARTED,
            entity_type="training_session",
            entity_id=training.id,
            user_id=user.id,
            payload={"mode": mode.slug, "level": progress.current_level},
        )
        await self.session.flush()

        logger.info(
            "Training session started",
            extra={
                "session_id": str(training.id),
                "user_id": str(user.id),
                "mode": mode.slug,
                "level": progress.current_level,
            },
        )
        return SessionStep(
            session=self._state(training, mode),
            card=card,
            progress=self._progress_view(user, mode, progress),
        )

    async def submit_response(
        self,
        user: User,
        session_id: uuid.UUID,
        text: Optional[str] = None,
        choice: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Union[SessionStep, LimitReached]:
        """Record an answer to the card awaiting a response."""
        now = as_utc(now or utcnow())
        training = await self._get_owned_session(user, session_id)
        phase = SessionPhase(training.phase)
        if training.status == SessionStatus.COMPLETED.value or not phase.awaits_response:
            raise InvalidActionError(f"Session is not awaiting a response (phase: {phase.value})")

        limit = await self.usage.check(user, now)
        if limit:
            return limit

        mode = await self._get_mode_by_id(training.mode_id)
        drill = mode.drills[training.drill_index]
        card = await self._awaiting_card(training.id)
        if card is None or card.type not in RESPONSE_CARD_TYPES:
            raise InvalidActionError("No card is awaiting a response")

        answer = self._answer_payload(card, drill, text, choice)
        answer["is_iteration"] = card.is_iteration

        # Claim the exchange before any side effect
        expected = training.exchange_count
        claimed = await self.session.execute(
            update(TrainingSession)
            .where(
                TrainingSession.id == training.id,
                TrainingSession.exchange_count == expected,
                TrainingSession.phase == phase.value,
            )
            .values(exchange_count=expected + 1, phase=SessionPhase.FEEDBACK.value)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise ConcurrentUpdateError("Session was updated by another request")
        await self.session.refresh(training)

        await self._append(
            training,
            role=MessageRole.USER,
            drill_phase=card.drill_phase,
            payload=answer,
        )
        await self.usage.record_exchange(user.id, now)

        counts_toward_level = not card.is_iteration or self.settings.count_iterations_toward_progress
        progress = await self._get_progress(user.id, mode.id)
        await self.session.execute(
            update(UserModeProgress)
            .where(UserModeProgress.id == progress.id)
            .values(
                total_exchanges=UserModeProgress.total_exchanges + 1,
                exchanges_at_current_level=(
                    UserModeProgress.exchanges_at_current_level + (1 if counts_toward_level else 0)
                ),
                last_trained_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(progress)

        self._queue_scoring(user, training, drill, card, answer["text"])

        next_card, next_phase = await self._feedback_card(
            self._brief(drill, progress.current_level), card, answer["text"],
        )
        training.phase = next_phase.value
        await self._append_card(training, next_card)

        notices = []
        level_card = await self._apply_level(user, training, mode, progress)
        if level_card is not None:
            notices.append(level_card)

        await self.events.log(
            event_type=EventType.RESPONSE_SUBMITTED,
            entity_type="training_session",
            entity_id=training.id,
            user_id=user.id,
            payload={
                "drill_phase": card.drill_phase,
                "card_type": card.type,
                "is_iteration": card.is_iteration,
                "exchange_count": training.exchange_count,
            },
        )
        await self.session.flush()

        return SessionStep(
            session=self._state(training, mode),
            card=next_card,
            notices=notices,
            progress=self._progress_view(user, mode, progress),
        )

    async def continue_session(
        self,
        user: User,
        session_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> SessionStep:
        """Move past an insight or feedback card."""
        now = as_utc(now or utcnow())
        training = await self._get_owned_session(user, session_id)
        phase = SessionPhase(training.phase)
        if training.status == SessionStatus.COMPLETED.value or not phase.awaits_continue:
            raise InvalidActionError(f"Session is not awaiting continue (phase: {phase.value})")

        mode = await self._get_mode_by_id(training.mode_id)
        current_index = training.drill_index
        next_index = current_index if phase is SessionPhase.INSIGHT else current_index + 1
        finishing = next_index >= len(mode.drills)

        values = {"drill_index": next_index, "phase": SessionPhase.SCENARIO.value}
        if finishing:
            values = {
                "phase": SessionPhase.COMPLETED.value,
                "status": SessionStatus.COMPLETED.value,
                "ended_at": now,
            }
        claimed = await self.session.execute(
            update(TrainingSession)
            .where(
                TrainingSession.id == training.id,
                TrainingSession.phase == phase.value,
                TrainingSession.drill_index == current_index,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise ConcurrentUpdateError("Session was updated by another request")
        await self.session.refresh(training)

        progress = await self._get_progress(user.id, mode.id)
        if finishing:
            return await self._complete(user, training, mode, progress, now)

        drill = mode.drills[next_index]
        if phase is SessionPhase.INSIGHT:
            card = await self._scenario_card(drill, progress.current_level)
            next_phase = SessionPhase.SCENARIO
        else:
            card, next_phase = await self._open_drill(user, drill, progress.current_level, now)
        training.phase = next_phase.value
        await self._append_card(training, card)
        await self.session.flush()

        return SessionStep(
            session=self._state(training, mode),
            card=card,
            progress=self._progress_view(user, mode, progress),
        )

    async def get_session_view(self, user: User, session_id: uuid.UUID) -> SessionView:
        training = await self._get_owned_session(user, session_id)
        mode = await self._get_mode_by_id(training.mode_id, active_only=False)
        progress = await self._find_progress(user.id, mode.id)

        q = (
            select(SessionMessage)
            .where(SessionMessage.session_id == training.id)
            .order_by(SessionMessage.sequence)
        )
        result = await self.session.execute(q)
        messages = []
        awaiting = None
        for row in result.scalars().all():
            if row.role == MessageRole.SYSTEM.value:
                card = parse_card(row.payload)
                messages.append(MessageView(
                    sequence=row.sequence, role=MessageRole.SYSTEM, card=card, created_at=row.created_at,
                ))
                if card.type not in ("level_up", "level_cap"):
                    awaiting = card
            else:
                messages.append(MessageView(
                    sequence=row.sequence, role=MessageRole.USER, response=row.payload, created_at=row.created_at,
                ))

        if training.status == SessionStatus.COMPLETED.value:
            awaiting = None

        return SessionView(
            session=self._state(training, mode),
            card=awaiting,
            progress=self._progress_view(user, mode, progress),
            messages=messages,
            summary=training.summary,
        )

    async def list_modes(self, user: User) -> List[ModeView]:
        q = select(PracticeMode).where(PracticeMode.is_active.is_(True)).order_by(PracticeMode.name)
        result = await self.session.execute(q)
        modes = [m for m in result.scalars().all() if m.drills]

        progress_q = select(UserModeProgress).where(UserModeProgress.user_id == user.id)
        progress_result = await self.session.execute(progress_q)
        by_mode = {p.mode_id: p for p in progress_result.scalars().all()}

        return [
            ModeView(
                slug=mode.slug,
                name=mode.name,
                description=mode.description,
                total_drills=len(mode.drills),
                progress=self._progress_view(user, mode, by_mode.get(mode.id)),
            )
            for mode in modes
        ]

    async def usage_snapshot(self, user: User, now: Optional[datetime] = None) -> UsageSnapshot:
        return await self.usage.snapshot(user, now)

    def publish_pending(self) -> int:
        """Hand collected scoring jobs to the publisher. Call after commit."""
        published = 0
        for job in self.pending_jobs:
            if self.publisher.enqueue(job):
                published += 1
        self.pending_jobs = []
        return published

    # -- transitions -------------------------------------------------------

    async def _open_drill(self, user: User, drill: Drill, level: int, now: datetime):
        """A drill opens with its one-time insight if unseen, else its scenario."""
        if drill.insight and not await self._insight_seen(user.id, drill.id):
            await insert_if_absent(
                self.session, InsightView, ["user_id", "drill_id"], user_id=user.id, drill_id=drill.id, seen_at=now,
            )
            card = InsightCard(content=drill.insight, title=drill.name, drill_phase=drill.name)
            return card, SessionPhase.INSIGHT
        card = await self._scenario_card(drill, level)
        return card, SessionPhase.SCENARIO

    async def _scenario_card(self, drill: Drill, level: int) -> Card:
        if drill.input_type == DrillInputType.MULTIPLE_CHOICE.value:
            return MultipleChoiceCard(
                content=drill.instruction,
                drill_phase=drill.name,
                options=[ChoiceOption(id=str(o["id"]), label=str(o["label"])) for o in drill.options or []],
                timer_seconds=drill.timer_seconds,
            )

        try:
            content = await self.card_oracle.scenario(self._brief(drill, level))
        except OracleError as exc:
            logger.warning(
                "Card oracle failed, using authored instruction",
                extra={"drill_phase": drill.name, "error": str(exc)},
            )
            return ScenarioCard(content=drill.instruction, drill_phase=drill.name, timer_seconds=drill.timer_seconds)

        return ScenarioCard(
            content=content.scenario,
            task=content.task,
            drill_phase=drill.name,
            timer_seconds=drill.timer_seconds,
        )

    async def _feedback_card(self, brief: DrillBrief, answered: Card, response_text: str):
        try:
            content = await self.card_oracle.feedback(brief, answered.content, response_text, answered.is_iteration)
        except OracleError as exc:
            logger.warning(
                "Card oracle failed, using fallback card",
                extra={"drill_phase": answered.drill_phase, "error": str(exc)},
            )
            return InsightCard(content=FEEDBACK_FALLBACK, drill_phase=answered.drill_phase), SessionPhase.FEEDBACK

        if content.retry_prompt and not answered.is_iteration:
            card = PromptCard(
                content=f"{content.feedback}\n\n{content.retry_prompt}",
                drill_phase=answered.drill_phase,
                is_iteration=True,
            )
            return card, SessionPhase.RETRY

        card = FeedbackCard(
            content=content.feedback,
            score=content.score,
            drill_phase=answered.drill_phase,
            is_iteration=answered.is_iteration,
        )
        return card, SessionPhase.FEEDBACK

    async def _complete(
        self,
        user: User,
        training: TrainingSession,
        mode: PracticeMode,
        progress: UserModeProgress,
        now: datetime,
    ) -> SessionStep:
        await self.session.execute(
            update(UserModeProgress)
            .where(UserModeProgress.id == progress.id)
            .values(total_sessions=UserModeProgress.total_sessions + 1, last_trained_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(progress)

        training.summary = await self._summary(training, mode, progress, now)

        notices = []
        level_card = await self._apply_level(user, training, mode, progress)
        if level_card is not None:
            notices.append(level_card)
            training.summary = {**training.summary, "level": progress.current_level}

        await self.events.log(
            event_type=EventType.SESSION_COMPLETED,
            entity_type="training_session",
            entity_id=training.id,
            user_id=user.id,
            payload=training.summary,
        )
        await self.session.flush()

        logger.info(
            "Training session completed",
            extra={
                "session_id": str(training.id),
                "user_id": str(user.id),
                "mode": mode.slug,
                "exchanges": training.exchange_count,
            },
        )
        return SessionStep(
            session=self._state(training, mode),
            notices=notices,
            progress=self._progress_view(user, mode, progress),
            summary=training.summary,
            completed=True,
        )

    async def _apply_level(
        self,
        user: User,
        training: TrainingSession,
        mode: PracticeMode,
        progress: UserModeProgress,
    ) -> Optional[Card]:
        decision = evaluate_level(
            self.registry.levels,
            self.registry.plan(user.plan),
            progress.current_level,
            progress.exchanges_at_current_level,
            cap_notified_level=progress.cap_notified_level,
            mode_thresholds=mode.level_thresholds,
        )
        if decision.outcome is LevelOutcome.NONE:
            return None

        if decision.outcome is LevelOutcome.LEVEL_UP:
            previous = progress.current_level
            progress.current_level = decision.level
            progress.exchanges_at_current_level = 0
            card = LevelUpCard(content=decision.message, new_level=decision.level)
            event_type = EventType.LEVEL_UP
            payload = {"mode": mode.slug, "from_level": previous, "to_level": decision.level}
        else:
            progress.cap_notified_level = decision.level
            card = LevelCapCard(content=decision.message, level=decision.level)
            event_type = EventType.LEVEL_CAPPED
            payload = {"mode": mode.slug, "level": decision.level, "plan": self.registry.plan(user.plan).key}

        await self._append_card(training, card)
        await self.events.log(
            event_type=event_type,
            entity_type="user_mode_progress",
            entity_id=progress.id,
            user_id=user.id,
            payload=payload,
        )
        logger.info(
            "Level change",
            extra={"user_id": str(user.id), "outcome": decision.outcome.value, **payload},
        )
        return card

    def _queue_scoring(
        self,
        user: User,
        training: TrainingSession,
        drill: Drill,
        card: Card,
        response_text: str,
    ) -> None:
        drill_type = self.registry.drill_type_for_phase(card.drill_phase)
        if card.type not in SCORABLE_CARD_TYPES or drill_type is None:
            logger.debug(
                "Answer not scored",
                extra={"session_id": str(training.id), "card_type": card.type, "drill_phase": card.drill_phase},
            )
            return

        self.pending_jobs.append(ScoringJob(
            user_id=user.id,
            session_id=training.id,
            mode_id=training.mode_id,
            drill_id=drill.id,
            drill_type=drill_type,
            drill_phase=card.drill_phase,
            is_iteration=card.is_iteration,
            response_text=response_text,
        ))

    # -- helpers -----------------------------------------------------------

    def _answer_payload(
        self,
        card: Card,
        drill: Drill,
        text: Optional[str],
        choice: Optional[str],
    ) -> Dict[str, Any]:
        if card.type == "multiple_choice":
            if not choice:
                raise InvalidActionError("A choice is required for this card")
            options = {str(o["id"]): o for o in drill.options or []}
            if choice not in options:
                raise InvalidActionError(f"Unknown choice: {choice}")
            option = options[choice]
            return {
                "text": str(option["label"]),
                "choice": choice,
                "correct": option.get("correct"),
            }

        if not text or not text.strip():
            raise InvalidActionError("A text response is required for this card")
        return {"text": text.strip(), "choice": None}

    def _brief(self, drill: Drill, level: int) -> DrillBrief:
        return DrillBrief(
            phase=drill.name,
            instruction=drill.instruction,
            level=level,
            input_type=drill.input_type,
            options=list(drill.options or []),
        )

    async def _summary(
        self,
        training: TrainingSession,
        mode: PracticeMode,
        progress: UserModeProgress,
        now: datetime,
    ) -> Dict[str, Any]:
        q = (
            select(SessionMessage)
            .where(SessionMessage.session_id == training.id)
            .order_by(SessionMessage.sequence)
        )
        result = await self.session.execute(q)

        responses = iterations = choices = correct = 0
        for row in result.scalars().all():
            if row.role == MessageRole.SYSTEM.value:
                continue
            responses += 1
            if row.payload.get("is_iteration"):
                iterations += 1
            if row.payload.get("choice") is not None:
                choices += 1
                if row.payload.get("correct"):
                    correct += 1

        return {
            "drills": len(mode.drills),
            "responses": responses,
            "iterations": iterations,
            "exchange_count": training.exchange_count,
            "multiple_choice_answered": choices,
            "multiple_choice_correct": correct,
            "accuracy": round(correct / choices, 4) if choices else None,
            "duration_seconds": int((now - as_utc(training.started_at)).total_seconds()),
            "level_at_start": training.level_at_start,
            "level": progress.current_level,
        }

    def _state(self, training: TrainingSession, mode: PracticeMode) -> SessionState:
        return SessionState(
            id=training.id,
            mode_slug=mode.slug,
            status=SessionStatus(training.status),
            phase=SessionPhase(training.phase),
            drill_index=training.drill_index,
            total_drills=len(mode.drills),
            exchange_count=training.exchange_count,
            level_at_start=training.level_at_start,
            started_at=as_utc(training.started_at),
            ended_at=as_utc(training.ended_at) if training.ended_at else None,
        )

    def _progress_view(
        self,
        user: User,
        mode: PracticeMode,
        progress: Optional[UserModeProgress],
    ) -> ProgressView:
        ladder = self.registry.levels
        max_level = effective_max_level(ladder, self.registry.plan(user.plan))
        if progress is None:
            return ProgressView(
                mode_slug=mode.slug,
                max_level=max_level,
                exchanges_to_next_level=exchanges_to_next_level(ladder, 1, 0, mode.level_thresholds),
            )
        return ProgressView(
            mode_slug=mode.slug,
            current_level=progress.current_level,
            max_level=max_level,
            exchanges_at_current_level=progress.exchanges_at_current_level,
            exchanges_to_next_level=exchanges_to_next_level(
                ladder,
                progress.current_level,
                progress.exchanges_at_current_level,
                mode.level_thresholds,
            ),
            total_drills_completed=progress.total_drills_completed,
            total_sessions=progress.total_sessions,
            total_exchanges=progress.total_exchanges,
        )

    async def _append(
        self,
        training: TrainingSession,
        role: MessageRole,
        payload: Dict[str, Any],
        card_type: Optional[str] = None,
        drill_phase: Optional[str] = None,
    ) -> SessionMessage:
        q = select(func.max(SessionMessage.sequence)).where(SessionMessage.session_id == training.id)
        result = await self.session.execute(q)
        last = result.scalar_one_or_none()
        message = SessionMessage(
            session_id=training.id,
            sequence=0 if last is None else last + 1,
            role=role.value,
            card_type=card_type,
            drill_phase=drill_phase,
            payload=payload,
        )
        self.session.add(message)
        await self.session.flush()
        return message

    async def _append_card(self, training: TrainingSession, card: Card) -> SessionMessage:
        return await self._append(
            training,
            role=MessageRole.SYSTEM,
            payload=dump_card(card),
            card_type=card.type,
            drill_phase=card.drill_phase,
        )

    async def _awaiting_card(self, session_id: uuid.UUID) -> Optional[Card]:
        q = (
            select(SessionMessage)
            .where(
                SessionMessage.session_id == session_id,
                SessionMessage.role == MessageRole.SYSTEM.value,
                SessionMessage.card_type.in_(sorted(RESPONSE_CARD_TYPES)),
            )
            .order_by(SessionMessage.sequence.desc())
            .limit(1)
        )
        result = await self.session.execute(q)
        row = result.scalar_one_or_none()
        return parse_card(row.payload) if row else None

    async def _insight_seen(self, user_id: uuid.UUID, drill_id: uuid.UUID) -> bool:
        q = select(InsightView.id).where(
            InsightView.user_id == user_id,
            InsightView.drill_id == drill_id,
        )
        result = await self.session.execute(q)
        return result.first() is not None

    async def _get_mode(self, slug: str) -> PracticeMode:
        q = select(PracticeMode).where(
            PracticeMode.slug == slug,
            PracticeMode.is_active.is_(True),
        )
        result = await self.session.execute(q)
        mode = result.scalar_one_or_none()
        if not mode or not mode.drills:
            raise ModeNotFoundError(f"Practice mode not found: {slug}")
        return mode

    async def _get_mode_by_id(self, mode_id: uuid.UUID, active_only: bool = True) -> PracticeMode:
        mode = await self.session.get(PracticeMode, mode_id)
        if not mode or not mode.drills or (active_only and not mode.is_active):
            raise ModeNotFoundError(f"Practice mode not found: {mode_id}")
        return mode

    async def _get_owned_session(self, user: User, session_id: uuid.UUID) -> TrainingSession:
        training = await self.session.get(TrainingSession, session_id)
        if not training or training.user_id != user.id:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return training

    async def _find_progress(self, user_id: uuid.UUID, mode_id: uuid.UUID) -> Optional[UserModeProgress]:
        q = select(UserModeProgress).where(
            UserModeProgress.user_id == user_id,
            UserModeProgress.mode_id == mode_id,
        )
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    async def _get_progress(self, user_id: uuid.UUID, mode_id: uuid.UUID) -> UserModeProgress:
        """Get or create the (user, mode) progress row."""
        progress = await self._find_progress(user_id, mode_id)
        if not progress:
            await insert_if_absent(
                self.session,
                UserModeProgress,
                ["user_id", "mode_id"],
                user_id=user_id,
                mode_id=mode_id,
                current_level=1,
                total_drills_completed=0,
                total_sessions=0,
                total_exchanges=0,
                exchanges_at_current_level=0,
            )
            progress = await self._find_progress(user_id, mode_id)
        return progress
