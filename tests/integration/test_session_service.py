"""
Integration tests for session progression against a real database.

Covers start / respond / continue transitions, scoring job hand-off,
daily limits, concurrency guards, levels and completion summaries.
"""

import pytest
from sqlalchemy import func, select

from sharpstack.engines.scoring import RecordingPublisher
from sharpstack.engines.training import (
    ConcurrentUpdateError,
    InvalidActionError,
    LimitReached,
    ModeNotFoundError,
    SessionNotFoundError,
    TrainingSessionService,
)
from sharpstack.engines.training.session_service import FEEDBACK_FALLBACK
from sharpstack.engines.training.usage import UsageTracker, usage_day
from sharpstack.kernel.models import (
    DailyUsage,
    EventType,
    InsightView,
    SessionPhase,
    SessionStatus,
    TrainingSession,
    User,
    UserModeProgress,
    insert_if_absent,
)

pytestmark = pytest.mark.integration

ANSWER = "We ship on the 14th. I own the slip and the recovery plan."


async def _to_first_scenario(service, user, mode):
    """Start and skip the insight card."""
    step = await service.start(user, mode.slug)
    if step.session.phase is SessionPhase.INSIGHT:
        step = await service.continue_session(user, step.session.id)
    return step


async def _advance_to_drill(service, user, step, index):
    """Answer and continue until the session sits on drill `index`."""
    while step.session.drill_index < index:
        if step.session.phase.awaits_continue:
            step = await service.continue_session(user, step.session.id)
        elif step.card.type == "multiple_choice":
            step = await service.submit_response(user, step.session.id, choice="a")
        else:
            step = await service.submit_response(user, step.session.id, text=ANSWER)
    if step.session.phase.awaits_continue:
        step = await service.continue_session(user, step.session.id)
    return step


class TestStart:
    """Opening a session."""

    @pytest.mark.asyncio
    async def test_first_drill_opens_with_insight(self, training_service, db_session, test_user, practice_mode):
        step = await training_service.start(test_user, practice_mode.slug)

        assert step.session.status is SessionStatus.ACTIVE
        assert step.session.phase is SessionPhase.INSIGHT
        assert step.card.type == "insight"
        assert step.card.title == "Compression"
        assert step.session.total_drills == 4
        assert step.progress.current_level == 1

        seen = await db_session.scalar(select(func.count(InsightView.id)))
        assert seen == 1

    @pytest.mark.asyncio
    async def test_continue_after_insight_shows_scenario(self, training_service, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        assert step.session.phase is SessionPhase.SCENARIO
        assert step.session.drill_index == 0
        assert step.card.type == "scenario"
        assert step.card.content == "Scenario: Compression at level 1"

    @pytest.mark.asyncio
    async def test_insight_shown_once_per_user(self, training_service, test_user, practice_mode):
        await training_service.start(test_user, practice_mode.slug)
        second = await training_service.start(test_user, practice_mode.slug)
        assert second.session.phase is SessionPhase.SCENARIO
        assert second.card.type == "scenario"

    @pytest.mark.asyncio
    async def test_unknown_mode(self, training_service, test_user):
        with pytest.raises(ModeNotFoundError):
            await training_service.start(test_user, "does-not-exist")

    @pytest.mark.asyncio
    async def test_card_oracle_failure_uses_instruction(self, training_service, card_oracle, test_user, practice_mode):
        await training_service.start(test_user, practice_mode.slug)
        card_oracle.fail = True
        step = await training_service.start(test_user, practice_mode.slug)
        assert step.card.type == "scenario"
        assert step.card.content == practice_mode.drills[0].instruction

    @pytest.mark.asyncio
    async def test_start_logs_event(self, training_service, test_user, practice_mode):
        step = await training_service.start(test_user, practice_mode.slug)
        await training_service.session.flush()
        events = await training_service.events.get_entity_history("training_session", step.session.id)
        assert [e.event_type for e in events] == ["training.session_started"]
        assert events[0].payload["mode"] == practice_mode.slug


class TestSubmitResponse:
    """Answers, scoring hand-off and the retry loop."""

    @pytest.mark.asyncio
    async def test_text_answer_queues_scoring_job(self, training_service, publisher, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        step = await training_service.submit_response(test_user, step.session.id, text=ANSWER)

        assert step.session.phase is SessionPhase.FEEDBACK
        assert step.session.exchange_count == 1
        assert step.card.type == "feedback"
        assert step.progress.total_exchanges == 1

        [job] = training_service.pending_jobs
        assert job.drill_type == "compression"
        assert job.drill_phase == "Compression"
        assert job.is_iteration is False
        assert job.response_text == ANSWER
        assert job.drill_id == practice_mode.drills[0].id

        # Nothing reaches the workers before the caller commits
        assert publisher.jobs == []
        assert training_service.publish_pending() == 1
        assert len(publisher.jobs) == 1
        assert training_service.pending_jobs == []

    @pytest.mark.asyncio
    async def test_multiple_choice_is_not_scored(self, training_service, db_session, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        step = await _advance_to_drill(training_service, test_user, step, 2)
        assert step.card.type == "multiple_choice"
        assert [o.id for o in step.card.options] == ["a", "b"]

        training_service.pending_jobs.clear()
        step = await training_service.submit_response(test_user, step.session.id, choice="a")
        assert training_service.pending_jobs == []
        assert step.session.phase is SessionPhase.FEEDBACK

        view = await training_service.get_session_view(test_user, step.session.id)
        answer = [m for m in view.messages if m.response and m.response.get("choice")][-1]
        assert answer.response["correct"] is True

    @pytest.mark.asyncio
    async def test_unmapped_phase_is_not_scored(self, training_service, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        step = await _advance_to_drill(training_service, test_user, step, 3)
        assert step.card.drill_phase == "Reflection"

        training_service.pending_jobs.clear()
        await training_service.submit_response(test_user, step.session.id, text="Ask for the data sooner.")
        assert training_service.pending_jobs == []

    @pytest.mark.asyncio
    async def test_retry_prompt_then_iteration(self, training_service, card_oracle, test_user, practice_mode):
        card_oracle.retry_prompt = "Try again in one sentence."
        step = await _to_first_scenario(training_service, test_user, practice_mode)

        step = await training_service.submit_response(test_user, step.session.id, text=ANSWER)
        assert step.session.phase is SessionPhase.RETRY
        assert step.card.type == "prompt"
        assert step.card.is_iteration is True
        assert "Try again in one sentence." in step.card.content

        step = await training_service.submit_response(test_user, step.session.id, text="We ship the 14th.")
        assert step.session.phase is SessionPhase.FEEDBACK
        assert step.card.type == "feedback"
        assert step.card.is_iteration is True
        # Never more than one re-ask per drill
        assert card_oracle.feedback_calls == [False, True]

        first, second = training_service.pending_jobs
        assert first.is_iteration is False
        assert second.is_iteration is True

    @pytest.mark.asyncio
    async def test_iterations_do_not_count_toward_level(self, training_service, card_oracle, test_user, practice_mode):
        card_oracle.retry_prompt = "Again, shorter."
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        step = await training_service.submit_response(test_user, step.session.id, text=ANSWER)
        step = await training_service.submit_response(test_user, step.session.id, text="Shorter.")

        assert step.progress.total_exchanges == 2
        assert step.progress.exchanges_at_current_level == 1

    @pytest.mark.asyncio
    async def test_iterations_count_when_configured(
        self, db_session, registry, settings, card_oracle, test_user, practice_mode,
    ):
        settings = settings.model_copy(update={"count_iterations_toward_progress": True})
        service = TrainingSessionService(db_session, registry, settings, card_oracle, RecordingPublisher())
        card_oracle.retry_prompt = "Again, shorter."

        step = await _to_first_scenario(service, test_user, practice_mode)
        step = await service.submit_response(test_user, step.session.id, text=ANSWER)
        step = await service.submit_response(test_user, step.session.id, text="Shorter.")
        assert step.progress.exchanges_at_current_level == 2

    @pytest.mark.asyncio
    async def test_card_oracle_failure_uses_fallback(self, training_service, card_oracle, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        card_oracle.fail = True
        step = await training_service.submit_response(test_user, step.session.id, text=ANSWER)

        assert step.card.content == FEEDBACK_FALLBACK
        assert step.session.phase is SessionPhase.FEEDBACK
        # The answer still counts and is still scored
        assert step.session.exchange_count == 1
        assert len(training_service.pending_jobs) == 1

    @pytest.mark.asyncio
    async def test_respond_when_awaiting_continue(self, training_service, test_user, practice_mode):
        step = await training_service.start(test_user, practice_mode.slug)
        with pytest.raises(InvalidActionError):
            await training_service.submit_response(test_user, step.session.id, text=ANSWER)

    @pytest.mark.asyncio
    async def test_blank_text_rejected(self, training_service, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        with pytest.raises(InvalidActionError):
            await training_service.submit_response(test_user, step.session.id, text="   ")

    @pytest.mark.asyncio
    async def test_unknown_choice_rejected(self, training_service, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        step = await _advance_to_drill(training_service, test_user, step, 2)
        with pytest.raises(InvalidActionError):
            await training_service.submit_response(test_user, step.session.id, choice="z")

    @pytest.mark.asyncio
    async def test_other_users_session_not_found(self, training_service, db_session, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        intruder = User(email="intruder@example.com", plan="pro")
        db_session.add(intruder)
        await db_session.flush()
        with pytest.raises(SessionNotFoundError):
            await training_service.submit_response(intruder, step.session.id, text=ANSWER)


class TestDailyLimit:
    @pytest.mark.asyncio
    async def test_start_blocked_when_budget_used(self, training_service, db_session, test_user, practice_mode):
        db_session.add(DailyUsage(user_id=test_user.id, usage_date=usage_day(), exchange_count=15))
        await db_session.flush()

        result = await training_service.start(test_user, practice_mode.slug)
        assert isinstance(result, LimitReached)
        assert result.plan == "free"
        assert result.daily_limit == 15
        assert result.used == 15
        assert "15 exchanges" in result.message

    @pytest.mark.asyncio
    async def test_submit_blocked_without_counting(self, training_service, db_session, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        usage = await db_session.scalar(select(DailyUsage).where(DailyUsage.user_id == test_user.id))
        usage.exchange_count = 15
        await db_session.flush()

        result = await training_service.submit_response(test_user, step.session.id, text=ANSWER)
        assert isinstance(result, LimitReached)

        view = await training_service.get_session_view(test_user, step.session.id)
        assert view.session.exchange_count == 0
        assert view.session.phase is SessionPhase.SCENARIO

    @pytest.mark.asyncio
    async def test_first_write_of_day_tolerates_concurrent_insert(self, session_maker, registry, test_user):
        day = usage_day()
        async with session_maker() as first_db, session_maker() as second_db:
            assert await insert_if_absent(
                first_db, DailyUsage, ["user_id", "usage_date"], user_id=test_user.id, usage_date=day,
            )
            await first_db.commit()

            # The losing request writes nothing and reuses the winner's row
            assert not await insert_if_absent(
                second_db, DailyUsage, ["user_id", "usage_date"], user_id=test_user.id, usage_date=day,
            )
            await UsageTracker(second_db, registry).record_exchange(test_user.id)
            await second_db.commit()

        async with session_maker() as check_db:
            rows = (await check_db.execute(
                select(DailyUsage).where(DailyUsage.user_id == test_user.id)
            )).scalars().all()
        assert [row.exchange_count for row in rows] == [1]

    @pytest.mark.asyncio
    async def test_insight_view_recorded_once(self, db_session, test_user, practice_mode):
        drill = practice_mode.drills[0]
        db_session.add(InsightView(user_id=test_user.id, drill_id=drill.id))
        await db_session.flush()
        assert not await insert_if_absent(
            db_session, InsightView, ["user_id", "drill_id"], user_id=test_user.id, drill_id=drill.id,
        )
        seen = await db_session.scalar(select(func.count(InsightView.id)))
        assert seen == 1

    @pytest.mark.asyncio
    async def test_usage_snapshot(self, training_service, test_user, practice_mode):
        step = await _to_first_scenario(training_service, test_user, practice_mode)
        await training_service.submit_response(test_user, step.session.id, text=ANSWER)
        snapshot = await training_service.usage_snapshot(test_user)
        assert snapshot.used == 1
        assert snapshot.remaining == 14


class TestConcurrency:
    """A stale request cannot count an answer twice or skip a drill."""

    @pytest.mark.asyncio
    async def test_double_submit_rejected(
        self, session_maker, registry, settings, card_oracle, test_user, practice_mode,
    ):
        async with session_maker() as first_db:
            first = TrainingSessionService(first_db, registry, settings, card_oracle, RecordingPublisher())
            step = await _to_first_scenario(first, test_user, practice_mode)
            await first_db.commit()
            session_id = step.session.id
            # Pin the pre-answer row in first_db's identity map
            stale = await first_db.get(TrainingSession, session_id)
            assert stale.exchange_count == 0

            async with session_maker() as second_db:
                second = TrainingSessionService(second_db, registry, settings, card_oracle, RecordingPublisher())
                await second.submit_response(test_user, session_id, text=ANSWER)
                await second_db.commit()

            with pytest.raises(ConcurrentUpdateError):
                await first.submit_response(test_user, session_id, text=ANSWER)
            await first_db.rollback()

        async with session_maker() as check_db:
            checker = TrainingSessionService(check_db, registry, settings, card_oracle, RecordingPublisher())
            view = await checker.get_session_view(test_user, session_id)
            assert view.session.exchange_count == 1

    @pytest.mark.asyncio
    async def test_double_continue_rejected(
        self, session_maker, registry, settings, card_oracle, test_user, practice_mode,
    ):
        async with session_maker() as first_db:
            first = TrainingSessionService(first_db, registry, settings, card_oracle, RecordingPublisher())
            step = await _to_first_scenario(first, test_user, practice_mode)
            step = await first.submit_response(test_user, step.session.id, text=ANSWER)
            assert step.session.phase is SessionPhase.FEEDBACK
            await first_db.commit()
            session_id = step.session.id
            stale = await first_db.get(TrainingSession, session_id)
            assert stale.drill_index == 0

            async with session_maker() as second_db:
                second = TrainingSessionService(second_db, registry, settings, card_oracle, RecordingPublisher())
                await second.continue_session(test_user, session_id)
                await second_db.commit()

            with pytest.raises(ConcurrentUpdateError):
                await first.continue_session(test_user, session_id)
            await first_db.rollback()

        async with session_maker() as check_db:
            checker = TrainingSessionService(check_db, registry, settings, card_oracle, RecordingPublisher())
            view = await checker.get_session_view(test_user, session_id)
            assert view.session.drill_index == 1
            assert view.session.phase is SessionPhase.SCENARIO


class TestLevels:
    @pytest.mark.asyncio
    async def test_level_up_then_cap_once(self, training_service, db_session, test_user, practice_mode):
        practice_mode.level_thresholds = {"1": 1, "2": 1}
        await db_session.flush()

        step = await _to_first_scenario(training_service, test_user, practice_mode)
        step = await training_service.submit_response(test_user, step.session.id, text=ANSWER)
        [notice] = step.notices
        assert notice.type == "level_up"
        assert notice.new_level == 2
        assert step.progress.current_level == 2
        assert step.progress.exchanges_at_current_level == 0

        step = await training_service.continue_session(test_user, step.session.id)
        step = await training_service.submit_response(test_user, step.session.id, text=ANSWER)
        [notice] = step.notices
        # Free plan tops out at level 2
        assert notice.type == "level_cap"
        assert notice.level == 2

        step = await training_service.continue_session(test_user, step.session.id)
        step = await training_service.submit_response(test_user, step.session.id, choice="a")
        assert step.notices == []

        events = training_service.events
        assert await events.count_events(EventType.LEVEL_UP, user_id=test_user.id) == 1
        assert await events.count_events(EventType.LEVEL_CAPPED, user_id=test_user.id) == 1


class TestCompletion:
    @pytest.mark.asyncio
    async def test_full_session_summary(self, training_service, db_session, test_user, practice_mode, complete_session):
        step = await complete_session(training_service, test_user, practice_mode.slug)

        assert step.completed is True
        assert step.card is None
        assert step.session.status is SessionStatus.COMPLETED
        assert step.session.phase is SessionPhase.COMPLETED
        assert step.session.ended_at is not None

        summary = step.summary
        assert summary["drills"] == 4
        assert summary["responses"] == 4
        assert summary["iterations"] == 0
        assert summary["exchange_count"] == 4
        assert summary["multiple_choice_answered"] == 1
        assert summary["multiple_choice_correct"] == 1
        assert summary["accuracy"] == 1.0
        assert summary["level_at_start"] == 1
        assert summary["level"] == 1

        progress = await db_session.scalar(
            select(UserModeProgress).where(UserModeProgress.user_id == test_user.id)
        )
        assert progress.total_sessions == 1
        assert progress.total_exchanges == 4

        # Two scored drills: Compression and Executive Communication
        assert [j.drill_type for j in training_service.pending_jobs] == ["compression", "executive_communication"]

    @pytest.mark.asyncio
    async def test_summary_counts_retries_behind_level_cards(
        self, training_service, card_oracle, db_session, test_user, practice_mode,
    ):
        practice_mode.level_thresholds = {"1": 1}
        await db_session.flush()
        card_oracle.retry_prompt = "Again, in one sentence."

        step = await _to_first_scenario(training_service, test_user, practice_mode)
        step = await training_service.submit_response(test_user, step.session.id, text=ANSWER)
        # The level card lands after the retry prompt
        assert [n.type for n in step.notices] == ["level_up"]
        assert step.card.type == "prompt"
        assert step.card.is_iteration is True

        while not step.completed:
            if step.session.phase.awaits_continue:
                step = await training_service.continue_session(test_user, step.session.id)
            elif step.card.type == "multiple_choice":
                step = await training_service.submit_response(test_user, step.session.id, choice="a")
            else:
                step = await training_service.submit_response(test_user, step.session.id, text=ANSWER)

        # Every drill answered twice: once as asked, once as the retry
        assert step.summary["responses"] == 8
        assert step.summary["iterations"] == 4

    @pytest.mark.asyncio
    async def test_completed_session_rejects_actions(self, training_service, test_user, practice_mode, complete_session):
        step = await complete_session(training_service, test_user, practice_mode.slug)
        with pytest.raises(InvalidActionError):
            await training_service.continue_session(test_user, step.session.id)
        with pytest.raises(InvalidActionError):
            await training_service.submit_response(test_user, step.session.id, text=ANSWER)

    @pytest.mark.asyncio
    async def test_resume_view_after_completion(self, training_service, test_user, practice_mode, complete_session):
        step = await complete_session(training_service, test_user, practice_mode.slug)
        view = await training_service.get_session_view(test_user, step.session.id)

        assert view.card is None
        assert view.summary["responses"] == 4
        sequences = [m.sequence for m in view.messages]
        assert sequences == sorted(sequences) == list(range(len(sequences)))

    @pytest.mark.asyncio
    async def test_list_modes_with_progress(self, training_service, test_user, practice_mode, complete_session):
        await complete_session(training_service, test_user, practice_mode.slug)
        [mode] = await training_service.list_modes(test_user)
        assert mode.slug == "executive-presence"
        assert mode.total_drills == 4
        assert mode.progress.total_sessions == 1
        assert mode.progress.max_level == 2
