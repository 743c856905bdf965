"""
Pytest fixtures for training core tests.
"""

import os
import tempfile

# Settings are cached on first read, so the environment goes in before any
# sharpstack import. The system tests run the real app against this file.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="sharpstack-test-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_DIR}/app.db"
os.environ["OPENAI_API_KEY"] = ""
os.environ["EMAIL_BACKEND"] = "log"
os.environ["WEEKLY_REPORT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"

from datetime import datetime, timedelta
from typing import AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from sharpstack.ai import FeedbackContent, OracleUnavailableError, ScenarioContent
from sharpstack.config import Settings
from sharpstack.database import build_engine, build_session_maker, init_db
from sharpstack.engines.criteria import build_registry
from sharpstack.engines.criteria.catalog import DEFAULT_CATALOG
from sharpstack.engines.notifications import EmailDeliveryError
from sharpstack.engines.scoring import RecordingPublisher
from sharpstack.engines.training import TrainingSessionService
from sharpstack.kernel.models import (
    DimensionScore,
    Drill,
    DrillInputType,
    DrillScore,
    PracticeMode,
    SessionPhase,
    SessionStatus,
    TrainingSession,
    User,
    utcnow,
)


CLOSING_OPTIONS = [
    {"id": "a", "label": "What would make this hire a success in ninety days?", "correct": True},
    {"id": "b", "label": "How much vacation do I get?", "correct": False},
]

EXECUTIVE_DRILLS = [
    {
        "name": "Compression",
        "instruction": "Say the core point of this update in 15 words or fewer.",
        "insight": "The shorter version is usually the truer one.",
        "dimension_keys": ["clarity", "brevity"],
    },
    {
        "name": "Executive Communication",
        "instruction": "Tell the VP the launch slips two weeks.",
        "dimension_keys": ["authority", "ownership"],
    },
    {
        "name": "Closing Strong",
        "instruction": "Which closing question lands best?",
        "input_type": DrillInputType.MULTIPLE_CHOICE.value,
        "options": CLOSING_OPTIONS,
        "dimension_keys": [],
    },
    {
        "name": "Reflection",
        "instruction": "What will you do differently next time?",
        "dimension_keys": [],
    },
]

GOOD_ANSWER = "We ship on the 14th. I own the slip and the recovery plan."


# -- fakes -------------------------------------------------------------------

class FakeCardOracle:
    """Deterministic cards; set `retry_prompt` or `fail` to steer a test."""

    def __init__(self) -> None:
        self.retry_prompt: Optional[str] = None
        self.fail = False
        self.feedback_calls: List[bool] = []

    async def scenario(self, brief):
        if self.fail:
            raise OracleUnavailableError("card oracle down")
        return ScenarioContent(scenario=f"Scenario: {brief.phase} at level {brief.level}", task=brief.instruction)

    async def feedback(self, brief, prompt, response, is_iteration):
        if self.fail:
            raise OracleUnavailableError("card oracle down")
        self.feedback_calls.append(is_iteration)
        return FeedbackContent(
            feedback="Lead with the date.",
            score=7,
            retry_prompt=None if is_iteration else self.retry_prompt,
        )


class FakeScoringOracle:
    """Returns canned outcomes; fails the first `failures` calls."""

    def __init__(self, outcomes: Optional[Dict] = None, failures: int = 0):
        self.outcomes = outcomes if outcomes is not None else {"hedging": True, "word_limit_met": True}
        self.failures = failures
        self.calls = 0

    async def evaluate(self, drill_type, drill_phase, response_text, criteria):
        self.calls += 1
        if self.calls <= self.failures:
            raise OracleUnavailableError("scoring oracle timed out")
        return dict(self.outcomes)


class RecordingEmailSender:
    def __init__(self) -> None:
        self.messages = []
        self.fail = False

    async def send(self, message) -> None:
        if self.fail:
            raise EmailDeliveryError("smtp refused")
        self.messages.append(message)


# -- infrastructure ------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    """Settings with instant retries."""
    return Settings(scoring_backoff_seconds=0.0, scoring_max_attempts=3)


@pytest.fixture
def registry():
    return build_registry(DEFAULT_CATALOG)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """A fresh SQLite file per test, shared by every session the test opens."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return build_session_maker(db_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
        await session.rollback()


# -- data ------------------------------------------------------------------------

async def _make_user(session: AsyncSession, email: str, plan: str) -> User:
    user = User(email=email, full_name="Dana Reyes", plan=plan)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Free tier user."""
    return await _make_user(db_session, "free@example.com", "free")


@pytest_asyncio.fixture
async def pro_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "pro@example.com", "pro")


@pytest_asyncio.fixture
async def practice_mode(db_session: AsyncSession) -> PracticeMode:
    """Four drills: insight + text, text, multiple choice, unscored text."""
    mode = PracticeMode(slug="executive-presence", name="Executive Presence", description="Lead with the point.")
    db_session.add(mode)
    await db_session.flush()
    for position, fields in enumerate(EXECUTIVE_DRILLS):
        db_session.add(Drill(mode_id=mode.id, position=position, **fields))
    await db_session.commit()
    # Reload so the drills relationship is populated
    db_session.expunge(mode)
    mode = await db_session.get(PracticeMode, mode.id)
    return mode


@pytest.fixture
def card_oracle() -> FakeCardOracle:
    return FakeCardOracle()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def training_service(db_session, registry, settings, card_oracle, publisher) -> TrainingSessionService:
    return TrainingSessionService(db_session, registry, settings, card_oracle, publisher)


@pytest.fixture
def complete_session():
    """Walk a session from start to completion with a fixed answer per card."""

    async def _run(service: TrainingSessionService, user: User, mode_slug: str, now: Optional[datetime] = None):
        step = await service.start(user, mode_slug, now=now)
        while not step.completed:
            if step.session.phase.awaits_continue:
                step = await service.continue_session(user, step.session.id, now=now)
            elif step.card.type == "multiple_choice":
                step = await service.submit_response(user, step.session.id, choice=step.card.options[0].id, now=now)
            else:
                step = await service.submit_response(user, step.session.id, text=GOOD_ANSWER, now=now)
        return step

    return _run


@pytest.fixture
def seed_history(session_maker):
    """
    Insert completed sessions, each with one score record and the given
    dimension scores, ending a day before `now`.
    """

    async def _seed(
        user: User,
        mode: PracticeMode,
        sessions: int = 5,
        scores: Optional[Dict[str, float]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        now = now or utcnow()
        scores = scores if scores is not None else {"authority": 4.0, "clarity": 10.0}
        async with session_maker() as session:
            for i in range(sessions):
                ended = now - timedelta(days=1, minutes=i)
                training = TrainingSession(
                    user_id=user.id,
                    mode_id=mode.id,
                    level_at_start=1,
                    exchange_count=3,
                    drill_index=len(EXECUTIVE_DRILLS) - 1,
                    status=SessionStatus.COMPLETED.value,
                    phase=SessionPhase.COMPLETED.value,
                    started_at=ended - timedelta(minutes=10),
                    ended_at=ended,
                )
                session.add(training)
                await session.flush()

                record = DrillScore(
                    user_id=user.id,
                    session_id=training.id,
                    mode_id=mode.id,
                    drill_type="executive_communication",
                    drill_phase="Executive Communication",
                    outcomes={"hedging": True, "word_limit_met": True},
                    response_text="I think maybe we slip a little.",
                    word_count=7,
                    created_at=ended,
                )
                session.add(record)
                await session.flush()
                for key, value in scores.items():
                    session.add(DimensionScore(
                        user_id=user.id,
                        drill_score_id=record.id,
                        dimension_key=key,
                        score=value,
                        created_at=ended,
                    ))
            await session.commit()

    return _seed


@pytest.fixture
def make_scoring_oracle():
    """Factory for FakeScoringOracle, for tests that need several."""
    return FakeScoringOracle
