"""
Training models - practice modes, drills, sessions and per-mode progress.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sharpstack.kernel.models.base import Base, TimestampMixin, generate_uuid, utcnow


class DrillInputType(str, Enum):
    TEXT = "text"
    MULTIPLE_CHOICE = "multiple_choice"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class SessionPhase(str, Enum):
    """Which card the session is waiting on."""

    INSIGHT = "insight"      # one-time drill insight, continue shows the scenario
    SCENARIO = "scenario"    # first attempt at the current drill
    RETRY = "retry"          # iteration re-ask of the current drill
    FEEDBACK = "feedback"    # feedback shown, continue advances the drill
    COMPLETED = "completed"

    @property
    def awaits_response(self) -> bool:
        return self in (SessionPhase.SCENARIO, SessionPhase.RETRY)

    @property
    def awaits_continue(self) -> bool:
        return self in (SessionPhase.INSIGHT, SessionPhase.FEEDBACK)


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"


class PracticeMode(Base, TimestampMixin):
    """A practice mode: an ordered set of drills with its own level ladder."""

    __tablename__ = "practice_modes"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Optional override of the catalog level thresholds, {"1": 10, "2": 15, ...}
    level_thresholds: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    drills: Mapped[List["Drill"]] = relationship(
        back_populates="mode",
        order_by="Drill.position",
        lazy="selectin",
    )


class Drill(Base, TimestampMixin):
    """One scripted step of a practice mode. Reference data."""

    __tablename__ = "drills"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    mode_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("practice_modes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Drill phase tag carried on its cards, e.g. "Compression"
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False)
    input_type: Mapped[DrillInputType] = mapped_column(
        String(30),
        default=DrillInputType.TEXT,
        nullable=False,
    )
    # [{"id": "a", "label": "..."}] for multiple choice drills
    options: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    timer_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    dimension_keys: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    insight: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    mode: Mapped["PracticeMode"] = relationship(back_populates="drills")

    __table_args__ = (
        UniqueConstraint("mode_id", "position", name="uq_drill_mode_position"),
    )


class TrainingSession(Base, TimestampMixin):
    """One run through a mode's drills."""

    __tablename__ = "training_sessions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mode_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("practice_modes.id", ondelete="CASCADE"),
        nullable=False,
    )
    level_at_start: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    exchange_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    drill_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[SessionStatus] = mapped_column(
        String(20),
        default=SessionStatus.ACTIVE,
        nullable=False,
    )
    phase: Mapped[SessionPhase] = mapped_column(
        String(20),
        default=SessionPhase.SCENARIO,
        nullable=False,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    summary: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_training_sessions_user_status", "user_id", "status", "ended_at"),
    )


class SessionMessage(Base):
    """Append-only exchange log, ordered by sequence within a session."""

    __tablename__ = "session_messages"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[MessageRole] = mapped_column(String(10), nullable=False)
    card_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    drill_phase: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("session_id", "sequence", name="uq_session_message_sequence"),
    )


class UserModeProgress(Base, TimestampMixin):
    """Per (user, mode) level and counters. Upserted, one row per pair."""

    __tablename__ = "user_mode_progress"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mode_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("practice_modes.id", ondelete="CASCADE"),
        nullable=False,
    )
    current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_drills_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_exchanges: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exchanges_at_current_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Level at which the plan cap card was last shown
    cap_notified_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    last_trained_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "mode_id", name="uq_user_mode_progress"),
    )


class DailyUsage(Base):
    """Exchanges used per user per UTC day, checked against the plan budget."""

    __tablename__ = "daily_usage"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    usage_date: Mapped[date] = mapped_column(Date, nullable=False)
    exchange_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sessions_started: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "usage_date", name="uq_daily_usage_user_date"),
    )


class InsightView(Base):
    """Records that a user has been shown a drill's one-time insight card."""

    __tablename__ = "insight_views"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    drill_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("drills.id", ondelete="CASCADE"),
        nullable=False,
    )
    seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "drill_id", name="uq_insight_view"),
    )
