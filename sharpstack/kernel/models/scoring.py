"""
Scoring models - raw score records, derived dimension scores and the
skill dimension reference table.

Score and dimension rows are immutable once written.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from sharpstack.kernel.models.base import Base, TimestampMixin, generate_uuid, utcnow


class DrillScore(Base):
    """Criteria outcomes for one scored answer."""

    __tablename__ = "drill_scores"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mode_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("practice_modes.id", ondelete="SET NULL"),
        nullable=True,
    )
    drill_type: Mapped[str] = mapped_column(String(100), nullable=False)
    drill_phase: Mapped[str] = mapped_column(String(100), nullable=False)
    is_iteration: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # criterion -> bool | int; criteria the oracle did not answer are absent
    outcomes: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    response_text: Mapped[str] = mapped_column(Text, nullable=False)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_drill_scores_user_time", "user_id", "created_at"),
    )


class DimensionScore(Base):
    """Normalized 0-10 score for one skill dimension, derived from a DrillScore."""

    __tablename__ = "dimension_scores"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    drill_score_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("drill_scores.id", ondelete="CASCADE"),
        nullable=False,
    )
    drill_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("drills.id", ondelete="SET NULL"),
        nullable=True,
    )
    dimension_key: Mapped[str] = mapped_column(String(100), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_dimension_scores_user_key_time", "user_id", "dimension_key", "created_at"),
    )


class SkillDimension(Base, TimestampMixin):
    """Reference row for a skill dimension, synced from the catalog."""

    __tablename__ = "skill_dimensions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    target: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tips: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    score_anchors: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
