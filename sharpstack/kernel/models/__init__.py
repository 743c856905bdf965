"""
Kernel Data Models

SQLAlchemy models for the training core.
"""

from sharpstack.kernel.models.base import Base, TimestampMixin, generate_uuid, insert_if_absent, utcnow, as_utc
from sharpstack.kernel.models.user import User
from sharpstack.kernel.models.training import (
    PracticeMode,
    Drill,
    DrillInputType,
    TrainingSession,
    SessionStatus,
    SessionPhase,
    SessionMessage,
    MessageRole,
    UserModeProgress,
    DailyUsage,
    InsightView,
)
from sharpstack.kernel.models.scoring import DrillScore, DimensionScore, SkillDimension
from sharpstack.kernel.models.notification import EmailSend, EmailType
from sharpstack.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "insert_if_absent",
    "utcnow",
    "as_utc",
    # Identity
    "User",
    # Training
    "PracticeMode",
    "Drill",
    "DrillInputType",
    "TrainingSession",
    "SessionStatus",
    "SessionPhase",
    "SessionMessage",
    "MessageRole",
    "UserModeProgress",
    "DailyUsage",
    "InsightView",
    # Scoring
    "DrillScore",
    "DimensionScore",
    "SkillDimension",
    # Notifications
    "EmailSend",
    "EmailType",
    # Audit
    "EventLog",
    "EventType",
]
