"""
Immutable event log for the audit trail.

Session and notification state changes are appended here in the same
transaction as the change itself.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sharpstack.kernel.models.base import Base, generate_uuid, utcnow


class EventType(str, Enum):
    """Audit event types."""

    # Training
    SESSION_STARTED = "training.session_started"
    RESPONSE_SUBMITTED = "training.response_submitted"
    SESSION_COMPLETED = "training.session_completed"
    LEVEL_UP = "training.level_up"
    LEVEL_CAPPED = "training.level_capped"

    # Notifications
    EMAIL_SENT = "notification.email_sent"

    # Account
    EMAIL_PREFERENCES_UPDATED = "user.email_preferences_updated"


class EventLog(Base):
    """
    Append-only audit event.

    Rows are never updated or deleted.
    """

    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    event_type: Mapped[EventType] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False, index=True)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,  # scheduler events have no acting user
        index=True,
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_event_logs_entity", "entity_type", "entity_id"),
        Index("ix_event_logs_type_time", "event_type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EventLog {self.event_type} {self.entity_type}:{self.entity_id}>"
