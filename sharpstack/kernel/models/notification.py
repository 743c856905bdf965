"""
Email send records - the idempotency guard for notifications.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from sharpstack.kernel.models.base import Base, generate_uuid, utcnow


class EmailType(str, Enum):
    TEASER = "teaser"
    WEEKLY_REPORT = "weekly_report"


class EmailSend(Base):
    """
    One row per sent notification.

    The unique constraint on (user, email_type, week_number, year) makes a
    second concurrent send for the same slot fail at insert time. The teaser
    is one per user whatever the week, so it gets its own partial index.
    """

    __tablename__ = "email_sends"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email_type: Mapped[EmailType] = mapped_column(String(50), nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    snapshot: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "email_type", "week_number", "year",
            name="uq_email_send_slot",
        ),
        Index(
            "uq_email_send_teaser",
            "user_id",
            unique=True,
            postgresql_where=text("email_type = 'teaser'"),
            sqlite_where=text("email_type = 'teaser'"),
        ),
    )
