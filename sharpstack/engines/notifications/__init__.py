"""
Notifications Engine - teaser and weekly report emails.

Sends are idempotent per (user, email_type, week, year); see trigger.py.
"""

from sharpstack.engines.notifications.content import (
    EmailMessage,
    build_teaser,
    build_weekly_report,
    teaser_subject,
    weekly_subject,
)
from sharpstack.engines.notifications.email_service import (
    EmailDeliveryError,
    EmailSender,
    LogEmailSender,
    SmtpEmailSender,
    build_email_sender,
)
from sharpstack.engines.notifications.runner import BackgroundRunner
from sharpstack.engines.notifications.scheduler import build_scheduler
from sharpstack.engines.notifications.trigger import (
    NotificationTrigger,
    SendOutcome,
    WeeklyRunResult,
)

__all__ = [
    "EmailMessage",
    "build_teaser",
    "build_weekly_report",
    "teaser_subject",
    "weekly_subject",
    "EmailDeliveryError",
    "EmailSender",
    "LogEmailSender",
    "SmtpEmailSender",
    "build_email_sender",
    "BackgroundRunner",
    "build_scheduler",
    "NotificationTrigger",
    "SendOutcome",
    "WeeklyRunResult",
]
