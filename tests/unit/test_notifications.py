"""Unit tests for email content, the background runner and the scheduler."""

import asyncio

import pytest

from sharpstack.config import Settings
from sharpstack.engines.notifications import (
    BackgroundRunner,
    LogEmailSender,
    SmtpEmailSender,
    build_email_sender,
    build_scheduler,
    build_teaser,
    build_weekly_report,
    teaser_subject,
    weekly_subject,
)
from sharpstack.engines.notifications.scheduler import WEEKLY_REPORT_JOB_ID
from sharpstack.kernel.models import EmailType, User


@pytest.fixture
def user():
    return User(email="dana@example.com", full_name="Dana Reyes", plan="free")


class TestContent:
    def test_teaser_subject(self):
        assert teaser_subject(1) == "We found a pattern in your training"
        assert teaser_subject(3) == "We found 3 patterns in your training"

    def test_weekly_subject(self):
        assert weekly_subject("Authority") == "Your week: Focus on Authority"
        assert weekly_subject(None) == "Your weekly training report"

    def test_teaser_uses_counts_only(self, user):
        snapshot = {"blind_spot_count": 2, "has_improving": True, "has_regressing": False, "total_sessions": 5}
        message = build_teaser(user, snapshot, "https://app.example.com")
        assert message.to == "dana@example.com"
        assert message.email_type is EmailType.TEASER
        assert message.body.startswith("Hi Dana,")
        assert "2 recurring blind spots" in message.body
        assert "https://app.example.com/blind-spots" in message.body
        assert "slipping" not in message.body

    def test_weekly_report_lists_dimensions(self, user):
        authority = {"key": "authority", "label": "Authority", "recent_failure_rate": 0.8}
        snapshot = {
            "week": "2026-W42",
            "total_sessions": 9,
            "blind_spots": [authority],
            "biggest_gap": authority,
            "biggest_win": {"key": "clarity", "label": "Clarity"},
            "slipping": [],
        }
        message = build_weekly_report(user, snapshot, "https://app.example.com")
        assert message.subject == "Your week: Focus on Authority"
        assert "Authority: missed 80% of the time this week" in message.body
        assert "Biggest win: Clarity is improving." in message.body

    def test_weekly_report_quiet_week(self, user):
        message = build_weekly_report(user, {"week": "2026-W42", "total_sessions": 6}, "https://app.example.com")
        assert "No major shifts this week" in message.body


class TestSenders:
    def test_default_backend_logs(self):
        assert isinstance(build_email_sender(Settings(email_backend="log")), LogEmailSender)

    def test_smtp_backend(self):
        assert isinstance(build_email_sender(Settings(email_backend="smtp")), SmtpEmailSender)


class TestBackgroundRunner:
    @pytest.mark.asyncio
    async def test_failed_job_is_contained(self):
        runner = BackgroundRunner()

        async def boom():
            raise RuntimeError("teaser check exploded")

        async def ok():
            await asyncio.sleep(0)
            return "done"

        failing = runner.spawn(boom(), name="boom")
        succeeding = runner.spawn(ok(), name="ok")
        await runner.drain()

        assert runner.pending == 0
        assert isinstance(failing.exception(), RuntimeError)
        assert succeeding.result() == "done"

    @pytest.mark.asyncio
    async def test_shutdown_cancels_after_timeout(self):
        runner = BackgroundRunner()
        task = runner.spawn(asyncio.sleep(30), name="slow")
        await runner.shutdown(timeout=0.01)
        with pytest.raises(asyncio.CancelledError):
            await task


class TestScheduler:
    def test_disabled(self):
        settings = Settings(weekly_report_enabled=False)
        assert build_scheduler(trigger=None, settings=settings) is None

    def test_weekly_job_registered(self):
        class _Trigger:
            async def run_weekly(self, now=None):
                return None

        trigger = _Trigger()
        settings = Settings(weekly_report_enabled=True, weekly_report_day_of_week="fri", weekly_report_hour=7)
        scheduler = build_scheduler(trigger, settings)
        job = scheduler.get_job(WEEKLY_REPORT_JOB_ID)
        assert job is not None
        assert job.func == trigger.run_weekly
        assert "day_of_week='fri'" in str(job.trigger)
        assert "hour='7'" in str(job.trigger)
