"""
Email content for teaser and weekly report sends.

Bodies are plain text built only from the snapshot stored with the send, so
what the user received can always be reconstructed from the record.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sharpstack.kernel.models import EmailType, User


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str
    email_type: EmailType


def teaser_subject(blind_spot_count: int) -> str:
    if blind_spot_count == 1:
        return "We found a pattern in your training"
    return f"We found {blind_spot_count} patterns in your training"


def weekly_subject(biggest_gap_label: Optional[str]) -> str:
    if biggest_gap_label:
        return f"Your week: Focus on {biggest_gap_label}"
    return "Your weekly training report"


def _greeting(user: User) -> str:
    if user.full_name:
        return f"Hi {user.full_name.split()[0]},"
    return "Hi,"


def build_teaser(user: User, snapshot: Dict[str, Any], app_url: str) -> EmailMessage:
    """
    Teaser for a free-tier user who just reached enough sessions.

    Only counts and flags are used; dimension names stay behind the upgrade.
    """
    count = int(snapshot.get("blind_spot_count") or 0)
    lines = [
        _greeting(user),
        "",
        f"You've completed {snapshot.get('total_sessions', 0)} training sessions, "
        "which is enough for us to start seeing patterns in how you communicate.",
        "",
        f"We found {count} recurring blind spot{'s' if count != 1 else ''} in your responses.",
    ]
    if snapshot.get("has_improving"):
        lines.append("Some of your skills are already trending in the right direction.")
    if snapshot.get("has_regressing"):
        lines.append("A few habits have started slipping recently.")
    lines += [
        "",
        "Upgrade to see exactly which skills they are and how to fix them:",
        f"{app_url}/blind-spots",
    ]
    return EmailMessage(
        to=user.email,
        subject=teaser_subject(count),
        body="\n".join(lines),
        email_type=EmailType.TEASER,
    )


def _dimension_line(item: Dict[str, Any]) -> str:
    rate = round(float(item.get("recent_failure_rate") or 0) * 100)
    return f"  - {item.get('label')}: missed {rate}% of the time this week"


def build_weekly_report(user: User, snapshot: Dict[str, Any], app_url: str) -> EmailMessage:
    """Weekly summary for a user with full insights."""
    gap = snapshot.get("biggest_gap") or {}
    win = snapshot.get("biggest_win") or {}

    lines = [
        _greeting(user),
        "",
        f"Here's your training week ({snapshot.get('week')}). "
        f"Sessions completed so far: {snapshot.get('total_sessions', 0)}.",
    ]

    blind_spots = snapshot.get("blind_spots") or []
    if blind_spots:
        lines += ["", "Blind spots:"]
        lines += [_dimension_line(item) for item in blind_spots]
    if gap:
        lines += ["", f"Focus for next week: {gap.get('label')}."]
    if win:
        lines += ["", f"Biggest win: {win.get('label')} is improving."]

    slipping = snapshot.get("slipping") or []
    if slipping:
        lines += ["", "Slipping:"]
        lines += [f"  - {item.get('label')}" for item in slipping]

    if not (blind_spots or win or slipping):
        lines += ["", "No major shifts this week. Keep your streak going."]

    lines += ["", f"See the full breakdown: {app_url}/blind-spots"]
    return EmailMessage(
        to=user.email,
        subject=weekly_subject(gap.get("label")),
        body="\n".join(lines),
        email_type=EmailType.WEEKLY_REPORT,
    )
