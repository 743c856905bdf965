"""
Email preference endpoints.
"""

from fastapi import APIRouter

from sharpstack.api.deps import CurrentUser, DbSession
from sharpstack.kernel.events import EventStore
from sharpstack.kernel.models import EventType
from sharpstack.schemas.insights import EmailPreferencesResponse, EmailPreferencesUpdate

router = APIRouter()


def _preferences(user) -> EmailPreferencesResponse:
    return EmailPreferencesResponse(
        teaser_emails=user.teaser_emails_enabled,
        weekly_report=user.weekly_report_enabled,
    )


@router.get("", response_model=EmailPreferencesResponse)
async def get_email_preferences(user: CurrentUser):
    return _preferences(user)


@router.put("", response_model=EmailPreferencesResponse)
async def update_email_preferences(
    body: EmailPreferencesUpdate,
    user: CurrentUser,
    db: DbSession,
):
    """Opt in or out of teaser and weekly report emails."""
    changes = body.model_dump(exclude_none=True)
    if "teaser_emails" in changes:
        user.teaser_emails_enabled = changes["teaser_emails"]
    if "weekly_report" in changes:
        user.weekly_report_enabled = changes["weekly_report"]

    if changes:
        await EventStore(db).log(
            event_type=EventType.EMAIL_PREFERENCES_UPDATED,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id,
            payload=changes,
        )
        await db.flush()
    return _preferences(user)
