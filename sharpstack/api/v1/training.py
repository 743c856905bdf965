"""
Training endpoints - start, respond, continue, resume, modes and usage.
"""

import uuid
from typing import List

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse

from sharpstack.api.deps import CurrentUser, DbSession, Notifications, Runner, TrainingService
from sharpstack.engines.training import (
    ConcurrentUpdateError,
    InvalidActionError,
    LimitReached,
    ModeNotFoundError,
    SessionNotFoundError,
    TrainingError,
)
from sharpstack.logging_config import get_logger
from sharpstack.schemas.common import ErrorResponse, LimitReachedResponse
from sharpstack.schemas.training import (
    ModeResponse,
    RespondRequest,
    SessionStepResponse,
    SessionViewResponse,
    StartSessionRequest,
    UsageResponse,
)

router = APIRouter()
logger = get_logger(__name__)

_ERROR_STATUS = {
    ModeNotFoundError: status.HTTP_404_NOT_FOUND,
    SessionNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidActionError: status.HTTP_409_CONFLICT,
    ConcurrentUpdateError: status.HTTP_409_CONFLICT,
}

_ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Unknown mode or session"},
    409: {"model": ErrorResponse, "description": "Action not valid in the current phase"},
}
_LIMIT_RESPONSES = {
    **_ERROR_RESPONSES,
    429: {"model": LimitReachedResponse, "description": "Daily exchange limit reached"},
}


def _http_error(exc: TrainingError) -> HTTPException:
    code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=str(exc))


def _limit_response(limit: LimitReached) -> JSONResponse:
    body = LimitReachedResponse(
        plan=limit.plan,
        daily_limit=limit.daily_limit,
        used=limit.used,
        message=limit.message,
    )
    return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=body.model_dump())


@router.post(
    "/sessions",
    response_model=SessionStepResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_LIMIT_RESPONSES,
)
async def start_session(
    body: StartSessionRequest,
    user: CurrentUser,
    service: TrainingService,
):
    """Start a session on a practice mode."""
    try:
        result = await service.start(user, body.mode_slug)
    except TrainingError as exc:
        raise _http_error(exc) from exc
    if isinstance(result, LimitReached):
        return _limit_response(result)
    return SessionStepResponse.model_validate(result)


@router.get("/sessions/{session_id}", response_model=SessionViewResponse, responses=_ERROR_RESPONSES)
async def get_session(
    session_id: uuid.UUID,
    user: CurrentUser,
    service: TrainingService,
):
    """Resume view: state, awaiting card, progress and the message log."""
    try:
        view = await service.get_session_view(user, session_id)
    except TrainingError as exc:
        raise _http_error(exc) from exc
    return SessionViewResponse.model_validate(view)


@router.post(
    "/sessions/{session_id}/respond",
    response_model=SessionStepResponse,
    responses=_LIMIT_RESPONSES,
)
async def respond(
    session_id: uuid.UUID,
    body: RespondRequest,
    user: CurrentUser,
    db: DbSession,
    service: TrainingService,
):
    """Answer the card awaiting a response."""
    try:
        result = await service.submit_response(user, session_id, text=body.text, choice=body.choice)
    except TrainingError as exc:
        raise _http_error(exc) from exc
    if isinstance(result, LimitReached):
        return _limit_response(result)

    # Scoring reads committed rows only
    await db.commit()
    service.publish_pending()
    return SessionStepResponse.model_validate(result)


@router.post(
    "/sessions/{session_id}/continue",
    response_model=SessionStepResponse,
    responses=_ERROR_RESPONSES,
)
async def continue_session(
    session_id: uuid.UUID,
    user: CurrentUser,
    db: DbSession,
    service: TrainingService,
    runner: Runner,
    notifications: Notifications,
):
    """Move past the current insight or feedback card."""
    try:
        step = await service.continue_session(user, session_id)
    except TrainingError as exc:
        raise _http_error(exc) from exc

    if step.completed:
        await db.commit()
        runner.spawn(
            notifications.on_session_completed(user.id),
            name=f"teaser-check-{session_id}",
        )
    return SessionStepResponse.model_validate(step)


@router.get("/modes", response_model=List[ModeResponse])
async def list_modes(user: CurrentUser, service: TrainingService):
    """Active practice modes with the caller's level and progress."""
    modes = await service.list_modes(user)
    return [ModeResponse.model_validate(mode) for mode in modes]


@router.get("/usage", response_model=UsageResponse)
async def get_usage(user: CurrentUser, service: TrainingService):
    """Today's exchange usage against the plan's daily limit."""
    snapshot = await service.usage_snapshot(user)
    return UsageResponse.model_validate(snapshot)
